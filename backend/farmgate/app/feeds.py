"""Clients for the external news, price and weather providers."""
from __future__ import annotations

from typing import Any, Dict

import httpx

from .config import FeedSettings
from .errors import DownstreamUnavailableError
from .logging import get_logger

logger = get_logger("farmgate.feeds")

DEFAULT_NEWS: Dict[str, Any] = {"message": "New market news available"}
DEFAULT_PRICES: Dict[str, Any] = {"message": "Market prices updated"}
DEFAULT_WEATHER: Dict[str, Any] = {
    "district": "Idukki",
    "alert": "Heavy rain expected in next 48 hours",
    "severity": "medium",
}


class FeedClient:
    """Fetch JSON payloads for scheduled broadcasts.

    A feed without a configured URL yields its built-in default payload.
    """

    def __init__(self, config: FeedSettings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config
        self._transport = transport

    async def _fetch(self, name: str, url: str | None, default: Dict[str, Any]) -> Dict[str, Any]:
        if not url:
            return dict(default)
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds, transport=self._transport) as client:
                response = await client.get(url)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise DownstreamUnavailableError(f"{name} feed is unavailable") from exc
        if not isinstance(body, dict):
            raise DownstreamUnavailableError(f"{name} feed returned an unexpected payload")
        logger.debug("feed_fetched", feed=name, url=url)
        return body

    async def latest_news(self) -> Dict[str, Any]:
        return await self._fetch("news", self._config.news_url, DEFAULT_NEWS)

    async def latest_prices(self) -> Dict[str, Any]:
        return await self._fetch("prices", self._config.prices_url, DEFAULT_PRICES)

    async def weather_alert(self) -> Dict[str, Any]:
        return await self._fetch("weather", self._config.weather_url, DEFAULT_WEATHER)


__all__ = ["DEFAULT_NEWS", "DEFAULT_PRICES", "DEFAULT_WEATHER", "FeedClient"]
