"""Best-effort e-mail and SMS side channel."""
from __future__ import annotations

from typing import Any

import httpx

from .config import NotificationSettings
from .logging import get_logger

logger = get_logger("farmgate.notifier")


class NotificationDispatcher:
    """Send transactional e-mail and WhatsApp/SMS messages.

    In mock mode messages are only logged. Otherwise they are posted to the
    configured webhook relay. Failures are logged and never raised.
    """

    def __init__(self, config: NotificationSettings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config
        self._transport = transport

    @property
    def admin_email(self) -> str:
        return str(self._config.admin_email)

    async def _post(self, channel: str, payload: dict[str, Any]) -> bool:
        url = self._config.webhook_url
        if not url:
            logger.info("notification_skipped", channel=channel, reason="no relay configured")
            return False
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds, transport=self._transport) as client:
                response = await client.post(url, json={"channel": channel, **payload})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("notification_failed", channel=channel, error=str(exc))
            return False
        return True

    async def send_email(self, *, to: str | None, subject: str, body: str) -> bool:
        """Send an e-mail; returns ``True`` when the relay accepted it."""

        if not to:
            return False
        if self._config.mock_email:
            logger.info("email_mock", to=to, subject=subject)
            return True
        return await self._post("email", {"to": to, "subject": subject, "body": body})

    async def send_sms(self, *, phone: str | None, message: str) -> bool:
        if not phone:
            return False
        if self._config.mock_sms:
            logger.info("sms_mock", phone=phone, message=message)
            return True
        return await self._post("whatsapp", {"to": phone, "message": message})


__all__ = ["NotificationDispatcher"]
