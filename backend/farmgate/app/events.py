"""In-process publish/subscribe fan-out to live connections."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Final

from .logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .registry import SubscriptionRegistry

logger = get_logger("farmgate.events")

BROADCAST: Final[str] = "*"

ORDER_STATUS_UPDATE: Final[str] = "order-status-update"
NOTIFICATION: Final[str] = "notification"
NEWS_UPDATE: Final[str] = "news-update"
PRICE_UPDATE: Final[str] = "price-update"
WEATHER_ALERT: Final[str] = "weather-alert"


@dataclass(frozen=True)
class Event:
    """A named payload addressed to one identity or to everybody."""

    name: str
    target: str
    payload: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, name: str, target: str, payload: Dict[str, Any] | None = None) -> "Event":
        return cls(name=name, target=target, payload=dict(payload or {}))

    @property
    def is_broadcast(self) -> bool:
        return self.target == BROADCAST

    def as_frame(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


class EventBus:
    """Deliver events to the connections registered at publish time.

    Delivery is fire-and-forget: the bus never waits on receivers and a
    failing connection never affects the others or the publisher.
    """

    def __init__(self, registry: "SubscriptionRegistry") -> None:
        self._registry = registry

    def publish(self, event_name: str, target: str, payload: Dict[str, Any] | None = None) -> Event:
        event = Event.create(event_name, target, payload)
        if event.is_broadcast:
            recipients = self._registry.all_connections()
        else:
            recipients = self._registry.connections_for(target)

        for connection in recipients:
            try:
                connection.deliver(event)
            except Exception:
                logger.debug("event_delivery_failed", event=event_name, connection=connection.id, exc_info=True)

        logger.debug("event_published", event=event_name, target=target, recipients=len(recipients))
        return event

    def broadcast(self, event_name: str, payload: Dict[str, Any] | None = None) -> Event:
        return self.publish(event_name, BROADCAST, payload)


__all__ = [
    "BROADCAST",
    "Event",
    "EventBus",
    "NEWS_UPDATE",
    "NOTIFICATION",
    "ORDER_STATUS_UPDATE",
    "PRICE_UPDATE",
    "WEATHER_ALERT",
]
