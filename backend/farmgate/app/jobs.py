"""System-wide broadcasts run by the scheduler."""
from __future__ import annotations

from datetime import datetime, timezone

from .config import SchedulerSettings
from .events import NEWS_UPDATE, PRICE_UPDATE, WEATHER_ALERT, EventBus
from .feeds import FeedClient
from .logging import get_logger
from .notifier import NotificationDispatcher
from .orders import OrderService
from .scheduler import Scheduler
from .storage import summarise_statuses

logger = get_logger("farmgate.jobs")


async def broadcast_news(bus: EventBus, feeds: FeedClient) -> None:
    bus.broadcast(NEWS_UPDATE, await feeds.latest_news())


async def broadcast_prices(bus: EventBus, feeds: FeedClient) -> None:
    bus.broadcast(PRICE_UPDATE, await feeds.latest_prices())


async def broadcast_weather_alert(bus: EventBus, feeds: FeedClient) -> None:
    alert = await feeds.weather_alert()
    logger.info("weather_alert_checked", district=alert.get("district"), severity=alert.get("severity"))
    bus.broadcast(WEATHER_ALERT, alert)


def render_daily_report(counts: dict[str, int], generated_at: datetime) -> str:
    lines = ["Yesterday's performance", ""]
    lines.append(f"Total orders: {sum(counts.values())}")
    for status, count in counts.items():
        lines.append(f"  {status}: {count}")
    lines.append("")
    lines.append(f"Generated at: {generated_at.isoformat()}")
    return "\n".join(lines)


async def send_daily_report(orders: OrderService, notifier: NotificationDispatcher) -> None:
    counts = summarise_statuses(await orders.store.count_by_status())
    body = render_daily_report(counts, datetime.now(timezone.utc))
    await notifier.send_email(to=notifier.admin_email, subject="Daily Analytics Report", body=body)


def register_default_jobs(
    scheduler: Scheduler,
    config: SchedulerSettings,
    *,
    bus: EventBus,
    feeds: FeedClient,
    notifier: NotificationDispatcher,
    orders: OrderService,
) -> None:
    scheduler.register(
        "news-update",
        config.news.cron,
        lambda: broadcast_news(bus, feeds),
        enabled=config.news.enabled,
    )
    scheduler.register(
        "price-update",
        config.prices.cron,
        lambda: broadcast_prices(bus, feeds),
        enabled=config.prices.enabled,
    )
    scheduler.register(
        "weather-alert",
        config.weather.cron,
        lambda: broadcast_weather_alert(bus, feeds),
        enabled=config.weather.enabled,
    )
    scheduler.register(
        "daily-report",
        config.report.cron,
        lambda: send_daily_report(orders, notifier),
        enabled=config.report.enabled,
    )


__all__ = [
    "broadcast_news",
    "broadcast_prices",
    "broadcast_weather_alert",
    "register_default_jobs",
    "render_daily_report",
    "send_daily_report",
]
