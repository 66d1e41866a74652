"""Wiring of the long-lived gateway components."""
from __future__ import annotations

from dataclasses import dataclass

from .config import Settings
from .events import EventBus
from .feeds import FeedClient
from .jobs import register_default_jobs
from .leads import LeadService
from .notifier import NotificationDispatcher
from .orders import ADMIN_ROOM, OrderService
from .registry import SubscriptionRegistry
from .scheduler import Scheduler
from .security import CredentialService
from .storage import MemoryLeadStore, MemoryOrderStore, OrderStore, build_lead_store, build_order_store


@dataclass
class Services:
    settings: Settings
    credentials: CredentialService
    registry: SubscriptionRegistry
    bus: EventBus
    notifier: NotificationDispatcher
    feeds: FeedClient
    orders: OrderService
    leads: LeadService
    scheduler: Scheduler

    @property
    def store(self) -> OrderStore:
        return self.orders.store

    async def start(self) -> None:
        """Select the order and lead stores and start recurring jobs."""

        store = await build_order_store(self.settings.storage)
        self.orders.attach_store(store)
        self.leads.attach_store(build_lead_store(store))
        if self.settings.scheduler.enabled:
            self.scheduler.start()

    async def stop(self) -> None:
        self.scheduler.shutdown()
        await self.orders.store.close()


def build_services(settings: Settings) -> Services:
    """Assemble the component graph with the volatile store attached.

    :meth:`Services.start` swaps in the durable store when one is configured.
    """

    registry = SubscriptionRegistry()
    bus = EventBus(registry)
    notifier = NotificationDispatcher(settings.notifications)
    feeds = FeedClient(settings.feeds)
    orders = OrderService(
        store=MemoryOrderStore(),
        bus=bus,
        notifier=notifier,
        config=settings.orders,
    )
    leads = LeadService(store=MemoryLeadStore(), bus=bus, notifier=notifier, admin_room=ADMIN_ROOM)
    scheduler = Scheduler(timezone_name=settings.scheduler.timezone)
    register_default_jobs(
        scheduler,
        settings.scheduler,
        bus=bus,
        feeds=feeds,
        notifier=notifier,
        orders=orders,
    )
    return Services(
        settings=settings,
        credentials=CredentialService(settings.auth),
        registry=registry,
        bus=bus,
        notifier=notifier,
        feeds=feeds,
        orders=orders,
        leads=leads,
        scheduler=scheduler,
    )


__all__ = ["Services", "build_services"]
