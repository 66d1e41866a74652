"""Common test fixtures for gateway unit tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from backend.farmgate.app.config import (
    AuthSettings,
    NotificationSettings,
    SchedulerSettings,
    Settings,
    StorageSettings,
)
from backend.farmgate.app.connections import Connection
from backend.farmgate.app.events import Event, EventBus
from backend.farmgate.app.main import create_app
from backend.farmgate.app.notifier import NotificationDispatcher
from backend.farmgate.app.orders import OrderService
from backend.farmgate.app.registry import SubscriptionRegistry
from backend.farmgate.app.security import CredentialService, Identity, Role
from backend.farmgate.app.storage import MemoryOrderStore

TEST_SECRET = "farmgate-test-secret-with-enough-length"


class RecordingConnection(Connection):
    """Connection that keeps every delivered event in memory."""

    def __init__(self, connection_id: str | None = None) -> None:
        super().__init__(connection_id)
        self.events: list[Event] = []

    def deliver(self, event: Event) -> None:
        self.events.append(event)

    @property
    def names(self) -> list[str]:
        return [event.name for event in self.events]


class InMemoryNotificationDispatcher(NotificationDispatcher):
    def __init__(self, *, fail: bool = False) -> None:
        super().__init__(NotificationSettings())
        self.outbox: list[dict[str, Any]] = []
        self.texts: list[dict[str, Any]] = []
        self.fail = fail

    async def send_email(self, *, to: str | None, subject: str, body: str) -> bool:
        if self.fail:
            raise ConnectionError("mail relay unreachable")
        self.outbox.append({"to": to, "subject": subject, "body": body})
        return True

    async def send_sms(self, *, phone: str | None, message: str) -> bool:
        if self.fail:
            raise ConnectionError("sms gateway unreachable")
        self.texts.append({"to": phone, "message": message})
        return True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        auth=AuthSettings(jwt_secret=TEST_SECRET),
        storage=StorageSettings(database_url=None),
        scheduler=SchedulerSettings(enabled=False),
    )


@pytest.fixture
def credentials(settings: Settings) -> CredentialService:
    return CredentialService(settings.auth)


@pytest.fixture
def registry() -> SubscriptionRegistry:
    return SubscriptionRegistry()


@pytest.fixture
def bus(registry: SubscriptionRegistry) -> EventBus:
    return EventBus(registry)


@pytest.fixture
def notifier() -> InMemoryNotificationDispatcher:
    return InMemoryNotificationDispatcher()


@pytest.fixture
def store() -> MemoryOrderStore:
    return MemoryOrderStore()


@pytest.fixture
def order_service(
    store: MemoryOrderStore,
    bus: EventBus,
    notifier: InMemoryNotificationDispatcher,
    settings: Settings,
) -> OrderService:
    return OrderService(store=store, bus=bus, notifier=notifier, config=settings.orders)


@pytest.fixture
def customer(credentials: CredentialService) -> Identity:
    return credentials.demo_identity(Role.CUSTOMER)


@pytest.fixture
def app(settings: Settings):
    """Create a FastAPI test application backed by the in-memory store."""

    return create_app(settings=settings)


@pytest.fixture
def auth_headers(app) -> Callable[[Role | str], dict[str, str]]:
    credentials: CredentialService = app.state.services.credentials

    def factory(role: Role | str) -> dict[str, str]:
        issued = credentials.issue(role)
        return {"Authorization": f"Bearer {issued.token}"}

    return factory


@pytest_asyncio.fixture
async def client(app) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as http_client:
        yield http_client
