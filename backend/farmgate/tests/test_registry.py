"""Tests for room membership bookkeeping."""
from __future__ import annotations

import threading

from backend.farmgate.app.registry import SubscriptionRegistry

from .conftest import RecordingConnection


def test_register_and_lookup(registry: SubscriptionRegistry) -> None:
    first, second = RecordingConnection(), RecordingConnection()

    registry.register(first, "demo_customer")
    registry.register(second, "demo_customer")

    assert registry.connections_for("demo_customer") == {first, second}
    assert registry.identity_for(first) == "demo_customer"
    assert registry.rooms() == {"demo_customer": 2}
    assert len(registry) == 2


def test_unknown_identity_has_no_connections(registry: SubscriptionRegistry) -> None:
    assert registry.connections_for("nobody") == frozenset()


def test_reregistering_moves_connection(registry: SubscriptionRegistry) -> None:
    connection = RecordingConnection()
    registry.register(connection, "demo_customer")

    registry.register(connection, "demo_farmer")

    assert registry.connections_for("demo_customer") == frozenset()
    assert registry.connections_for("demo_farmer") == {connection}
    assert registry.rooms() == {"demo_farmer": 1}


def test_register_same_identity_twice_is_noop(registry: SubscriptionRegistry) -> None:
    connection = RecordingConnection()

    registry.register(connection, "demo_admin")
    registry.register(connection, "demo_admin")

    assert len(registry) == 1


def test_unregister_is_idempotent(registry: SubscriptionRegistry) -> None:
    connection = RecordingConnection()
    registry.register(connection, "demo_customer")

    registry.unregister(connection)
    registry.unregister(connection)
    registry.unregister(RecordingConnection())

    assert registry.connections_for("demo_customer") == frozenset()
    assert registry.identity_for(connection) is None
    assert registry.rooms() == {}
    assert len(registry) == 0


def test_lookup_returns_snapshot(registry: SubscriptionRegistry) -> None:
    connection = RecordingConnection()
    registry.register(connection, "demo_customer")

    snapshot = registry.connections_for("demo_customer")
    registry.unregister(connection)

    assert snapshot == {connection}


def test_concurrent_register_and_unregister(registry: SubscriptionRegistry) -> None:
    connections = [RecordingConnection() for _ in range(200)]

    def churn(chunk: list[RecordingConnection]) -> None:
        for connection in chunk:
            registry.register(connection, "room")
        for connection in chunk[::2]:
            registry.unregister(connection)

    threads = [threading.Thread(target=churn, args=(connections[i::4],)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    expected = {c for i in range(4) for c in connections[i::4][1::2]}
    assert registry.connections_for("room") == expected
    assert len(registry) == len(expected)
