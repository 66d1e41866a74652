"""Room membership for live connections."""
from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Dict

from .logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .connections import Connection

logger = get_logger("farmgate.registry")


class SubscriptionRegistry:
    """Thread-safe mapping of identity ids to their live connections.

    A connection belongs to at most one identity at a time. Lookups return
    snapshots so callers can iterate without holding the lock.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, set["Connection"]] = {}
        self._owners: Dict["Connection", str] = {}
        self._lock = threading.RLock()

    def register(self, connection: "Connection", identity_id: str) -> None:
        with self._lock:
            previous = self._owners.get(connection)
            if previous == identity_id:
                return
            if previous is not None:
                self._discard(connection, previous)
            self._rooms.setdefault(identity_id, set()).add(connection)
            self._owners[connection] = identity_id
        logger.debug("connection_registered", connection=connection.id, room=identity_id)

    def unregister(self, connection: "Connection") -> None:
        with self._lock:
            identity_id = self._owners.pop(connection, None)
            if identity_id is None:
                return
            self._discard(connection, identity_id)
        logger.debug("connection_unregistered", connection=connection.id, room=identity_id)

    def _discard(self, connection: "Connection", identity_id: str) -> None:
        members = self._rooms.get(identity_id)
        if members is None:
            return
        members.discard(connection)
        if not members:
            self._rooms.pop(identity_id, None)

    def connections_for(self, identity_id: str) -> frozenset["Connection"]:
        with self._lock:
            return frozenset(self._rooms.get(identity_id, ()))

    def all_connections(self) -> frozenset["Connection"]:
        with self._lock:
            return frozenset(self._owners)

    def identity_for(self, connection: "Connection") -> str | None:
        with self._lock:
            return self._owners.get(connection)

    def rooms(self) -> dict[str, int]:
        """Return the number of live connections per identity."""

        with self._lock:
            return {identity_id: len(members) for identity_id, members in self._rooms.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)


__all__ = ["SubscriptionRegistry"]
