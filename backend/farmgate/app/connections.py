"""Live connection handles that receive pushed events."""
from __future__ import annotations

import asyncio
import itertools
from typing import Any

from .events import Event
from .logging import get_logger

logger = get_logger("farmgate.connections")

_ids = itertools.count(1)


class Connection:
    """A channel the event bus can push frames into.

    Subclasses implement :meth:`deliver`, which must never block the caller.
    """

    def __init__(self, connection_id: str | None = None) -> None:
        self.id = connection_id or f"conn-{next(_ids)}"

    def deliver(self, event: Event) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class QueueConnection(Connection):
    """Connection backed by a bounded :class:`asyncio.Queue`.

    Frames published from another thread are handed to the owning loop with
    ``call_soon_threadsafe``. A full queue drops the frame.
    """

    def __init__(
        self,
        *,
        maxsize: int = 100,
        loop: asyncio.AbstractEventLoop | None = None,
        connection_id: str | None = None,
    ) -> None:
        super().__init__(connection_id)
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    @property
    def queue(self) -> "asyncio.Queue[dict[str, Any]]":
        return self._queue

    def _offer(self, frame: dict[str, Any]) -> None:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug("connection_frame_dropped", connection=self.id, dropped=self.dropped)

    def _submit(self, frame: dict[str, Any]) -> None:
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is self._loop:
            self._offer(frame)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._offer, frame)

    def deliver(self, event: Event) -> None:
        self._submit(event.as_frame())

    def send_frame(self, event: str, payload: dict[str, Any] | None = None) -> None:
        """Queue a frame addressed only to this connection."""

        self._submit(Event.create(event, self.id, payload or {}).as_frame())

    async def next_frame(self) -> dict[str, Any]:
        return await self._queue.get()


__all__ = ["Connection", "QueueConnection"]
