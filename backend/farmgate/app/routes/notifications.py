"""Real-time notification stream."""
from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Any

from fastapi import APIRouter, WebSocket
from fastapi.websockets import WebSocketDisconnect

from ..connections import QueueConnection
from ..dependencies import get_services
from ..errors import InvalidTokenError, MissingTokenError
from ..events import NEWS_UPDATE
from ..logging import get_logger
from ..security import Identity
from ..services import Services

logger = get_logger("farmgate.api.notifications")
router = APIRouter(tags=["notifications"])

CLOSE_MISSING_TOKEN = 4401
CLOSE_INVALID_TOKEN = 4403


def _extract_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        return token
    header = websocket.headers.get("authorization")
    if header:
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return None


async def _pump(websocket: WebSocket, connection: QueueConnection) -> None:
    while True:
        frame = await connection.next_frame()
        await websocket.send_json(frame)


def _handle_client_frame(
    services: Services,
    identity: Identity,
    connection: QueueConnection,
    raw: str,
) -> None:
    try:
        message: Any = json.loads(raw)
    except ValueError:
        connection.send_frame("error", {"detail": "Malformed frame"})
        return
    if not isinstance(message, dict):
        connection.send_frame("error", {"detail": "Malformed frame"})
        return

    action = message.get("action") or message.get("event")
    if action == "join-room":
        room = message.get("room")
        if room != identity.id:
            logger.info("room_join_rejected", connection=connection.id, room=room, identity=identity.id)
            connection.send_frame("error", {"detail": "Insufficient permissions", "action": "join-room"})
            return
        services.registry.register(connection, identity.id)
        connection.send_frame("room-joined", {"room": identity.id})
    elif action == "news-request":
        connection.send_frame(NEWS_UPDATE, {"message": "Latest news available"})
    elif action == "ping":
        connection.send_frame("pong")
    else:
        connection.send_frame("error", {"detail": f"Unknown action '{action}'"})


@router.websocket("/ws/notifications")
async def notifications_stream(websocket: WebSocket) -> None:
    """Push events addressed to the caller's room and broadcasts.

    The handshake is always accepted so that browsers see the 4401/4403
    close code instead of a bare handshake rejection.
    """

    services = get_services(websocket)
    await websocket.accept()
    try:
        identity = services.credentials.verify(_extract_token(websocket))
    except MissingTokenError as exc:
        await websocket.close(code=CLOSE_MISSING_TOKEN, reason=exc.detail)
        return
    except InvalidTokenError as exc:
        await websocket.close(code=CLOSE_INVALID_TOKEN, reason=exc.detail)
        return

    connection = QueueConnection(maxsize=services.settings.realtime.queue_size)
    services.registry.register(connection, identity.id)
    logger.info("client_connected", connection=connection.id, identity=identity.id)
    connection.send_frame("connected", {"room": identity.id, "connection": connection.id})

    sender = asyncio.create_task(_pump(websocket, connection))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is None:
                connection.send_frame("error", {"detail": "Binary frames are not supported"})
                continue
            _handle_client_frame(services, identity, connection, text)
    except WebSocketDisconnect:
        pass
    finally:
        services.registry.unregister(connection)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await sender
        logger.info("client_disconnected", connection=connection.id, identity=identity.id)
