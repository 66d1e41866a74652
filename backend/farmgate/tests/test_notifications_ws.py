"""Tests for the notification WebSocket stream."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from backend.farmgate.app.events import NEWS_UPDATE, ORDER_STATUS_UPDATE
from backend.farmgate.app.routes import notifications as notification_routes
from backend.farmgate.app.security import Role


@pytest.fixture
def ws_client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def token(app):
    def factory(role: Role) -> str:
        return app.state.services.credentials.issue(role).token

    return factory


def test_missing_token_closes_with_4401(ws_client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with ws_client.websocket_connect("/ws/notifications") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 4401


def test_invalid_token_closes_with_4403(ws_client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with ws_client.websocket_connect("/ws/notifications?token=forged") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 4403


def test_connected_client_receives_its_events(ws_client: TestClient, app, token) -> None:
    services = app.state.services

    with ws_client.websocket_connect(f"/ws/notifications?token={token(Role.CUSTOMER)}") as websocket:
        hello = websocket.receive_json()
        assert hello["event"] == "connected"
        assert hello["payload"]["room"] == "demo_customer"
        assert services.registry.rooms() == {"demo_customer": 1}

        services.bus.publish(ORDER_STATUS_UPDATE, "demo_farmer", {"status": "ignored"})
        services.bus.publish(ORDER_STATUS_UPDATE, "demo_customer", {"status": "confirmed"})
        frame = websocket.receive_json()
        assert frame["event"] == ORDER_STATUS_UPDATE
        assert frame["payload"] == {"status": "confirmed"}

        services.bus.broadcast(NEWS_UPDATE, {"message": "Monsoon outlook"})
        assert websocket.receive_json()["event"] == NEWS_UPDATE


def test_bearer_header_is_accepted(ws_client: TestClient, token) -> None:
    headers = {"Authorization": f"Bearer {token(Role.FARMER)}"}

    with ws_client.websocket_connect("/ws/notifications", headers=headers) as websocket:
        assert websocket.receive_json()["payload"]["room"] == "demo_farmer"


def test_client_actions(ws_client: TestClient, token) -> None:
    with ws_client.websocket_connect(f"/ws/notifications?token={token(Role.CUSTOMER)}") as websocket:
        websocket.receive_json()

        websocket.send_json({"action": "ping"})
        assert websocket.receive_json()["event"] == "pong"

        websocket.send_json({"action": "join-room", "room": "demo_customer"})
        assert websocket.receive_json()["event"] == "room-joined"

        websocket.send_json({"action": "join-room", "room": "demo_admin"})
        rejected = websocket.receive_json()
        assert rejected["event"] == "error"
        assert rejected["payload"]["detail"] == "Insufficient permissions"

        websocket.send_json({"action": "news-request"})
        assert websocket.receive_json()["event"] == NEWS_UPDATE

        websocket.send_text("not json")
        assert websocket.receive_json()["payload"]["detail"] == "Malformed frame"

        websocket.send_json({"action": "dance"})
        assert websocket.receive_json()["event"] == "error"


def test_binary_frame_yields_error_frame(ws_client: TestClient, token) -> None:
    with ws_client.websocket_connect(f"/ws/notifications?token={token(Role.CUSTOMER)}") as websocket:
        websocket.receive_json()

        websocket.send_bytes(b"\x00\x01")
        frame = websocket.receive_json()
        assert frame["event"] == "error"
        assert frame["payload"]["detail"] == "Binary frames are not supported"

        websocket.send_json({"action": "ping"})
        assert websocket.receive_json()["event"] == "pong"


def test_closed_socket_is_unregistered(ws_client: TestClient, app, token) -> None:
    services = app.state.services

    with ws_client.websocket_connect(f"/ws/notifications?token={token(Role.CUSTOMER)}") as websocket:
        websocket.receive_json()
        assert len(services.registry) == 1

    assert len(services.registry) == 0
    assert services.registry.connections_for("demo_customer") == frozenset()
    services.bus.publish(ORDER_STATUS_UPDATE, "demo_customer", {"status": "shipped"})


def test_failing_handler_still_unregisters(
    ws_client: TestClient,
    app,
    token,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    services = app.state.services

    def explode(*args, **kwargs) -> None:
        raise RuntimeError("handler crashed")

    monkeypatch.setattr(notification_routes, "_handle_client_frame", explode)

    with pytest.raises(Exception):
        with ws_client.websocket_connect(f"/ws/notifications?token={token(Role.CUSTOMER)}") as websocket:
            websocket.receive_json()
            websocket.send_json({"action": "ping"})
            websocket.receive_json()

    assert len(services.registry) == 0
