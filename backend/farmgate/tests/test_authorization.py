"""Tests for role checks on the authorization guard and the protected routes."""
from __future__ import annotations

import pytest

from backend.farmgate.app.errors import ForbiddenError
from backend.farmgate.app.orders import ADMIN_ROOM
from backend.farmgate.app.security import CredentialService, Role, authorize

from .conftest import RecordingConnection


@pytest.mark.parametrize("allowed", [None, frozenset()])
def test_empty_role_set_admits_everyone(credentials: CredentialService, allowed) -> None:
    for role in Role:
        authorize(credentials.demo_identity(role), allowed)


def test_matching_role_is_admitted(credentials: CredentialService) -> None:
    authorize(credentials.demo_identity(Role.LOGISTICS), {Role.LOGISTICS, Role.ADMIN})


def test_other_role_is_rejected(credentials: CredentialService) -> None:
    with pytest.raises(ForbiddenError) as exc_info:
        authorize(credentials.demo_identity(Role.CUSTOMER), {Role.ADMIN})

    assert exc_info.value.status_code == 403
    assert exc_info.value.detail == "Insufficient permissions"


@pytest.mark.asyncio
async def test_missing_token_returns_401(client) -> None:
    response = await client.get("/auth/me")

    assert response.status_code == 401
    assert response.json() == {"detail": "Access token required", "error": "missing_token"}
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_invalid_token_returns_403(client) -> None:
    response = await client.get("/auth/me", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 403
    assert response.json()["error"] == "invalid_token"


@pytest.mark.asyncio
async def test_expired_token_returns_403(client, app) -> None:
    credentials: CredentialService = app.state.services.credentials
    identity = credentials.demo_identity(Role.ADMIN)
    expired = credentials.issue_for(identity, ttl_seconds=-5)

    response = await client.get("/admin/statistics", headers={"Authorization": f"Bearer {expired.token}"})

    assert response.status_code == 403
    assert response.json()["detail"] == "Token expired"


@pytest.mark.asyncio
async def test_farmer_cannot_read_admin_statistics(client, auth_headers) -> None:
    response = await client.get("/admin/statistics", headers=auth_headers(Role.FARMER))

    assert response.status_code == 403
    assert response.json() == {"detail": "Insufficient permissions", "error": "forbidden"}


@pytest.mark.asyncio
async def test_admin_reads_statistics(client, auth_headers) -> None:
    response = await client.get("/admin/statistics", headers=auth_headers(Role.ADMIN))

    assert response.status_code == 200
    body = response.json()
    assert body["total_orders"] == 0
    assert set(body["orders"]) == {"placed", "confirmed", "processing", "shipped", "delivered", "cancelled"}
    assert body["store"] == "memory"
    assert body["durable_store"] is False


@pytest.mark.asyncio
async def test_farmer_submits_inventory(client, auth_headers, app) -> None:
    admin_connection = RecordingConnection()
    app.state.services.registry.register(admin_connection, ADMIN_ROOM)

    response = await client.post(
        "/inventory",
        json={"product": "Cardamom", "quantity_kg": 40, "price_per_kg": 1850},
        headers=auth_headers(Role.FARMER),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Inventory submitted for approval"
    assert body["inventory"]["farmer"] == "demo_farmer"
    assert body["inventory"]["status"] == "pending_approval"
    assert admin_connection.names == ["notification"]


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [Role.CUSTOMER, Role.ADMIN, Role.LOGISTICS])
async def test_only_farmers_submit_inventory(client, auth_headers, role) -> None:
    response = await client.post(
        "/inventory",
        json={"product": "Pepper", "quantity_kg": 5, "price_per_kg": 600},
        headers=auth_headers(role),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("role", "expected"),
    [(Role.LOGISTICS, 200), (Role.ADMIN, 200), (Role.CUSTOMER, 403), (Role.FARMER, 403)],
)
async def test_logistics_routes_roles(client, auth_headers, role, expected) -> None:
    response = await client.get("/logistics/routes", headers=auth_headers(role))

    assert response.status_code == expected
