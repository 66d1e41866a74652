"""Common FastAPI dependency helpers."""
from __future__ import annotations

from typing import Callable

from fastapi import Depends
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .logging import bind_contextvars
from .orders import OrderService
from .security import Identity, Role, authorize
from .services import Services

_bearer_scheme = HTTPBearer(auto_error=False)


def get_services(connection: HTTPConnection) -> Services:
    """Return the component graph attached to the running application."""

    return connection.app.state.services


def get_order_service(services: Services = Depends(get_services)) -> OrderService:
    return services.orders


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    services: Services = Depends(get_services),
) -> Identity:
    """Verify the bearer token; 401 when absent, 403 when invalid."""

    token = credentials.credentials if credentials is not None else None
    identity = services.credentials.verify(token)
    bind_contextvars(identity=identity.id, role=identity.role.value)
    return identity


def RequireRoles(*roles: Role | str) -> Callable[..., Identity]:
    """Ensure the current identity carries one of ``roles``."""

    if not roles:
        raise ValueError("At least one role must be provided")
    required = frozenset(Role.parse(role) for role in roles)

    async def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        authorize(identity, required)
        return identity

    return dependency


__all__ = [
    "RequireRoles",
    "get_current_identity",
    "get_order_service",
    "get_services",
]
