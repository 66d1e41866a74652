"""Authentication routes."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_current_identity, get_services
from ..errors import ForbiddenError
from ..logging import get_logger
from ..security import Identity
from ..services import Services

logger = get_logger("farmgate.api.auth")
router = APIRouter(prefix="/auth", tags=["auth"])


class DemoLoginRequest(BaseModel):
    role: str | None = None


class UserResource(BaseModel):
    id: str
    name: str
    email: str
    role: str

    @classmethod
    def from_identity(cls, identity: Identity) -> "UserResource":
        return cls.model_validate(identity.as_dict())


class LoginResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResource


@router.post("/demo-login", response_model=LoginResponse)
async def demo_login(payload: DemoLoginRequest, services: Services = Depends(get_services)) -> LoginResponse:
    """Issue a session token for the demo identity of the requested role."""

    if not services.settings.auth.demo_login_enabled:
        raise ForbiddenError("Demo login is disabled")
    issued = services.credentials.issue(payload.role)
    logger.info("demo_login", user=issued.identity.id, role=issued.identity.role.value)
    return LoginResponse(
        message="Demo login successful",
        token=issued.token,
        expires_at=issued.expires_at,
        user=UserResource.from_identity(issued.identity),
    )


@router.get("/me", response_model=UserResource)
async def read_current_identity(identity: Identity = Depends(get_current_identity)) -> UserResource:
    return UserResource.from_identity(identity)
