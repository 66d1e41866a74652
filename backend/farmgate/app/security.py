"""Session token issuance, verification and role checks."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Collection

import jwt

from .config import AuthSettings
from .errors import ForbiddenError, InvalidRoleError, InvalidTokenError, MissingTokenError

_REQUIRED_CLAIMS = ("sub", "role", "iat", "exp")


class Role(str, enum.Enum):
    """Role carried by every authenticated identity."""

    CUSTOMER = "customer"
    FARMER = "farmer"
    ADMIN = "admin"
    LOGISTICS = "logistics"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: "Role | str | None") -> "Role":
        """Return the member matching ``value`` or raise :class:`InvalidRoleError`."""

        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            raise InvalidRoleError()
        try:
            return cls(value)
        except ValueError:
            raise InvalidRoleError() from None


@dataclass(frozen=True)
class Identity:
    """Authenticated principal reconstructed from token claims."""

    id: str
    display_name: str
    email: str
    role: Role

    def as_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.display_name,
            "email": self.email,
            "role": self.role.value,
        }


@dataclass(frozen=True)
class IssuedToken:
    token: str
    identity: Identity
    issued_at: datetime
    expires_at: datetime


class CredentialService:
    """Mint and verify self-contained HMAC signed session tokens."""

    def __init__(self, config: AuthSettings) -> None:
        self._config = config

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def demo_identity(self, role: Role | str) -> Identity:
        resolved = Role.parse(role)
        return Identity(
            id=f"demo_{resolved.value}",
            display_name=f"Demo {resolved.display_name}",
            email=f"demo-{resolved.value}@{self._config.demo_email_domain}",
            role=resolved,
        )

    def issue(self, role: Role | str) -> IssuedToken:
        """Issue a token for the demo identity bound to ``role``."""

        return self.issue_for(self.demo_identity(role))

    def issue_for(self, identity: Identity, *, ttl_seconds: int | None = None) -> IssuedToken:
        """Issue a token embedding every claim needed to rebuild ``identity``."""

        issued_at = self._now()
        ttl = self._config.token_ttl_seconds if ttl_seconds is None else ttl_seconds
        expires_at = issued_at + timedelta(seconds=ttl)
        payload: dict[str, Any] = {
            "sub": identity.id,
            "role": identity.role.value,
            "name": identity.display_name,
            "email": identity.email,
            "type": "access",
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._config.jwt_secret, algorithm=self._config.algorithm)
        return IssuedToken(token=token, identity=identity, issued_at=issued_at, expires_at=expires_at)

    def verify(self, token: str | None) -> Identity:
        """Return the identity encoded in ``token``.

        Raises :class:`MissingTokenError` when no token is supplied and
        :class:`InvalidTokenError` for malformed, tampered or expired tokens.
        """

        if token is None or not token.strip():
            raise MissingTokenError()

        try:
            claims = jwt.decode(
                token.strip(),
                self._config.jwt_secret,
                algorithms=[self._config.algorithm],
                options={"require": list(_REQUIRED_CLAIMS)},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError() from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise InvalidTokenError("Token subject is missing")
        try:
            role = Role.parse(claims.get("role"))
        except InvalidRoleError as exc:
            raise InvalidTokenError("Token carries an unknown role") from exc

        name = claims.get("name")
        email = claims.get("email")
        return Identity(
            id=subject.strip(),
            display_name=name if isinstance(name, str) and name else f"Demo {role.display_name}",
            email=email if isinstance(email, str) else "",
            role=role,
        )


def authorize(identity: Identity, allowed_roles: Collection[Role] | None) -> None:
    """Reject ``identity`` unless its role is in ``allowed_roles``.

    An empty or missing role set admits every authenticated identity.
    """

    if not allowed_roles:
        return
    if identity.role not in allowed_roles:
        raise ForbiddenError()


__all__ = [
    "CredentialService",
    "Identity",
    "IssuedToken",
    "Role",
    "authorize",
]
