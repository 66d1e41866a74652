"""Database helpers for the durable order store."""
from __future__ import annotations

from .base import AsyncEngine, AsyncSession, Base, build_engine, build_session_factory, metadata
from .models import LeadRecord, OrderRecord

__all__ = [
    "AsyncEngine",
    "AsyncSession",
    "Base",
    "LeadRecord",
    "OrderRecord",
    "build_engine",
    "build_session_factory",
    "metadata",
]
