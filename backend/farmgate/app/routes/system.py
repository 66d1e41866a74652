"""Service health."""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from .. import __version__
from ..dependencies import get_services
from ..services import Services

router = APIRouter(tags=["system"])

_STARTED_AT = time.monotonic()


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    uptime_seconds: float
    environment: str
    version: str
    store: str
    durable_store: bool
    scheduler_running: bool
    jobs: List[str]


@router.get("/health", response_model=HealthResponse)
async def health(services: Services = Depends(get_services)) -> HealthResponse:
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=round(time.monotonic() - _STARTED_AT, 3),
        environment=services.settings.env,
        version=__version__,
        store=services.store.kind,
        durable_store=services.store.durable,
        scheduler_running=services.scheduler.running,
        jobs=services.scheduler.job_names,
    )
