"""Administrator statistics."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import RequireRoles, get_services
from ..security import Identity, Role
from ..services import Services
from ..storage import summarise_statuses

router = APIRouter(prefix="/admin", tags=["admin"])


class StatisticsResponse(BaseModel):
    orders: Dict[str, int]
    total_orders: int
    live_connections: int
    rooms: int
    store: str
    durable_store: bool
    jobs: Dict[str, Dict[str, Any]]


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(
    identity: Identity = Depends(RequireRoles(Role.ADMIN)),
    services: Services = Depends(get_services),
) -> StatisticsResponse:
    counts = summarise_statuses(await services.store.count_by_status())
    return StatisticsResponse(
        orders=counts,
        total_orders=sum(counts.values()),
        live_connections=len(services.registry),
        rooms=len(services.registry.rooms()),
        store=services.store.kind,
        durable_store=services.store.durable,
        jobs=services.scheduler.stats(),
    )
