"""Logistics views over in-flight orders."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import RequireRoles, get_order_service
from ..models import OrderStatus
from ..orders import OrderService
from ..security import Identity, Role

router = APIRouter(prefix="/logistics", tags=["logistics"])

_ACTIVE_STATUSES = {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED}


class ShipmentResource(BaseModel):
    order_id: str
    order_number: str
    status: OrderStatus
    destination: Dict[str, Any]
    updated_at: datetime


class RoutesResponse(BaseModel):
    shipments: List[ShipmentResource]
    total: int


@router.get("/routes", response_model=RoutesResponse)
async def list_routes(
    identity: Identity = Depends(RequireRoles(Role.LOGISTICS, Role.ADMIN)),
    orders: OrderService = Depends(get_order_service),
) -> RoutesResponse:
    """Return confirmed, processing and shipped orders awaiting delivery."""

    shipments = [
        ShipmentResource(
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            destination=order.delivery_address,
            updated_at=order.updated_at,
        )
        for order in await orders.list_orders(identity)
        if order.status in _ACTIVE_STATUSES
    ]
    return RoutesResponse(shipments=shipments, total=len(shipments))
