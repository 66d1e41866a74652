"""Order placement and status routes."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..dependencies import RequireRoles, get_current_identity, get_order_service
from ..models import Order, OrderItem, OrderStatus, OrderTotals, TimelineEntry
from ..orders import OrderService, allowed_transitions
from ..security import Identity, Role

router = APIRouter(prefix="/orders", tags=["orders"])


class OrderResource(BaseModel):
    id: str
    order_number: str
    customer_id: str
    items: List[OrderItem]
    totals: OrderTotals
    status: OrderStatus
    payment_status: str
    delivery_address: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    timeline: List[TimelineEntry]
    next_statuses: List[OrderStatus] = Field(default_factory=list)

    @classmethod
    def from_order(cls, order: Order) -> "OrderResource":
        return cls(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            items=order.items,
            totals=order.totals,
            status=order.status,
            payment_status=order.payment_status.value,
            delivery_address=order.delivery_address,
            created_at=order.created_at,
            updated_at=order.updated_at,
            timeline=order.timeline,
            next_statuses=sorted(allowed_transitions(order.status), key=lambda item: item.value),
        )


class OrderResponse(BaseModel):
    message: Optional[str] = None
    order: OrderResource


class OrdersResponse(BaseModel):
    orders: List[OrderResource]
    total: int


class OrderCreateRequest(BaseModel):
    items: List[OrderItem] = Field(min_length=1)
    delivery_address: Dict[str, Any] = Field(default_factory=dict, alias="deliveryAddress")

    model_config = ConfigDict(populate_by_name=True)


class StatusUpdateRequest(BaseModel):
    status: str
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class CancelRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=500)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    payload: OrderCreateRequest,
    identity: Identity = Depends(RequireRoles(Role.CUSTOMER, Role.ADMIN)),
    orders: OrderService = Depends(get_order_service),
) -> OrderResponse:
    order = await orders.place(payload.items, payload.delivery_address, identity)
    return OrderResponse(message="Order placed successfully", order=OrderResource.from_order(order))


@router.get("", response_model=OrdersResponse)
async def list_orders(
    identity: Identity = Depends(get_current_identity),
    orders: OrderService = Depends(get_order_service),
) -> OrdersResponse:
    visible = await orders.list_orders(identity)
    return OrdersResponse(orders=[OrderResource.from_order(order) for order in visible], total=len(visible))


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    identity: Identity = Depends(get_current_identity),
    orders: OrderService = Depends(get_order_service),
) -> OrderResponse:
    order = await orders.get_for(order_id, identity)
    return OrderResponse(order=OrderResource.from_order(order))


@router.post("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: StatusUpdateRequest,
    identity: Identity = Depends(RequireRoles(Role.ADMIN, Role.LOGISTICS, Role.FARMER)),
    orders: OrderService = Depends(get_order_service),
) -> OrderResponse:
    order = await orders.transition(order_id, payload.status, payload.notes, actor=identity)
    return OrderResponse(message=f"Order is now {order.status.value}", order=OrderResource.from_order(order))


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    payload: CancelRequest | None = None,
    identity: Identity = Depends(RequireRoles(Role.CUSTOMER, Role.ADMIN)),
    orders: OrderService = Depends(get_order_service),
) -> OrderResponse:
    notes = payload.notes if payload is not None else None
    order = await orders.cancel(order_id, identity, notes)
    return OrderResponse(message="Order cancelled", order=OrderResource.from_order(order))
