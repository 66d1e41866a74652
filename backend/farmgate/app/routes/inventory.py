"""Farmer inventory submissions."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ..dependencies import RequireRoles, get_services
from ..events import NOTIFICATION
from ..logging import get_logger
from ..orders import ADMIN_ROOM
from ..security import Identity, Role
from ..services import Services

logger = get_logger("farmgate.api.inventory")
router = APIRouter(prefix="/inventory", tags=["inventory"])


class InventorySubmission(BaseModel):
    product: str = Field(min_length=1, max_length=120)
    quantity_kg: float = Field(gt=0)
    price_per_kg: float = Field(ge=0)
    harvest_date: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class InventoryResource(InventorySubmission):
    id: str
    farmer: str
    status: str = "pending_approval"
    admin_approved: bool = False
    created_at: datetime


class InventoryResponse(BaseModel):
    message: str
    inventory: InventoryResource


@router.post("", response_model=InventoryResponse, status_code=status.HTTP_201_CREATED)
async def submit_inventory(
    payload: InventorySubmission,
    identity: Identity = Depends(RequireRoles(Role.FARMER)),
    services: Services = Depends(get_services),
) -> InventoryResponse:
    """Record a submission for admin approval and alert the admin room."""

    inventory = InventoryResource(
        **payload.model_dump(),
        id=f"inv_{uuid.uuid4().hex[:12]}",
        farmer=identity.id,
        created_at=datetime.now(timezone.utc),
    )
    services.bus.publish(
        NOTIFICATION,
        ADMIN_ROOM,
        {
            "message": f"New inventory submission from {identity.display_name}",
            "type": "info",
            "inventoryId": inventory.id,
        },
    )
    logger.info("inventory_submitted", inventory_id=inventory.id, farmer=identity.id)
    return InventoryResponse(message="Inventory submitted for approval", inventory=inventory)
