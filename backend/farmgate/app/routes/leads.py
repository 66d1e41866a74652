"""Public lead capture and the admin lead view."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..dependencies import RequireRoles, get_services
from ..leads import ESTIMATED_RESPONSE
from ..models import LeadStatus
from ..security import Identity, Role
from ..services import Services

router = APIRouter(prefix="/leads", tags=["leads"])


class LeadCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=32)
    interested_products: List[str] = Field(
        default_factory=list, alias="interestedSpices", max_length=50
    )
    monthly_quantity: Optional[str] = Field(default=None, alias="monthlyQuantity", max_length=120)

    model_config = ConfigDict(populate_by_name=True)


class LeadCreatedResponse(BaseModel):
    message: str
    lead_id: str
    estimated_response: str


class LeadResource(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    interested_products: List[str]
    monthly_quantity: Optional[str] = None
    status: LeadStatus
    created_at: datetime


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class LeadsResponse(BaseModel):
    leads: List[LeadResource]
    pagination: Pagination


@router.post("", response_model=LeadCreatedResponse, status_code=status.HTTP_201_CREATED)
async def capture_lead(payload: LeadCreateRequest, services: Services = Depends(get_services)) -> LeadCreatedResponse:
    lead = await services.leads.capture(
        name=payload.name,
        email=str(payload.email) if payload.email else None,
        phone=payload.phone,
        interested_products=payload.interested_products,
        monthly_quantity=payload.monthly_quantity,
    )
    return LeadCreatedResponse(
        message="Lead captured successfully",
        lead_id=lead.id,
        estimated_response=ESTIMATED_RESPONSE,
    )


@router.get("", response_model=LeadsResponse)
async def list_leads(
    status_filter: Literal["all", "new", "contacted", "converted", "closed"] = Query(default="all", alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    identity: Identity = Depends(RequireRoles(Role.ADMIN)),
    services: Services = Depends(get_services),
) -> LeadsResponse:
    """Page through captured leads, newest first."""

    selected = None if status_filter == "all" else LeadStatus(status_filter)
    result = await services.leads.list_leads(status=selected, page=page, limit=limit)
    return LeadsResponse(
        leads=[LeadResource.model_validate(lead.model_dump()) for lead in result["leads"]],
        pagination=Pagination(**result["pagination"]),
    )
