"""Order and lead domain models shared by the services and the stores."""
from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Lifecycle status of an order."""

    PLACED = "placed"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class OrderItem(BaseModel):
    product_id: str = Field(min_length=1)
    name: str = Field(default="", max_length=200)
    quantity: int = Field(gt=0)
    unit_price: float = Field(ge=0.0)

    model_config = ConfigDict(extra="ignore")

    @field_validator("product_id", "name", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.unit_price, 2)


class OrderTotals(BaseModel):
    order_total: float
    delivery_charges: float
    final_amount: float
    currency: str = "INR"


class TimelineEntry(BaseModel):
    """One immutable step of an order's status history."""

    status: OrderStatus
    timestamp: datetime
    notes: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Order(BaseModel):
    id: str
    order_number: str
    customer_id: str
    customer_email: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    totals: OrderTotals
    status: OrderStatus = OrderStatus.PLACED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_address: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    timeline: List[TimelineEntry] = Field(default_factory=list)

    @property
    def last_entry(self) -> TimelineEntry | None:
        return self.timeline[-1] if self.timeline else None


class LeadStatus(str, enum.Enum):
    NEW = "new"
    CONTACTED = "contacted"
    CONVERTED = "converted"
    CLOSED = "closed"


class Lead(BaseModel):
    """Quote request captured from the public site."""

    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    interested_products: List[str] = Field(default_factory=list)
    monthly_quantity: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    created_at: datetime = Field(default_factory=utcnow)


__all__ = [
    "Lead",
    "LeadStatus",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderTotals",
    "PaymentStatus",
    "TimelineEntry",
    "utcnow",
]
