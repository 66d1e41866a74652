"""Quote-request capture and the admin lead listing."""
from __future__ import annotations

import math
import time
import uuid
from typing import Any, Dict, List, Optional

from .events import NOTIFICATION, EventBus
from .logging import get_logger
from .models import Lead, LeadStatus
from .notifier import NotificationDispatcher
from .storage import LeadStore

logger = get_logger("farmgate.leads")

ESTIMATED_RESPONSE = "24 hours"


def render_quote_email(lead: Lead) -> str:
    products = ", ".join(lead.interested_products) if lead.interested_products else "premium spices"
    return "\n".join(
        [
            f"Thank you {lead.name}!",
            "",
            f"We've received your request for {products}.",
            f"Our team will contact you within {ESTIMATED_RESPONSE} with a personalised quote.",
            f"Monthly quantity: {lead.monthly_quantity or 'Not specified'}",
        ]
    )


class LeadService:
    """Record leads and page through them for administrators."""

    def __init__(
        self,
        *,
        store: LeadStore,
        bus: EventBus,
        notifier: NotificationDispatcher,
        admin_room: str,
    ) -> None:
        self._store = store
        self._bus = bus
        self._notifier = notifier
        self._admin_room = admin_room

    @property
    def store(self) -> LeadStore:
        return self._store

    def attach_store(self, store: LeadStore) -> None:
        self._store = store

    async def capture(
        self,
        *,
        name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        interested_products: Optional[List[str]] = None,
        monthly_quantity: Optional[str] = None,
    ) -> Lead:
        """Store a new lead and send the quote acknowledgement.

        The acknowledgement is best effort; a failing relay does not lose the
        lead.
        """

        lead = Lead(
            id=f"lead_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}",
            name=name,
            email=email,
            phone=phone,
            interested_products=list(interested_products or []),
            monthly_quantity=monthly_quantity,
        )
        await self._store.add(lead)
        logger.info("lead_captured", lead_id=lead.id)

        self._bus.publish(
            NOTIFICATION,
            self._admin_room,
            {"message": f"New lead from {lead.name}", "type": "info", "leadId": lead.id},
        )
        try:
            await self._notifier.send_email(to=lead.email, subject="Your Farmgate quote", body=render_quote_email(lead))
        except Exception:
            logger.warning("side_channel_notification_failed", exc_info=True, lead_id=lead.id)
        return lead

    async def list_leads(
        self,
        *,
        status: Optional[LeadStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        leads, total = await self._store.page(status=status, offset=(page - 1) * limit, limit=limit)
        return {
            "leads": leads,
            "pagination": {
                "current": page,
                "pages": math.ceil(total / limit) if limit else 0,
                "total": total,
            },
        }


__all__ = ["ESTIMATED_RESPONSE", "LeadService", "render_quote_email"]
