"""Order placement and the status state machine."""
from __future__ import annotations

import asyncio
import secrets
import string
import time
import uuid
import weakref
from typing import Any, Awaitable, Dict, FrozenSet, Iterable, List, Mapping

from .config import OrderSettings
from .errors import ForbiddenError, InvalidTransitionError, NotFoundError
from .events import NOTIFICATION, ORDER_STATUS_UPDATE, EventBus
from .logging import get_logger
from .models import Order, OrderItem, OrderStatus, OrderTotals, TimelineEntry, utcnow
from .notifier import NotificationDispatcher
from .security import Identity, Role
from .storage import OrderStore

logger = get_logger("farmgate.orders")

ADMIN_ROOM = "demo_admin"

TRANSITIONS: Mapping[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)

_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase


def allowed_transitions(status: OrderStatus) -> FrozenSet[OrderStatus]:
    return TRANSITIONS[status]


def check_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise :class:`InvalidTransitionError` unless ``current -> target`` is an edge."""

    if current in TERMINAL_STATUSES:
        raise InvalidTransitionError(
            f"Order is {current.value} and can no longer change status",
            current=current.value,
            target=target.value,
        )
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move order from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )


def generate_order_number(prefix: str) -> str:
    """Return ``prefix`` + last six digits of epoch millis + three base36 chars."""

    millis = str(int(time.time() * 1000))[-6:]
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(3))
    return f"{prefix}{millis}{suffix}"


class OrderService:
    """Create orders and drive them through the status graph.

    Transitions on the same order are serialised with a per-order lock so the
    timeline always ends with the current status.
    """

    def __init__(
        self,
        *,
        store: OrderStore,
        bus: EventBus,
        notifier: NotificationDispatcher,
        config: OrderSettings,
    ) -> None:
        self._store = store
        self._bus = bus
        self._notifier = notifier
        self._config = config
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @property
    def store(self) -> OrderStore:
        return self._store

    def attach_store(self, store: OrderStore) -> None:
        self._store = store

    def _lock_for(self, order_id: str) -> asyncio.Lock:
        lock = self._locks.get(order_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[order_id] = lock
        return lock

    def _compute_totals(self, items: List[OrderItem]) -> OrderTotals:
        order_total = round(sum(item.line_total for item in items), 2)
        delivery = round(self._config.delivery_charge, 2) if items else 0.0
        return OrderTotals(
            order_total=order_total,
            delivery_charges=delivery,
            final_amount=round(order_total + delivery, 2),
            currency=self._config.currency,
        )

    async def _notify_safely(self, operation: Awaitable[Any], **context: Any) -> None:
        try:
            await operation
        except Exception:
            logger.warning("side_channel_notification_failed", exc_info=True, **context)

    async def place(
        self,
        items: Iterable[OrderItem | Dict[str, Any]],
        delivery_address: Dict[str, Any] | None,
        customer: Identity,
    ) -> Order:
        """Create an order in ``placed`` with its seed timeline entry."""

        parsed = [item if isinstance(item, OrderItem) else OrderItem.model_validate(item) for item in items]
        now = utcnow()
        order = Order(
            id=f"order_{uuid.uuid4().hex[:16]}",
            order_number=generate_order_number(self._config.number_prefix),
            customer_id=customer.id,
            customer_email=customer.email or None,
            items=parsed,
            totals=self._compute_totals(parsed),
            status=OrderStatus.PLACED,
            delivery_address=dict(delivery_address or {}),
            created_at=now,
            updated_at=now,
            timeline=[TimelineEntry(status=OrderStatus.PLACED, timestamp=now, notes="Order placed successfully")],
        )
        await self._store.save(order)
        logger.info("order_placed", order_id=order.id, order_number=order.order_number, customer=customer.id)

        self._bus.publish(
            NOTIFICATION,
            ADMIN_ROOM,
            {
                "message": f"New order {order.order_number} from {customer.display_name}",
                "type": "info",
                "orderId": order.id,
            },
        )
        await self._notify_safely(
            self._notifier.send_email(
                to=order.customer_email,
                subject=f"Order {order.order_number} placed",
                body=f"Thank you for your order. Amount due: {order.totals.final_amount} {order.totals.currency}.",
            ),
            order_id=order.id,
        )
        return order

    async def get(self, order_id: str) -> Order:
        order = await self._store.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def get_for(self, order_id: str, identity: Identity) -> Order:
        """Return the order when ``identity`` may see it."""

        order = await self.get(order_id)
        if identity.role in (Role.ADMIN, Role.LOGISTICS):
            return order
        if identity.role is Role.CUSTOMER and order.customer_id == identity.id:
            return order
        raise ForbiddenError()

    async def list_orders(self, identity: Identity) -> List[Order]:
        if identity.role is Role.CUSTOMER:
            return await self._store.list_for_customer(identity.id)
        if identity.role in (Role.ADMIN, Role.LOGISTICS):
            return await self._store.list_all()
        return []

    async def transition(
        self,
        order_id: str,
        new_status: OrderStatus | str,
        notes: str | None = None,
        *,
        actor: Identity | None = None,
    ) -> Order:
        """Apply one status change, record it and notify the customer."""

        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise InvalidTransitionError(f"Unknown order status '{new_status}'") from None

        async with self._lock_for(order_id):
            current = await self.get(order_id)
            check_transition(current.status, target)

            timestamp = utcnow()
            previous = current.last_entry
            if previous is not None and timestamp < previous.timestamp:
                timestamp = previous.timestamp

            updated = current.model_copy(deep=True)
            updated.timeline.append(TimelineEntry(status=target, timestamp=timestamp, notes=notes))
            updated.status = target
            updated.updated_at = timestamp
            await self._store.save(updated)

            logger.info(
                "order_transitioned",
                order_id=order_id,
                previous=current.status.value,
                status=target.value,
                actor=actor.id if actor else None,
            )
            self._bus.publish(
                ORDER_STATUS_UPDATE,
                updated.customer_id,
                {
                    "orderId": updated.id,
                    "orderNumber": updated.order_number,
                    "status": target.value,
                    "message": f"Your order is now {target.value}",
                },
            )

        await self._notify_safely(
            self._notifier.send_email(
                to=updated.customer_email,
                subject=f"Order {updated.order_number} is now {target.value}",
                body=notes or f"Your order is now {target.value}.",
            ),
            order_id=order_id,
        )
        phone = updated.delivery_address.get("phone")
        if isinstance(phone, str) and phone.strip():
            await self._notify_safely(
                self._notifier.send_sms(
                    phone=phone.strip(),
                    message=f"Farmgate: order {updated.order_number} is now {target.value}.",
                ),
                order_id=order_id,
            )
        return updated

    async def cancel(self, order_id: str, identity: Identity, notes: str | None = None) -> Order:
        """Cancel on behalf of the owning customer or an admin."""

        order = await self.get(order_id)
        if identity.role is not Role.ADMIN and order.customer_id != identity.id:
            raise ForbiddenError()
        return await self.transition(
            order_id,
            OrderStatus.CANCELLED,
            notes or f"Cancelled by {identity.display_name}",
            actor=identity,
        )


__all__ = [
    "ADMIN_ROOM",
    "OrderService",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "allowed_transitions",
    "check_transition",
    "generate_order_number",
]
