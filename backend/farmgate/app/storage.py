"""Order and lead persistence backends and startup selection."""
from __future__ import annotations

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..db.base import Base, build_engine, build_session_factory
from ..db.models import LeadRecord, OrderRecord
from .config import StorageSettings
from .errors import DownstreamUnavailableError
from .logging import get_logger
from .models import Lead, LeadStatus, Order, OrderStatus

logger = get_logger("farmgate.storage")


class OrderStore:
    """Read/write contract the order state machine depends on."""

    kind: str = "abstract"
    durable: bool = False

    async def get(self, order_id: str) -> Optional[Order]:  # pragma: no cover - interface
        raise NotImplementedError

    async def save(self, order: Order) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def list_all(self) -> List[Order]:  # pragma: no cover - interface
        raise NotImplementedError

    async def list_for_customer(self, customer_id: str) -> List[Order]:  # pragma: no cover - interface
        raise NotImplementedError

    async def count_by_status(self) -> Dict[str, int]:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryOrderStore(OrderStore):
    """Volatile in-process store; contents are lost on restart."""

    kind = "memory"
    durable = False

    def __init__(self) -> None:
        self._orders: Dict[str, Order] = {}
        self._lock = asyncio.Lock()

    async def get(self, order_id: str) -> Optional[Order]:
        async with self._lock:
            order = self._orders.get(order_id)
            return order.model_copy(deep=True) if order is not None else None

    async def save(self, order: Order) -> None:
        async with self._lock:
            self._orders[order.id] = order.model_copy(deep=True)

    async def list_all(self) -> List[Order]:
        async with self._lock:
            orders = [order.model_copy(deep=True) for order in self._orders.values()]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    async def list_for_customer(self, customer_id: str) -> List[Order]:
        return [order for order in await self.list_all() if order.customer_id == customer_id]

    async def count_by_status(self) -> Dict[str, int]:
        async with self._lock:
            counts = Counter(order.status.value for order in self._orders.values())
        return dict(counts)


class SqlOrderStore(OrderStore):
    """Durable store backed by an async SQLAlchemy engine."""

    kind = "sql"
    durable = True

    def __init__(self, config: StorageSettings) -> None:
        if not config.database_url:
            raise ValueError("A database URL is required for the SQL order store")
        self._config = config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def initialise(self) -> None:
        """Create the engine and make sure the schema exists."""

        engine = build_engine(self._config.database_url, echo=self._config.sqlalchemy_echo)
        try:
            async with engine.begin() as connection:
                await connection.run_sync(Base.metadata.create_all)
        except Exception:
            await engine.dispose()
            raise
        self._engine = engine
        self._session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            raise DownstreamUnavailableError("Order store has not been initialised")
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning("durable_store_operation_failed", error=str(exc))
            raise DownstreamUnavailableError("Order store is unavailable") from exc
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    @staticmethod
    def _to_order(record: OrderRecord) -> Order:
        return Order.model_validate(record.document)

    async def get(self, order_id: str) -> Optional[Order]:
        async with self.session() as session:
            record = await session.get(OrderRecord, order_id)
            return self._to_order(record) if record is not None else None

    async def save(self, order: Order) -> None:
        document = order.model_dump(mode="json")
        async with self.session() as session:
            record = await session.get(OrderRecord, order.id)
            if record is None:
                record = OrderRecord(
                    id=order.id,
                    order_number=order.order_number,
                    customer_id=order.customer_id,
                    status=order.status.value,
                    document=document,
                    created_at=order.created_at,
                )
                session.add(record)
            else:
                record.status = order.status.value
                record.document = document

    async def _select(self, *criteria) -> List[Order]:
        stmt = select(OrderRecord).where(*criteria).order_by(OrderRecord.created_at.desc())
        async with self.session() as session:
            result = await session.execute(stmt)
            return [self._to_order(record) for record in result.scalars().all()]

    async def list_all(self) -> List[Order]:
        return await self._select()

    async def list_for_customer(self, customer_id: str) -> List[Order]:
        return await self._select(OrderRecord.customer_id == customer_id)

    async def count_by_status(self) -> Dict[str, int]:
        stmt = select(OrderRecord.status, func.count()).group_by(OrderRecord.status)
        async with self.session() as session:
            result = await session.execute(stmt)
            return {status: int(count) for status, count in result.all()}

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None


class LeadStore:
    """Read/write contract for captured leads."""

    kind: str = "abstract"

    async def add(self, lead: Lead) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def page(
        self, *, status: Optional[LeadStatus] = None, offset: int = 0, limit: int = 20
    ) -> Tuple[List[Lead], int]:  # pragma: no cover - interface
        """Return up to ``limit`` leads after ``offset`` and the filtered total."""

        raise NotImplementedError


class MemoryLeadStore(LeadStore):
    kind = "memory"

    def __init__(self) -> None:
        self._leads: Dict[str, Lead] = {}
        self._lock = asyncio.Lock()

    async def add(self, lead: Lead) -> None:
        async with self._lock:
            self._leads[lead.id] = lead.model_copy(deep=True)

    async def page(
        self, *, status: Optional[LeadStatus] = None, offset: int = 0, limit: int = 20
    ) -> Tuple[List[Lead], int]:
        async with self._lock:
            leads = [
                lead.model_copy(deep=True)
                for lead in self._leads.values()
                if status is None or lead.status is status
            ]
        leads.sort(key=lambda lead: lead.created_at, reverse=True)
        return leads[offset : offset + limit], len(leads)


class SqlLeadStore(LeadStore):
    """Leads kept in the same database as the durable order store."""

    kind = "sql"

    def __init__(self, orders: SqlOrderStore) -> None:
        self._orders = orders

    async def add(self, lead: Lead) -> None:
        record = LeadRecord(
            id=lead.id,
            status=lead.status.value,
            document=lead.model_dump(mode="json"),
            created_at=lead.created_at,
        )
        async with self._orders.session() as session:
            session.add(record)

    async def page(
        self, *, status: Optional[LeadStatus] = None, offset: int = 0, limit: int = 20
    ) -> Tuple[List[Lead], int]:
        criteria = [LeadRecord.status == status.value] if status is not None else []
        stmt = (
            select(LeadRecord)
            .where(*criteria)
            .order_by(LeadRecord.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(LeadRecord).where(*criteria)
        async with self._orders.session() as session:
            total = int(await session.scalar(count_stmt) or 0)
            result = await session.execute(stmt)
            leads = [Lead.model_validate(record.document) for record in result.scalars().all()]
        return leads, total


async def build_order_store(config: StorageSettings) -> OrderStore:
    """Select the durable store when reachable, else the volatile one."""

    if not config.database_url:
        logger.warning(
            "volatile_store_active",
            reason="no database configured",
            detail="orders are kept in memory and lost on restart",
        )
        return MemoryOrderStore()

    store = SqlOrderStore(config)
    try:
        await store.initialise()
    except Exception as exc:
        logger.warning(
            "volatile_store_active",
            reason="durable store unreachable",
            error=str(exc),
            detail="orders are kept in memory and lost on restart",
        )
        return MemoryOrderStore()

    logger.info("durable_store_active", backend=store.kind)
    return store


def build_lead_store(orders: OrderStore) -> LeadStore:
    """Keep leads next to the orders: durable when the order store is."""

    if isinstance(orders, SqlOrderStore):
        return SqlLeadStore(orders)
    return MemoryLeadStore()


def summarise_statuses(counts: Dict[str, int]) -> Dict[str, int]:
    """Return a count for every status, including those with no orders."""

    return {status.value: int(counts.get(status.value, 0)) for status in OrderStatus}


__all__ = [
    "LeadStore",
    "MemoryLeadStore",
    "MemoryOrderStore",
    "OrderStore",
    "SqlLeadStore",
    "SqlOrderStore",
    "build_lead_store",
    "build_order_store",
    "summarise_statuses",
]
