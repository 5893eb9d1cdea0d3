"""SQLAlchemy implementation of the sales persistence port."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from saron.core.logging import get_logger
from saron.domain.entities.sales import SaleData, SaleItemData
from saron.domain.ports import ISalesRepository
from saron.infrastructure.database.base import SessionLocal, get_session
from saron.infrastructure.database.models import Sale, SaleItem

logger = get_logger(__name__)


class SalesRepository(ISalesRepository):
    """Sales persistence backed by an async SQLAlchemy session factory.

    Every public method runs in its own session/transaction, so a failed
    insert only rolls back that sale.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self.session_factory = session_factory or SessionLocal

    def _filters(
        self,
        store_id: Optional[str],
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> list[Any]:
        conditions: list[Any] = []
        if store_id:
            conditions.append(Sale.store_id == store_id)
        if start_date:
            conditions.append(Sale.sale_date >= start_date)
        if end_date:
            conditions.append(Sale.sale_date <= end_date)
        return conditions

    # ============================================
    # Sync operations
    # ============================================

    async def delete_sales_by_period(self, store_id: str, start_date: date, end_date: date) -> int:
        """
        Delete the sales of a store dated within [start_date, end_date].

        Items are removed first in the same transaction, so the delete does
        not depend on the database enforcing ON DELETE CASCADE.
        """
        conditions = self._filters(store_id, start_date, end_date)
        sale_ids = select(Sale.id).where(*conditions)

        async with get_session(self.session_factory) as session:
            await session.execute(delete(SaleItem).where(SaleItem.sale_id.in_(sale_ids)))
            result = await session.execute(delete(Sale).where(*conditions))

        deleted = result.rowcount or 0
        logger.debug("Deleted sales", store=store_id, start=str(start_date), end=str(end_date), deleted=deleted)
        return deleted

    async def create_sale_with_items(self, sale: SaleData, items: list[SaleItemData]) -> Sale:
        """Insert a sale and its items in one transaction."""
        record = Sale(**sale.model_dump())
        record.items = [SaleItem(**item.model_dump()) for item in items]

        async with get_session(self.session_factory) as session:
            session.add(record)
            await session.flush()

        return record

    # ============================================
    # Read side
    # ============================================

    async def list_sales(
        self,
        store_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Sale]:
        """List stored sales, newest first, with their items."""
        stmt = (
            select(Sale)
            .where(*self._filters(store_id, start_date, end_date))
            .order_by(Sale.sale_date.desc(), Sale.sale_code)
            .limit(limit)
            .offset(offset)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count_sales(
        self,
        store_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> int:
        """Count stored sales matching the filters."""
        stmt = select(func.count(Sale.id)).where(*self._filters(store_id, start_date, end_date))
        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    async def summarize_by_store(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[dict[str, Any]]:
        """
        Aggregate sales count and total value per store.

        Returns:
            List of {"store_id", "sales_count", "total_value"} ordered by store
        """
        stmt = (
            select(
                Sale.store_id,
                func.count(Sale.id),
                func.coalesce(func.sum(Sale.total_value), 0),
            )
            .where(*self._filters(None, start_date, end_date))
            .group_by(Sale.store_id)
            .order_by(Sale.store_id)
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()

        return [
            {
                "store_id": store_id,
                "sales_count": count,
                "total_value": Decimal(str(total)),
            }
            for store_id, count, total in rows
        ]
