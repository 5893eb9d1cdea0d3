"""Port interfaces for sales persistence.

The sync service depends on this interface only; the SQLAlchemy
implementation lives in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from saron.domain.entities.sales import SaleData, SaleItemData


class ISalesRepository(ABC):
    """Port for sales data access."""

    @abstractmethod
    async def delete_sales_by_period(self, store_id: str, start_date: date, end_date: date) -> int:
        """Delete every sale (and its items) of a store dated within [start_date, end_date].

        Returns:
            Number of sales deleted
        """
        ...

    @abstractmethod
    async def create_sale_with_items(self, sale: SaleData, items: list[SaleItemData]) -> Any:
        """Persist a sale together with its items as one unit.

        Returns:
            The stored sale
        """
        ...
