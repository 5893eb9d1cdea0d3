"""Domain entities."""

from saron.domain.entities.sales import (
    SaleData,
    SaleItemData,
    SyncProgress,
    SyncResult,
    SyncStatus,
)

__all__ = ["SaleData", "SaleItemData", "SyncProgress", "SyncResult", "SyncStatus"]
