"""Domain services."""

from saron.domain.services.dapic_transformer import DapicSaleTransformer, RecordNormalizationError
from saron.domain.services.sales_sync_service import SalesSyncService

__all__ = ["DapicSaleTransformer", "RecordNormalizationError", "SalesSyncService"]
