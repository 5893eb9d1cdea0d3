"""Schemas for Sales API."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from saron.domain.entities.sales import SyncResult


class SyncScope(str, Enum):
    """Sync window options."""

    TODAY = "today"
    MONTH = "month"
    FULL = "full"
    CUSTOM = "custom"


class SyncRequest(BaseModel):
    """Request body for sync trigger."""

    scope: SyncScope = Field(
        default=SyncScope.TODAY,
        description="Janela: today, month, full (desde 2024-01-01) ou custom",
    )
    store_id: Optional[str] = Field(
        None,
        description="Loja específica (saron1, saron2, saron3). Padrão: todas",
    )
    start_date: Optional[date] = Field(None, description="Data inicial (scope=custom)")
    end_date: Optional[date] = Field(None, description="Data final (scope=custom)")

    @model_validator(mode="after")
    def check_custom_window(self) -> "SyncRequest":
        if self.scope == SyncScope.CUSTOM:
            if self.start_date is None or self.end_date is None:
                raise ValueError("start_date e end_date são obrigatórios para scope=custom")
            if self.start_date > self.end_date:
                raise ValueError("start_date deve ser anterior ou igual a end_date")
        return self


class SyncResponse(BaseModel):
    """Sync trigger response with per-store results."""

    results: List[SyncResult]
    total_sales: int
    succeeded: int
    failed: int


class SaleItemResponse(BaseModel):
    """Sale item details."""

    model_config = ConfigDict(from_attributes=True)

    product_code: str
    product_description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal


class SaleResponse(BaseModel):
    """Sale details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    sale_code: str
    sale_date: date
    total_value: Decimal
    seller_name: str
    client_name: Optional[str] = None
    store_id: str
    status: str
    payment_method: Optional[str] = None
    items: List[SaleItemResponse] = Field(default_factory=list)


class SaleListResponse(BaseModel):
    """Paginated list of sales."""

    items: List[SaleResponse]
    total: int
    page: int
    per_page: int
    pages: int


class StoreSummary(BaseModel):
    """Sales totals of one store."""

    store_id: str
    sales_count: int
    total_value: Decimal
