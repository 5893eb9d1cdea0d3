"""Sales domain entities."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SyncStatus(str, Enum):
    """Lifecycle of a sync run."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class SaleItemData(BaseModel):
    """Line item of a normalized sale."""

    product_code: str = Field(default="", description="ERP product code")
    product_description: str = Field(..., description="Product description")
    quantity: Decimal = Field(default=Decimal("1"), description="Quantity sold")
    unit_price: Decimal = Field(default=Decimal("0"), description="Unit price")
    total_price: Decimal = Field(default=Decimal("0"), description="Line total")


class SaleData(BaseModel):
    """Sale normalized from an ERP record, ready to persist."""

    sale_code: str = Field(..., min_length=1, description="ERP sale code")
    sale_date: date = Field(..., description="Closing/issue date")
    total_value: Decimal = Field(default=Decimal("0"), description="Net sale value")
    seller_name: str = Field(..., description="Seller name")
    client_name: Optional[str] = Field(None, description="Client name")
    store_id: str = Field(..., description="Store the sale belongs to")
    status: str = Field(default="Finalizado", description="ERP sale status")
    payment_method: Optional[str] = Field(None, description="Payment method")


class SyncResult(BaseModel):
    """Outcome of one store sync run."""

    success: bool
    store: str
    sales_count: int = 0
    error: Optional[str] = None
    duplicates_skipped: int = 0
    records_skipped: int = 0
    deleted_count: int = 0


class SyncProgress(BaseModel):
    """In-memory state of the sync run for a (store, window) key."""

    store: str
    start_date: date
    end_date: date
    status: SyncStatus
    sales_count: int = 0
    duplicates_skipped: int = 0
    records_skipped: int = 0
    error: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None
