"""SQLAlchemy database models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from saron.core.date_helpers import utc_now
from saron.infrastructure.database.base import Base


def _uuid() -> str:
    return str(uuid4())


class Sale(Base):
    """PDV sale mirrored from Dapic.

    Rows are owned by the sales sync: a sync run for a (store, window)
    deletes and re-creates every sale of that store dated in the window.
    """

    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    sale_code: Mapped[str] = mapped_column(String(100), nullable=False)
    sale_date: Mapped[date] = mapped_column(nullable=False)
    total_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    seller_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    store_id: Mapped[str] = mapped_column(String(20), nullable=False)  # saron1, saron2, saron3
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Finalizado")
    payment_method: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    items: Mapped[list["SaleItem"]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_sales_store_date", "store_id", "sale_date"),
        Index("idx_sales_store_code", "store_id", "sale_code"),
        Index("idx_sales_seller", "seller_name"),
    )

    def __repr__(self) -> str:
        return f"<Sale(id={self.id}, store={self.store_id}, code={self.sale_code}, date={self.sale_date})>"


class SaleItem(Base):
    """Line item of a sale."""

    __tablename__ = "sale_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    sale_id: Mapped[str] = mapped_column(
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_code: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    product_description: Mapped[str] = mapped_column(String(300), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=Decimal("1"))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    sale: Mapped["Sale"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<SaleItem(id={self.id}, sale={self.sale_id}, product={self.product_code})>"
