"""Database infrastructure."""

from saron.infrastructure.database.base import Base, get_session, init_db
from saron.infrastructure.database.models import Sale, SaleItem

__all__ = [
    "Base",
    "get_session",
    "init_db",
    "Sale",
    "SaleItem",
]
