"""Service dependencies built once in the application lifespan."""

from fastapi import Request

from saron.domain.services.sales_sync_service import SalesSyncService
from saron.infrastructure.database.sales_repository import SalesRepository
from saron.infrastructure.external_apis.dapic_client import DapicAPIClient


def get_dapic_client(request: Request) -> DapicAPIClient:
    """Shared Dapic client (one token cache per process)."""
    return request.app.state.dapic_client


def get_sales_repository(request: Request) -> SalesRepository:
    """Shared sales repository."""
    return request.app.state.sales_repository


def get_sync_service(request: Request) -> SalesSyncService:
    """Shared sync service (one progress map per process)."""
    return request.app.state.sync_service
