"""API dependencies."""

from saron.api.dependencies.services import get_dapic_client, get_sales_repository, get_sync_service

__all__ = ["get_dapic_client", "get_sales_repository", "get_sync_service"]
