"""Main router for API v1.

This router combines all v1 endpoints under /api/v1 prefix.
"""

from fastapi import APIRouter

from saron.api.v1.dapic.routes import router as dapic_router
from saron.api.v1.sales.routes import router as sales_router

# Create main v1 router
api_router = APIRouter()

# Live ERP reads
api_router.include_router(dapic_router)

# Synced sales and sync triggers
api_router.include_router(sales_router)
