"""FastAPI application for Saron."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from saron.api.v1.router import api_router as v1_router
from saron.core.config import get_settings
from saron.core.logging import configure_logging, get_logger
from saron.core.scheduler import SalesSyncScheduler
from saron.domain.services.sales_sync_service import SalesSyncService
from saron.infrastructure.database.base import init_db
from saron.infrastructure.database.sales_repository import SalesRepository
from saron.infrastructure.external_apis.dapic_client import DapicAPIClient

configure_logging()
logger = get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    # Startup
    logger.info("Starting application...")
    await init_db()

    # One client and one sync service per process: they own the token
    # cache and the sync progress map
    app.state.dapic_client = DapicAPIClient()
    app.state.sales_repository = SalesRepository()
    app.state.sync_service = SalesSyncService(app.state.dapic_client, app.state.sales_repository)

    scheduler = None
    if settings.scheduler_enabled:
        logger.info("Starting scheduler for sales sync...")
        scheduler = SalesSyncScheduler(app.state.sync_service)
        scheduler.start()
    app.state.scheduler = scheduler

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if scheduler is not None:
        scheduler.stop()
    await app.state.dapic_client.close()


# Create FastAPI app
app = FastAPI(
    title="Saron API",
    description="API for Saron - store dashboard backed by the Dapic ERP",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API v1 router
app.include_router(v1_router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/scheduler/status")
def scheduler_status() -> dict:
    """Next run of each sync job, or disabled."""
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is None:
        return {"running": False, "jobs": {}}
    return {
        "running": scheduler.scheduler.running,
        "timezone": scheduler.timezone,
        "jobs": scheduler.next_run_times(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
