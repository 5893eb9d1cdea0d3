"""Database base configuration and session management."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from saron.core.config import get_settings
from saron.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine with connection resilience settings.

    SQLite URLs get no pool sizing (in-memory databases use a single
    connection pool that does not accept it).
    """
    engine_kwargs: dict[str, Any] = {"echo": echo}
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_pre_ping=True,  # Check connection health before using
            pool_recycle=300,  # Recycle connections after 5 minutes
            pool_timeout=30,
            pool_size=5,
            max_overflow=10,
        )
    return create_async_engine(database_url, **engine_kwargs)


settings = get_settings()
engine = build_engine(settings.database_url, echo=settings.debug)

# Create session factory
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@asynccontextmanager
async def get_session(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session with commit on success and rollback on error."""
    factory = session_factory or SessionLocal
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@retry(
    stop=stop_after_attempt(settings.database_connect_retries),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((OperationalError, OSError)),
    reraise=True,
)
async def init_db(db_engine: Optional[AsyncEngine] = None) -> None:
    """
    Create database tables.

    The first connection is retried with backoff so the application can
    start before the database accepts connections.
    """
    # Ensure models are registered on the metadata
    from saron.infrastructure.database import models  # noqa: F401

    target = db_engine or engine
    async with target.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized")
