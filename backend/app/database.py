"""
Project Gallery Backend — Database Handle & Session Management
================================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   `Database` owns one engine (connection pool) and one session factory.
       The application factory creates it, stores it on `app.state`, and
       the lifespan handler disposes it at shutdown. Route handlers receive
       a per-request session through `get_db_session`, which commits on
       success and rolls back on error.
Who:   Application factory (lifecycle), routes (sessions), tests (direct use).

Connection model:
    One pooled engine per process. Each request acquires a session, issues
    its statements serially and releases the connection. Multi-step
    operations (cascade delete, image replace) are not wrapped in a
    cross-request lock; services commit at the points where ordering
    against file-system side effects matters.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import Settings

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata)."""
    pass


class Database:
    """
    Lifecycle-managed handle around the async engine.

    Creating the handle does not open a connection; the pool connects
    lazily on first use. `wait_until_ready()` is the startup probe.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: AsyncEngine = create_async_engine(
            settings.database_url,
            **self._engine_options(settings),
        )
        # expire_on_commit=False: services read attributes after commit
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @staticmethod
    def _engine_options(settings: Settings) -> dict:
        options = {"echo": settings.log_level == "DEBUG"}
        if not settings.is_sqlite:
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )
        return options

    async def create_all(self) -> None:
        """Create any missing tables registered on `Base.metadata`."""
        # Import registers the models with Base.metadata
        from app import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def ping(self) -> None:
        """Run SELECT 1; raises whatever the driver raises."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def wait_until_ready(self) -> None:
        """
        Probe the database at startup, backing off between attempts.

        Raises the last connection error once attempts are exhausted.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.db_connect_attempts),
            wait=wait_exponential_jitter(
                initial=self.settings.db_connect_min_wait,
                max=self.settings.db_connect_max_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await self.ping()
        logger.info("Database reachable")

    async def dispose(self) -> None:
        """Close every pooled connection. Called at shutdown."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    1. Creates a new session from the app's `Database` handle
    2. Yields it to the route handler
    3. On success: commits (a no-op when the service already committed)
    4. On error: rolls back, then re-raises for the global handlers
    5. Always: closes the session (returns connection to pool)
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
