"""Async engine and session management.

Any async SQLAlchemy URL works: ``sqlite+aiosqlite`` for local runs and
tests, ``mssql+aioodbc`` or ``postgresql+asyncpg`` in deployment. Plain
``mssql+pyodbc`` URLs are switched to the async driver.

Ledgers commit their own writes, so request sessions never commit
implicitly; they only roll back what a failed request left pending.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tenacity import retry, stop_after_attempt, wait_exponential

from ..config import DatabaseSettings, get_settings
from ..logging import get_logger
from .models import Base

logger = get_logger(__name__)

POOL_TIMEOUT_SECONDS = 30
POOL_RECYCLE_SECONDS = 1800

_ASYNC_DRIVERS = {
    "mssql+pyodbc": "mssql+aioodbc",
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def get_database_url(settings: DatabaseSettings | None = None) -> str:
    """Resolve ``DATABASE_URL`` to an async driver URL.

    Raises:
        ValueError: If no URL is configured.
    """
    url = (settings or get_settings().database).url
    if not url:
        raise ValueError("Database connection string not found. Set DATABASE_URL")

    scheme, sep, rest = url.partition("://")
    return f"{_ASYNC_DRIVERS.get(scheme, scheme)}{sep}{rest}"


def engine_options(url: str, settings: DatabaseSettings) -> dict[str, Any]:
    """Engine keyword arguments for a URL.

    SQLite uses a single-file or in-memory pool that rejects sizing options.
    """
    options: dict[str, Any] = {"echo": settings.echo}
    if make_url(url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=POOL_TIMEOUT_SECONDS,
            pool_recycle=POOL_RECYCLE_SECONDS,
            pool_pre_ping=True,
        )
    return options


class DatabaseConnection:
    """Lazily built engine and session factory for the generation store."""

    def __init__(self, settings: DatabaseSettings | None = None, url: str | None = None):
        """Initialize the connection manager.

        Args:
            settings: Database settings; read from the environment when omitted.
            url: Explicit URL overriding ``settings.url``.
        """
        self.settings = settings or get_settings().database
        self._url = url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            url = self._url or get_database_url(self.settings)
            self._engine = create_async_engine(url, **engine_options(url, self.settings))
            logger.info("Database engine created", backend=make_url(url).get_backend_name())
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def connect(self) -> None:
        """Run ``SELECT 1``, retrying transient connection failures."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        """Create the account, usage and generation record tables if missing."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured", tables=len(Base.metadata.tables))

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


_db: DatabaseConnection | None = None


def get_db() -> DatabaseConnection:
    """Get the process-wide database connection."""
    global _db
    if _db is None:
        _db = DatabaseConnection()
    return _db


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_db().session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
