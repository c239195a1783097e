"""
Database Engine Management

Owns the SQLAlchemy async engine and session factory.

TRADEOFFS:
- SQLite (aiosqlite) is the zero-setup default; PostgreSQL (asyncpg) is
  what production should point DATABASE_URL at
- SQLite does not enforce foreign keys unless asked to, so every new
  connection switches them on
- An in-memory SQLite database only exists per connection, so it is
  pinned to a single shared connection
"""

from typing import Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import DatabaseSettings
from finance_tracker.services.storage.interface import ConnectionError
from finance_tracker.services.storage.tables import Base


logger = structlog.get_logger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    if not url.startswith("sqlite"):
        return False
    path = url.split("://", 1)[1] if "://" in url else ""
    return path in ("", "/") or ":memory:" in path


class Database:
    """
    Async engine wrapper.

    Handles connection setup and provides retry logic for the
    initial connection only. Writes are never retried.
    """

    def __init__(self, settings: DatabaseSettings):
        self._settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def url(self) -> str:
        return self._settings.url

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    def _create_engine(self) -> AsyncEngine:
        kwargs = {"echo": self._settings.echo}
        if _is_memory_sqlite(self.url):
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}

        engine = create_async_engine(self.url, **kwargs)

        if self._settings.is_sqlite:
            @event.listens_for(engine.sync_engine, "connect")
            def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        logger.info("database_engine_created", dialect=engine.dialect.name)
        return engine

    async def connect(self) -> None:
        """
        Verify connectivity and create missing tables.

        Retries with exponential backoff, then raises ConnectionError.
        """
        attempt = retry(
            stop=stop_after_attempt(self._settings.connect_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            reraise=True,
        )(self._create_schema)

        try:
            await attempt()
        except SQLAlchemyError as e:
            logger.error("database_connect_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to database: {e}") from e

        logger.info("database_connected", dialect=self.engine.dialect.name)

    async def _create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def server_version(self) -> str:
        """Ask the database for its version string."""
        if self._settings.is_sqlite:
            query = text("SELECT 'SQLite ' || sqlite_version()")
        else:
            query = text("SELECT version()")

        async with self.engine.connect() as conn:
            result = await conn.execute(query)
            return str(result.scalar_one())

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
