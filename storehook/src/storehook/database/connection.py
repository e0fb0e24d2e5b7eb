"""Database connection management for storehook."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from storehook.config import get_settings

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """Database connection manager."""

    def __init__(self, url: Optional[str] = None) -> None:
        self.settings = get_settings()
        self.url = url or self.settings.database.url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False

    @property
    def is_memory_database(self) -> bool:
        """SQLite URL without a file path (or with ``:memory:``)."""
        if not self.url.startswith("sqlite"):
            return False
        path = self.url.split("://", 1)[-1]
        return path in ("", "/", "/:memory:") or ":memory:" in path

    def _engine_options(self) -> dict:
        if self.url.startswith("sqlite"):
            if self.is_memory_database:
                # One shared connection so the database survives across sessions
                return {
                    "poolclass": StaticPool,
                    "connect_args": {"check_same_thread": False},
                }
            return {"connect_args": {"timeout": 30}}
        return {
            "pool_size": self.settings.database.pool_size,
            "max_overflow": self.settings.database.max_overflow,
            "pool_timeout": self.settings.database.pool_timeout,
            "pool_pre_ping": True,
            "pool_recycle": 3600,  # Recycle connections after 1 hour
        }

    async def initialize(self) -> None:
        """Initialize database engine and session factory."""
        if self._initialized:
            return

        logger.info("Initializing database connections")

        self._engine = create_async_engine(
            self.url,
            echo=self.settings.app.debug,
            **self._engine_options(),
        )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        # Add connection event listeners for monitoring
        self._add_event_listeners()

        self._initialized = True
        logger.info("Database connections initialized successfully")

    def _add_event_listeners(self) -> None:
        """Add event listeners for connection monitoring."""

        @event.listens_for(self._engine.sync_engine, "connect")
        def on_connect(dbapi_connection, connection_record):
            logger.debug("New database connection established")

        @event.listens_for(self._engine.sync_engine, "checkout")
        def on_checkout(dbapi_connection, connection_record, connection_proxy):
            logger.debug("Connection checked out from pool")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a session with automatic cleanup."""
        if not self._initialized:
            await self.initialize()

        assert self._session_factory is not None
        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as exc:
            logger.warning("Database ping failed", error=str(exc))
            return False
        return True

    async def close(self) -> None:
        """Close all database connections."""
        if not self._initialized:
            return

        logger.info("Closing database connections")

        if self._engine:
            await self._engine.dispose()

        self._initialized = False
        logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the engine."""
        if not self._engine:
            raise RuntimeError("Database manager not initialized")
        return self._engine


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def create_tables(db_manager: Optional[DatabaseManager] = None) -> None:
    """Create all database tables."""
    from storehook.database.models import Base

    db_manager = db_manager or get_db_manager()
    await db_manager.initialize()

    async with db_manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created successfully")


async def drop_tables(db_manager: Optional[DatabaseManager] = None) -> None:
    """Drop all database tables."""
    from storehook.database.models import Base

    db_manager = db_manager or get_db_manager()
    await db_manager.initialize()

    async with db_manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    logger.info("Database tables dropped successfully")
