"""
Database configuration with connection pooling, retry logic, and proper async handling
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, pool, text
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from benderscore.core.config import settings
from benderscore.core.logging import log


class DatabaseConfig:
    """Database configuration with environment-based settings"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.database_url
        self.pool_size = settings.db_pool_size
        self.max_overflow = settings.db_max_overflow
        self.pool_pre_ping = settings.db_pool_pre_ping
        self.echo = settings.db_echo

        # Advanced pool settings
        self.pool_recycle = 3600  # Recycle connections after 1 hour
        self.pool_timeout = 30    # Pool timeout in seconds

    @property
    def is_sqlite(self) -> bool:
        return self.async_url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and (":memory:" in self.async_url or self.async_url.rstrip("/").endswith("sqlite+aiosqlite:"))

    @property
    def async_url(self) -> str:
        """Convert sync URL to async URL"""
        url = str(self.database_url)
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return url

    @property
    def async_engine_kwargs(self) -> dict:
        """Get async engine configuration"""
        if self.is_sqlite:
            kwargs = {
                "echo": self.echo,
                "connect_args": {"check_same_thread": False},
            }
            # A single shared connection keeps an in-memory database alive
            if self.is_memory:
                kwargs["poolclass"] = pool.StaticPool
            return kwargs

        return {
            "echo": self.echo,
            "pool_pre_ping": self.pool_pre_ping,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_recycle": self.pool_recycle,
            "pool_timeout": self.pool_timeout,
            "connect_args": {
                "server_settings": {
                    "application_name": settings.PROJECT_NAME,
                    "jit": "off",
                }
            },
        }


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Enforce foreign keys on SQLite connections"""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Retry decorator for transient connection failures
db_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
    retry=retry_if_exception_type((OperationalError, DisconnectionError)),
)


class DatabaseSessionManager:
    """Manages database session lifecycle with proper error handling"""

    def __init__(self, database_url: Optional[str] = None):
        self.config = DatabaseConfig(database_url)
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self.init()
        return self._engine

    def init(self):
        """Create the engine and session factory"""
        if self._engine is not None:
            return

        self._engine = create_async_engine(self.config.async_url, **self.config.async_engine_kwargs)
        if self.config.is_sqlite:
            event.listen(self._engine.sync_engine, "connect", _set_sqlite_pragma)

        self._sessionmaker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
        log.debug("Database engine created", url=self.config.async_url.split("@")[-1])

    @db_retry
    async def create_all(self):
        """Create tables (local development and tests; production uses Alembic)"""
        # Register table metadata
        from benderscore import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        log.info("Database tables created")

    async def close(self):
        """Close database connection"""
        if self._engine is None:
            return

        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        log.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a read session; anything written is committed on exit"""
        if self._sessionmaker is None:
            self.init()

        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                log.error(f"Database session error: {e}")
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide an explicit all-or-nothing transaction scope"""
        if self._sessionmaker is None:
            self.init()

        async with self._sessionmaker() as session:
            try:
                async with session.begin():
                    yield session
            except Exception as e:
                log.warning(f"Transaction rolled back: {e.__class__.__name__}")
                raise


# Global session manager instance
db_manager = DatabaseSessionManager()


async def check_database_health(manager: DatabaseSessionManager = db_manager) -> dict:
    """Check database health and connection status"""
    try:
        async with manager.session() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
        return {"status": "healthy"}
    except Exception as e:
        log.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}


__all__ = [
    "DatabaseConfig",
    "DatabaseSessionManager",
    "db_manager",
    "db_retry",
    "check_database_health",
]
