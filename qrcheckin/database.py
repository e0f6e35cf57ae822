"""
Database configuration and session management.
"""

import asyncio
from contextlib import asynccontextmanager

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from qrcheckin.config import settings
from qrcheckin.exceptions import ServiceUnavailableError
from qrcheckin.logging_config import get_logger

logger = get_logger("database")


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def engine_options(database_url: str) -> dict:
    """Build create_async_engine keyword arguments for the configured backend."""
    url = make_url(database_url)
    statement_timeout_ms = settings.get("STATEMENT_TIMEOUT_MS", 15000)
    options: dict = {
        "echo": settings.get("DATABASE_ECHO", False),
        "pool_pre_ping": True,
    }

    if url.get_backend_name() == "sqlite":
        # Busy timeout in seconds; SQLite has no statement timeout
        options["connect_args"] = {"timeout": max(statement_timeout_ms / 1000, 1)}
        return options

    options["pool_size"] = settings.get("POOL_SIZE", 5)
    options["pool_timeout"] = settings.get("POOL_TIMEOUT", 30)

    if url.get_backend_name() == "postgresql":
        options["connect_args"] = {
            "server_settings": {"statement_timeout": str(statement_timeout_ms)}
        }

    return options


DATABASE_URL = settings.get("DATABASE_URL", "sqlite+aiosqlite:///./qrcheckin.db")

# Create async engine
engine = create_async_engine(DATABASE_URL, **engine_options(DATABASE_URL))

# Create async session factory
async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class TransactionGate:
    """
    Tracks in-flight write transactions so shutdown can drain them.

    Once closing, new transactions are refused instead of queued.
    """

    def __init__(self):
        self._active = 0
        self._closing = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def active(self) -> int:
        return self._active

    @property
    def closing(self) -> bool:
        return self._closing

    @asynccontextmanager
    async def track(self):
        if self._closing:
            raise ServiceUnavailableError()

        self._active += 1
        self._idle.clear()
        try:
            yield
        finally:
            self._active -= 1
            if self._active == 0:
                self._idle.set()

    async def drain(self, timeout: float) -> bool:
        """Stop admitting work and wait for in-flight transactions to finish."""
        self._closing = True
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                f"Shutdown drain timed out with {self._active} transaction(s) in flight",
                extra={"operation": "shutdown"},
            )
            return False
        return True

    def reopen(self):
        self._closing = False


transaction_gate = TransactionGate()


async def get_async_session():
    """Dependency to get async database session."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker:
    """Dependency returning the shared session factory for dedicated transactions."""
    return async_session_maker


def get_transaction_gate() -> TransactionGate:
    """Dependency returning the process-wide transaction gate."""
    return transaction_gate


async def create_db_and_tables():
    """Create database tables."""
    # Importing the package registers every model on Base.metadata
    import qrcheckin.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Drain in-flight check-ins, then close database connections."""
    await transaction_gate.drain(settings.get("SHUTDOWN_DRAIN_SECONDS", 10))
    await engine.dispose()
