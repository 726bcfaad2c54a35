"""
Database engine supervision, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - Base: Declarative base class that all ORM models inherit from
  - build_engine(): creates the async engine (with SQLite tuning when needed)
  - StoreProvider: owns the engine and hands out sessions, with explicit
    connection states and a timed reconnect loop
  - get_store() / get_db(): FastAPI dependencies providing the provider and
    a session per request

Store states:

    DISCONNECTED --start()--> CONNECTING --probe ok--> READY
                                   |                     |
                              probe failed        invalidate()
                                   v                     |
                                 FAILED <----------------+
                                   |
                         sleep(DB_RECONNECT_DELAY_SECONDS), retry

Requests only get a session while the provider is READY. In any other
state they fail fast with StoreUnavailableError instead of queuing.

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  once on success and rolls back on any exception, so every multi-step
  mutation (cascading rename, ledger posting) is all-or-nothing.

SQLite note:
  pysqlite defers BEGIN until the first DML statement, which lets two
  requests read the same balance before either writes. For SQLite URLs we
  take over transaction control and open every transaction with
  BEGIN IMMEDIATE, so concurrent writers queue on the database lock
  (busy timeout) instead of racing. On PostgreSQL, SELECT ... FOR UPDATE
  in the services provides the row lock.
"""

import asyncio
import enum
import logging
from contextlib import asynccontextmanager
from datetime import timezone
from typing import AsyncIterator

from fastapi import Depends
from sqlalchemy import DateTime, event, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from cashbook.config import settings
from cashbook.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware DateTime stored as UTC.

    SQLite keeps no offset and hands back naive values, so UTC is attached
    on the way out. Freshly created and reloaded rows then serialize the
    same way.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    SQLite connections get foreign keys switched on and BEGIN IMMEDIATE
    transactions (see module docstring). Other backends use the driver's
    defaults plus pre-ping so stale pooled connections are replaced.
    """
    if not url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, pool_pre_ping=True)

    engine = create_async_engine(url, echo=echo)

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable pysqlite's own BEGIN handling, we emit BEGIN ourselves
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


class StoreState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


class StoreProvider:
    """
    Supervised owner of the process-wide engine (connection pool).

    Created once per process. start() is called from the app lifespan;
    session() is the only way request code obtains a database session.
    """

    def __init__(
        self,
        url: str,
        reconnect_delay: float = 5.0,
        echo: bool = False,
        create_tables: bool = False,
    ):
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.echo = echo
        self.create_tables = create_tables
        self.state = StoreState.DISCONNECTED
        self.engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._closed = False

    @property
    def is_ready(self) -> bool:
        return self.state == StoreState.READY

    async def connect(self) -> bool:
        """
        Create the engine and probe it with SELECT 1.

        Returns True when the provider is READY afterwards. A failed probe
        leaves the provider in FAILED with no engine.

        With create_tables=True, missing tables are created on every
        successful connect, including the ones made by the reconnect loop.
        """
        self._set_state(StoreState.CONNECTING)
        engine = build_engine(self.url, echo=self.echo)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            if self.create_tables:
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Database connection failed", extra={"error": str(exc)})
            await engine.dispose()
            self._set_state(StoreState.FAILED)
            return False

        self.engine = engine
        # expire_on_commit=False: attributes stay readable after commit
        # without an implicit (and in async context, illegal) lazy reload.
        self._sessionmaker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._set_state(StoreState.READY)
        return True

    async def start(self) -> None:
        """Connect once; on failure, keep retrying in the background."""
        self._closed = False
        if not await self.connect():
            self._schedule_reconnect()

    def invalidate(self, reason: BaseException | None = None) -> None:
        """
        Drop the current engine after a connection-level failure.

        Requests arriving from now on fail fast until the reconnect loop
        brings the provider back to READY.
        """
        if self.state != StoreState.READY:
            return
        logger.error(
            "Database pool invalidated",
            extra={"error": str(reason) if reason else None},
        )
        stale = self.engine
        self.engine = None
        self._sessionmaker = None
        self._set_state(StoreState.FAILED)
        if stale is not None:
            asyncio.get_running_loop().create_task(stale.dispose())
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closed:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        attempt = 0
        while not self._closed and self.state != StoreState.READY:
            await asyncio.sleep(self.reconnect_delay)
            attempt += 1
            logger.info("Attempting to reconnect to database", extra={"attempt": attempt})
            if await self.connect():
                logger.info("Database reconnected", extra={"attempt": attempt})

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Scoped session acquisition; fails fast unless READY."""
        if self.state != StoreState.READY or self._sessionmaker is None:
            raise StoreUnavailableError()
        async with self._sessionmaker() as session:
            yield session

    async def create_all(self) -> None:
        """Create all tables that don't exist yet (development convenience)."""
        if self.engine is None:
            raise StoreUnavailableError()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Stop the reconnect loop and close every pooled connection."""
        self._closed = True
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self._sessionmaker = None
        self._set_state(StoreState.DISCONNECTED)

    def _set_state(self, state: StoreState) -> None:
        if state != self.state:
            logger.info(
                "Store state changed",
                extra={"from_state": self.state.value, "to_state": state.value},
            )
        self.state = state


store = StoreProvider(
    settings.DATABASE_URL,
    reconnect_delay=settings.DB_RECONNECT_DELAY_SECONDS,
    echo=settings.DEBUG,
    create_tables=settings.DB_CREATE_TABLES,
)


def get_store() -> StoreProvider:
    """FastAPI dependency returning the process-wide store provider."""
    return store


async def get_db(provider: StoreProvider = Depends(get_store)):
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any exception,
    then closed when the request completes. A connection-level failure
    also invalidates the provider so the reconnect loop takes over.
    """
    async with provider.session() as session:
        try:
            yield session
            await session.commit()
        except DBAPIError as exc:
            await session.rollback()
            if exc.connection_invalidated:
                provider.invalidate(exc)
            raise
        except Exception:
            await session.rollback()
            raise
