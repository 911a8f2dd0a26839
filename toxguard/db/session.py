"""Async SQLAlchemy engine lifecycle + session factory."""
from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from starlette.requests import Request

from toxguard.db.models import Base

logger = logging.getLogger(__name__)


class DbState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class StoreUnavailable(RuntimeError):
    """Raised when a session is requested while the engine is not connected."""


class Database:
    """
    Owns the async engine for one database URL and tracks its connection state.

    connect() never raises: a failed connection leaves the state at
    DISCONNECTED so the HTTP listener can still start and /health can report
    the degraded mode.
    """

    def __init__(self, url: str, *, echo: bool = False, ping_timeout: float = 2.0) -> None:
        self.url = url
        self.echo = echo
        self.ping_timeout = ping_timeout
        self.state = DbState.DISCONNECTED
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_connected(self) -> bool:
        return self.state is DbState.CONNECTED

    def _create_engine(self) -> AsyncEngine:
        options: dict = {"pool_pre_ping": True, "echo": self.echo}
        if not self.url.startswith("sqlite"):
            options.update(pool_size=10, max_overflow=20)
        return create_async_engine(self.url, **options)

    async def connect(self) -> None:
        if self._engine is not None:
            await self.check()
            return

        self.state = DbState.CONNECTING
        engine = None
        try:
            engine = self._create_engine()
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
                await conn.run_sync(Base.metadata.create_all)
        except Exception as exc:
            logger.error("Database connection error: %s", exc)
            if engine is not None:
                await engine.dispose()
            self.state = DbState.DISCONNECTED
            return

        self._engine = engine
        self._sessionmaker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self.state = DbState.CONNECTED
        logger.info("Database connected: %s", engine.url.render_as_string(hide_password=True))

    async def disconnect(self) -> None:
        if self._engine is None:
            self.state = DbState.DISCONNECTED
            return

        self.state = DbState.DISCONNECTING
        try:
            await self._engine.dispose()
        finally:
            self._engine = None
            self._sessionmaker = None
            self.state = DbState.DISCONNECTED
            logger.info("Database connection closed.")

    async def check(self, timeout: float | None = None) -> DbState:
        """
        Refresh ``state`` with a bounded SELECT 1 and return it. Never raises.
        Only an engine that is (or was) connected is pinged; a store that
        never came up stays DISCONNECTED.
        """
        if self._engine is None or self.state in (DbState.CONNECTING, DbState.DISCONNECTING):
            return self.state

        try:
            await asyncio.wait_for(self._ping(), timeout or self.ping_timeout)
        except Exception as exc:
            if self.state is DbState.CONNECTED:
                logger.warning("Database unreachable: %s", exc)
            self.state = DbState.DISCONNECTED
        else:
            if self.state is not DbState.CONNECTED:
                logger.info("Database reachable again.")
            self.state = DbState.CONNECTED
        return self.state

    async def _ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    @asynccontextmanager
    async def lifetime(self) -> AsyncIterator["Database"]:
        """Connect on entry, always disconnect on exit."""
        await self.connect()
        try:
            yield self
        finally:
            await self.disconnect()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._sessionmaker is None:
            raise StoreUnavailable(f"Database is {self.state.value}")
        try:
            async with self._sessionmaker() as session:
                yield session
        except DBAPIError as exc:
            if exc.connection_invalidated or isinstance(exc, (OperationalError, InterfaceError)):
                self.state = DbState.DISCONNECTED
            raise
        except OSError:
            self.state = DbState.DISCONNECTED
            raise
        else:
            if self.state is DbState.DISCONNECTED:
                self.state = DbState.CONNECTED


def get_database(request: Request) -> Database:
    """FastAPI dependency — the Database owned by the running app."""
    return request.app.state.database
