# paperboy/infrastructure/database.py
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from paperboy.config import DATABASE_URL, STORE_TIMEOUT_SECONDS

logger = structlog.get_logger(__name__)


class Database:
    """
    Explicit handle on the post store's engine.

    Sessions are counted so the store can be suspended for a file-level
    restore: `suspended()` waits for in-flight sessions, blocks new ones,
    releases every pooled connection and reopens access on exit.
    """

    def __init__(self, url: Optional[str] = None, echo: bool = False, timeout: float = STORE_TIMEOUT_SECONDS):
        self.url = url or DATABASE_URL
        connect_args = {"timeout": timeout} if self.url.startswith("sqlite") else {}
        self.engine: AsyncEngine = create_async_engine(self.url, echo=echo, connect_args=connect_args)
        self._cond = asyncio.Condition()
        self._active = 0
        self._suspended = False

    async def init(self) -> None:
        # table metadata is registered on import
        from paperboy.models import post  # noqa: F401

        async with self.engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)
        logger.info("database_initialized", url=self.engine.url.render_as_string(hide_password=True))

    @property
    def is_suspended(self) -> bool:
        return self._suspended

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._suspended)
            self._active += 1
        try:
            async with AsyncSession(self.engine, expire_on_commit=False) as session:
                yield session
        finally:
            async with self._cond:
                self._active -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def suspended(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._suspended)
            self._suspended = True
            await self._cond.wait_for(lambda: self._active == 0)
        logger.info("database_suspended")
        try:
            await self.engine.dispose()
            yield
        finally:
            async with self._cond:
                self._suspended = False
                self._cond.notify_all()
            logger.info("database_resumed")

    async def close(self) -> None:
        await self.engine.dispose()
