"""Async engine and session ownership for the history store."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from muzi.config.database import DatabaseSettings


def create_engine_from_settings(settings: DatabaseSettings) -> AsyncEngine:
    """Build the async engine; ``connect_timeout`` bounds connection attempts only."""
    return create_async_engine(
        settings.url,
        echo=settings.echo,
        poolclass=NullPool if settings.use_null_pool else None,
        pool_pre_ping=settings.pool_pre_ping,
        connect_args={"timeout": settings.connect_timeout},
    )


class DatabaseManager:
    """Store handle passed to the sink; the caller opens and disposes it.

    Usage:
        async with DatabaseManager.from_env() as db:
            async with db.session() as session:
                await session.execute(stmt)
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._engine = create_engine_from_settings(settings)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False, autoflush=False)

    @classmethod
    def from_env(cls) -> Self:
        return cls(DatabaseSettings())

    @property
    def settings(self) -> DatabaseSettings:
        return self._settings

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Yield a session in a transaction that commits on clean exit and rolls back on error."""
        async with self._sessions() as session, session.begin():
            yield session

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self._engine.dispose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()
