"""Idempotent bootstrap of the history database and table."""

import logging

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from muzi.config.database import DatabaseSettings
from muzi.db.errors import is_connectivity_error, is_missing_database_error
from muzi.db.models import HistoryEntry
from muzi.db.session import DatabaseManager
from muzi.exceptions import SchemaError, StoreUnavailableError

logger = logging.getLogger(__name__)


async def ensure_database(settings: DatabaseSettings) -> bool:
    """Create the PostgreSQL database named in ``settings`` if it is missing.

    Connects to the server's maintenance database to check ``pg_database``.
    Returns True if the database was created.
    """
    name = settings.url.database
    engine = create_async_engine(
        settings.maintenance_url,
        isolation_level="AUTOCOMMIT",
        poolclass=NullPool,
        connect_args={"timeout": settings.connect_timeout},
    )
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": name})
            if result.scalar() is not None:
                return False
            quoted = conn.dialect.identifier_preparer.quote(name)
            await conn.execute(text(f"CREATE DATABASE {quoted}"))
            logger.info("Created database %s", name)
            return True
    finally:
        await engine.dispose()


async def _create_history_table(engine: AsyncEngine) -> bool:
    async with engine.begin() as conn:
        exists = await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(HistoryEntry.__tablename__))
        if exists:
            return False
        await conn.run_sync(HistoryEntry.metadata.create_all, tables=[HistoryEntry.__table__])
    logger.info("Created table %s", HistoryEntry.__tablename__)
    return True


async def ensure_schema(db_manager: DatabaseManager) -> bool:
    """Make sure the backing database and the history table exist.

    Connects to the target database first; the server's maintenance database
    is only used when the target database turns out not to exist. Checked on
    every run; safe to call repeatedly. Returns True if the table had to be
    created.

    Raises:
        StoreUnavailableError: the server cannot be reached.
        SchemaError: the database or table could not be created.
    """
    try:
        try:
            return await _create_history_table(db_manager.engine)
        except Exception as exc:
            if not is_missing_database_error(exc):
                raise
            logger.info("Database %s does not exist", db_manager.settings.url.database)

        await ensure_database(db_manager.settings)
        return await _create_history_table(db_manager.engine)
    except (SQLAlchemyError, OSError) as exc:
        if is_connectivity_error(exc):
            raise StoreUnavailableError(f"Cannot reach database: {exc}") from exc
        raise SchemaError(f"Cannot create history schema: {exc}") from exc
