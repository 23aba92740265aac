"""Shared test configuration and fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy import event

from muzi.config.database import DatabaseSettings
from muzi.db.session import DatabaseManager
from muzi.db.sink import HistorySink


@pytest.fixture
def db_settings(tmp_path: Path) -> DatabaseSettings:
    """File-backed SQLite so every session sees the same data."""
    return DatabaseSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'history.db'}")


@pytest.fixture
async def db_manager(db_settings: DatabaseSettings) -> AsyncGenerator[DatabaseManager]:
    manager = DatabaseManager(db_settings)

    # pysqlite-style drivers commit when the outermost SAVEPOINT is released
    # unless SQLAlchemy emits BEGIN itself.
    @event.listens_for(manager.engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(manager.engine.sync_engine, "begin")
    def _emit_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")

    yield manager
    await manager.dispose()


@pytest.fixture
async def sink(db_manager: DatabaseManager) -> HistorySink:
    history_sink = HistorySink(db_manager)
    await history_sink.ensure_schema()
    return history_sink
