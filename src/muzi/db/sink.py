"""Ingestion sink: duplicate-safe writes of play events to the history table."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from muzi.db.enums import InsertOutcome
from muzi.db.errors import is_connectivity_error, is_duplicate_key_error
from muzi.db.models import IDENTITY_COLUMNS, HistoryEntry
from muzi.db.schema import ensure_schema
from muzi.db.session import DatabaseManager
from muzi.exceptions import SinkError, StoreUnavailableError
from muzi.zip_import.models import PlayEvent

logger = logging.getLogger(__name__)

history_table = HistoryEntry.__table__

# Dialects with INSERT ... ON CONFLICT DO NOTHING; others fall back to catching the key violation.
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass
class PersistResult:
    """Counts from persisting one file's events."""

    inserted: int = 0
    duplicates: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def event_row(event: PlayEvent) -> dict[str, object]:
    """Map a PlayEvent onto history table columns.

    Missing track and artist become empty strings because both are part of the
    primary key.
    """
    return {
        "timestamp": event.played_at,
        "ms_played": event.duration_ms,
        "song_name": event.track_name or "",
        "artist": event.artist_name or "",
        "album_name": event.album_name,
    }


class HistorySink:
    """Writes play events through a caller-owned DatabaseManager.

    The store's primary key is the only duplicate guard, so concurrent writers
    can race safely: the loser of a race sees a DUPLICATE outcome.
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        self._db_manager = db_manager

    async def ensure_schema(self) -> bool:
        """Create the database and history table if missing. Returns True if the table was created."""
        return await ensure_schema(self._db_manager)

    async def insert(self, event: PlayEvent, session: AsyncSession) -> InsertOutcome:
        """Insert one event, or report it as a duplicate of an existing row.

        Runs inside a savepoint so a failed row leaves the surrounding
        transaction usable.

        Raises:
            StoreUnavailableError: the connection to the store is gone.
            SinkError: any other failure to write this record.
        """
        row = event_row(event)
        dialect = session.bind.dialect.name if session.bind else "postgresql"

        try:
            async with session.begin_nested():
                upsert = _UPSERT_INSERTS.get(dialect)
                if upsert is not None:
                    stmt = upsert(history_table).values(**row).on_conflict_do_nothing(index_elements=IDENTITY_COLUMNS)
                    result = await session.execute(stmt)
                    return InsertOutcome.INSERTED if result.rowcount == 1 else InsertOutcome.DUPLICATE

                await session.execute(insert(history_table).values(**row))
                return InsertOutcome.INSERTED
        except IntegrityError as exc:
            if is_duplicate_key_error(exc):
                return InsertOutcome.DUPLICATE
            raise SinkError(f"Cannot insert play at {event.played_at.isoformat()}: {exc.orig or exc}") from exc
        except (SQLAlchemyError, OSError) as exc:
            if is_connectivity_error(exc):
                raise StoreUnavailableError(f"Lost connection to database: {exc}") from exc
            raise SinkError(f"Cannot insert play at {event.played_at.isoformat()}: {exc}") from exc

    async def persist(self, events: Iterable[PlayEvent]) -> PersistResult:
        """Insert a file's events in one transaction, committed before returning.

        A record that fails is counted and skipped; the rest of the file is
        still written.

        Raises:
            StoreUnavailableError: the store became unreachable.
            SinkError: the transaction could not be committed.
        """
        result = PersistResult()
        try:
            async with self._db_manager.session() as session:
                for event in events:
                    try:
                        outcome = await self.insert(event, session)
                    except StoreUnavailableError:
                        raise
                    except SinkError as exc:
                        logger.warning("Record failed: %s", exc)
                        result.failed += 1
                        result.errors.append(str(exc))
                        continue

                    if outcome is InsertOutcome.INSERTED:
                        result.inserted += 1
                    else:
                        result.duplicates += 1
        except (SQLAlchemyError, OSError) as exc:
            if is_connectivity_error(exc):
                raise StoreUnavailableError(f"Lost connection to database: {exc}") from exc
            raise SinkError(f"Cannot commit file: {exc}") from exc

        return result
