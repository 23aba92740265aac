"""History store: model, session management, schema bootstrap, and sink."""

from muzi.db.base import Base
from muzi.db.enums import FileState, InsertOutcome
from muzi.db.models import IDENTITY_COLUMNS, HistoryEntry
from muzi.db.schema import ensure_database, ensure_schema
from muzi.db.session import DatabaseManager
from muzi.db.sink import HistorySink, PersistResult

__all__ = [
    "IDENTITY_COLUMNS",
    "Base",
    "DatabaseManager",
    "FileState",
    "HistoryEntry",
    "HistorySink",
    "InsertOutcome",
    "PersistResult",
    "ensure_database",
    "ensure_schema",
]
