"""Classification of store exceptions."""

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

# SQLSTATE invalid_catalog_name: the database named in the connection string does not exist.
_MISSING_DATABASE_SQLSTATE = "3D000"


def is_connectivity_error(exc: BaseException) -> bool:
    """Return True if ``exc`` means the store cannot be reached or the connection was lost.

    Raw OSError/TimeoutError can escape the driver while connecting, before
    SQLAlchemy has a DBAPI error to wrap.
    """
    if isinstance(exc, (OperationalError, InterfaceError, OSError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def is_duplicate_key_error(exc: IntegrityError) -> bool:
    """Return True if an IntegrityError is a unique/primary-key violation."""
    exc_text = str(exc.orig).lower() if exc.orig else str(exc).lower()
    return "unique" in exc_text or "duplicate" in exc_text or "history_pkey" in exc_text


def is_missing_database_error(exc: BaseException) -> bool:
    """Return True if connecting failed because the target database does not exist.

    Depending on the driver the SQLSTATE sits on the raised exception itself
    (driver errors raised while connecting), on the wrapped DBAPI error, or on
    that error's cause.
    """
    candidates: list[BaseException | None] = [exc]
    if isinstance(exc, DBAPIError):
        candidates.append(exc.orig)
        candidates.append(exc.orig.__cause__ if exc.orig is not None else None)
    return any(
        (getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)) == _MISSING_DATABASE_SQLSTATE
        for candidate in candidates
        if candidate is not None
    )
