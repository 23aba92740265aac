"""Exception hierarchy for archive extraction, decoding, and persistence."""


class MuziError(Exception):
    """Base exception for ingestion errors."""


class ExtractError(MuziError):
    """Base exception for archive extraction failures that abort an archive."""


class ArchiveUnreadableError(ExtractError):
    """The archive itself cannot be opened (missing, corrupt header, not a zip)."""

    def __init__(self, archive_path: str, detail: str = "") -> None:
        self.archive_path = archive_path
        self.detail = detail
        super().__init__(f"Cannot open archive {archive_path}" + (f": {detail}" if detail else ""))


class UnsafePathError(ExtractError):
    """An archive entry would be written outside the extraction directory."""

    def __init__(self, entry_name: str) -> None:
        self.entry_name = entry_name
        super().__init__(f"Unsafe path in archive entry: {entry_name!r}")


class DecodeError(MuziError):
    """Base exception for file-level decoding failures."""


class MalformedDocumentError(DecodeError):
    """The document is not a parseable JSON array of events."""


class SchemaError(MuziError):
    """The backing store or the history table could not be created."""


class SinkError(MuziError):
    """A single record could not be written to the store."""


class StoreUnavailableError(SinkError):
    """The store cannot be reached; no further records can be persisted."""
