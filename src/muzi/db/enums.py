"""Enums shared by the store and the pipeline driver."""

import enum


class InsertOutcome(enum.StrEnum):
    """Result of writing one play event."""

    INSERTED = "inserted"
    DUPLICATE = "duplicate"


class FileState(enum.StrEnum):
    """Lifecycle of one event file during an ingestion run."""

    DISCOVERED = "discovered"
    DECODING = "decoding"
    DECODED = "decoded"
    DECODE_FAILED = "decode_failed"
    PERSISTING = "persisting"
    PERSISTED = "persisted"
    PERSIST_FAILED = "persist_failed"
