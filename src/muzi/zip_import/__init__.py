"""Export archive extraction, event-file discovery, and decoding."""

from muzi.zip_import.decoder import decode_document, decode_file, iter_records
from muzi.zip_import.extractor import extract_archive
from muzi.zip_import.models import (
    DecodedDocument,
    ExtractionReport,
    PlayEvent,
    RecordError,
    SkippedEntry,
    SourceFile,
)
from muzi.zip_import.platforms import Platform, PlatformProfile, get_profile
from muzi.zip_import.stats import count_artist_plays, count_artist_plays_in_file
from muzi.zip_import.walker import find_event_files

__all__ = [
    "DecodedDocument",
    "ExtractionReport",
    "Platform",
    "PlatformProfile",
    "PlayEvent",
    "RecordError",
    "SkippedEntry",
    "SourceFile",
    "count_artist_plays",
    "count_artist_plays_in_file",
    "decode_document",
    "decode_file",
    "extract_archive",
    "find_event_files",
    "get_profile",
    "iter_records",
]
