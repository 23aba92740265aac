"""Decoding of event-file JSON into validated PlayEvent records."""

import io
import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import ijson  # type: ignore[import-untyped]

from muzi.exceptions import MalformedDocumentError
from muzi.zip_import.constants import MAX_MS_PLAYED, MIN_MS_PLAYED
from muzi.zip_import.models import DecodedDocument, PlayEvent, RecordError
from muzi.zip_import.platforms import FieldMapping, Platform, get_profile

logger = logging.getLogger(__name__)

# yajl2_c fails the whole document on integers wider than 64 bits; the python backend returns them.
_json = ijson.get_backend("python")

_TEXT_FIELDS = ("track_name", "artist_name", "album_name")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive timestamps are taken to be UTC. Raises ValueError if unparseable and
    OverflowError if the UTC instant falls outside the datetime range.
    """
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def decode_item(raw: object, index: int, fields: FieldMapping) -> PlayEvent | RecordError | None:
    """Map one array element to a PlayEvent.

    Returns a RecordError when a mapped field is missing or mistyped, and None
    for plays under the minimum duration (a policy skip, not an error).
    """
    if not isinstance(raw, dict):
        return RecordError(index=index, field=None, message=f"expected an object, got {type(raw).__name__}")

    ms_played = raw.get(fields.duration_ms)
    if ms_played is None:
        return RecordError(index=index, field=fields.duration_ms, message="missing")
    # bool is an int subclass; JSON true/false is not a duration
    if isinstance(ms_played, bool) or not isinstance(ms_played, int):
        return RecordError(index=index, field=fields.duration_ms, message=f"expected integer, got {ms_played!r}")
    if ms_played < 0:
        return RecordError(index=index, field=fields.duration_ms, message=f"negative duration {ms_played}")
    if ms_played > MAX_MS_PLAYED:
        return RecordError(index=index, field=fields.duration_ms, message=f"duration out of range {ms_played}")

    ts = raw.get(fields.played_at)
    if ts is None:
        return RecordError(index=index, field=fields.played_at, message="missing")
    if not isinstance(ts, str):
        return RecordError(index=index, field=fields.played_at, message=f"expected string, got {ts!r}")
    try:
        played_at = parse_timestamp(ts)
    except ValueError:
        return RecordError(index=index, field=fields.played_at, message=f"unparseable timestamp {ts!r}")
    except OverflowError:
        return RecordError(index=index, field=fields.played_at, message=f"timestamp out of range {ts!r}")

    text: dict[str, str | None] = {}
    for name in _TEXT_FIELDS:
        key = getattr(fields, name)
        value = raw.get(key)
        if value is not None and not isinstance(value, str):
            return RecordError(index=index, field=key, message=f"expected string, got {value!r}")
        text[name] = value or None

    if ms_played < MIN_MS_PLAYED:
        return None

    return PlayEvent(played_at=played_at, duration_ms=ms_played, **text)


def _iter_items(data: bytes) -> Iterator[object]:
    """Stream the elements of a top-level JSON array."""
    if not data.lstrip().startswith(b"["):
        raise MalformedDocumentError("document is not a JSON array")
    try:
        yield from _json.items(io.BytesIO(data), "item", use_float=True)
    except (ijson.JSONError, UnicodeDecodeError) as exc:
        raise MalformedDocumentError(f"invalid JSON: {exc}") from exc


def iter_records(data: bytes, platform: Platform | str = Platform.SPOTIFY) -> Iterator[PlayEvent | RecordError]:
    """Lazily yield a PlayEvent or RecordError per emittable array element.

    Sub-threshold plays are dropped. Raises MalformedDocumentError (possibly
    after some records have been yielded) if the document is not a valid
    JSON array.
    """
    fields = get_profile(platform).fields
    for index, raw in enumerate(_iter_items(data)):
        result = decode_item(raw, index, fields)
        if result is not None:
            yield result


def decode_document(data: bytes, platform: Platform | str = Platform.SPOTIFY) -> DecodedDocument:
    """Decode a whole document, counting sub-threshold plays.

    Nothing is returned for a malformed document: MalformedDocumentError
    propagates before any record reaches the caller.
    """
    fields = get_profile(platform).fields
    document = DecodedDocument()
    for index, raw in enumerate(_iter_items(data)):
        result = decode_item(raw, index, fields)
        if result is None:
            document.skipped_duration += 1
        elif isinstance(result, RecordError):
            document.errors.append(result)
        else:
            document.events.append(result)
    return document


def decode_file(path: str | Path, platform: Platform | str = Platform.SPOTIFY) -> DecodedDocument:
    """Read and decode one event file."""
    path = Path(path)
    document = decode_document(path.read_bytes(), platform)
    logger.debug(
        "Decoded %s: %d events, %d errors, %d short plays",
        path.name,
        len(document.events),
        len(document.errors),
        document.skipped_duration,
    )
    return document
