"""Read-only helpers over decoded event streams."""

from collections.abc import Iterable
from pathlib import Path

from muzi.zip_import.decoder import iter_records
from muzi.zip_import.models import PlayEvent, RecordError
from muzi.zip_import.platforms import Platform


def count_artist_plays(events: Iterable[PlayEvent | RecordError], artist: str) -> int:
    """Count events whose artist equals ``artist``, ignoring case. Record errors are ignored."""
    wanted = artist.casefold()
    return sum(
        1
        for event in events
        if isinstance(event, PlayEvent) and event.artist_name is not None and event.artist_name.casefold() == wanted
    )


def count_artist_plays_in_file(path: str | Path, artist: str, platform: Platform | str = Platform.SPOTIFY) -> int:
    """Count plays by ``artist`` in a single event file."""
    return count_artist_plays(iter_records(Path(path).read_bytes(), platform), artist)
