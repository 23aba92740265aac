"""Data models for archive extraction and play-event decoding."""

import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import IO

from pydantic import BaseModel, Field

from muzi.zip_import.platforms import Platform


class PlayEvent(BaseModel):
    """A single validated play, ready to be persisted.

    ``played_at`` is timezone-aware UTC. Track, artist and album may be absent
    (podcast episodes, videos, local files).
    """

    model_config = {"frozen": True}

    played_at: datetime
    duration_ms: int = Field(ge=0)
    track_name: str | None = None
    artist_name: str | None = None
    album_name: str | None = None

    @property
    def identity_key(self) -> tuple[datetime, int, str, str]:
        """(played_at, duration_ms, artist, track) as enforced unique by the store."""
        return (self.played_at, self.duration_ms, self.artist_name or "", self.track_name or "")


@dataclass(frozen=True)
class RecordError:
    """A single array element that could not be turned into a PlayEvent."""

    index: int
    field: str | None
    message: str

    def __str__(self) -> str:
        where = f"record {self.index}"
        if self.field:
            where += f" field {self.field!r}"
        return f"{where}: {self.message}"


@dataclass
class DecodedDocument:
    """Everything decoded from one event file."""

    events: list[PlayEvent] = field(default_factory=list)
    errors: list[RecordError] = field(default_factory=list)
    skipped_duration: int = 0


@dataclass(frozen=True)
class SourceFile:
    """An event file found on disk, tagged with the platform whose rules matched it."""

    path: Path
    platform: Platform


@dataclass(frozen=True)
class ArchiveEntry:
    """One member of an open zip archive."""

    name: str
    is_dir: bool
    info: zipfile.ZipInfo

    @classmethod
    def from_info(cls, info: zipfile.ZipInfo) -> "ArchiveEntry":
        return cls(name=info.filename, is_dir=info.is_dir(), info=info)

    def open(self, archive: zipfile.ZipFile) -> IO[bytes]:
        """Open the member for streaming reads."""
        return archive.open(self.info, "r")


@dataclass(frozen=True)
class SkippedEntry:
    """An archive member that could not be extracted."""

    name: str
    reason: str


@dataclass
class ExtractionReport:
    """Outcome of extracting one archive."""

    archive_path: Path
    target_dir: Path
    files: list[Path] = field(default_factory=list)
    directories: list[Path] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)

    @property
    def files_extracted(self) -> int:
        return len(self.files)
