"""Per-platform field mappings and export layout rules.

Adding a platform means adding a ``Platform`` member and a ``PlatformProfile``
entry to ``PLATFORM_PROFILES``; the walker and decoder read everything they
need from the profile.
"""

import enum
from dataclasses import dataclass, field

from muzi.zip_import.constants import (
    EVENT_FILE_SUFFIX,
    SPOTIFY_FIELD_ALBUM_NAME,
    SPOTIFY_FIELD_ARTIST_NAME,
    SPOTIFY_FIELD_MS_PLAYED,
    SPOTIFY_FIELD_TIMESTAMP,
    SPOTIFY_FIELD_TRACK_NAME,
    SPOTIFY_HISTORY_DIR,
    SPOTIFY_VIDEO_MARKER,
)


class Platform(enum.StrEnum):
    """Streaming platforms whose exports can be ingested."""

    SPOTIFY = "spotify"


@dataclass(frozen=True)
class FieldMapping:
    """Source JSON key for each PlayEvent field."""

    played_at: str
    duration_ms: str
    track_name: str
    artist_name: str
    album_name: str


@dataclass(frozen=True)
class PlatformProfile:
    """Everything platform-specific about locating and decoding event files."""

    platform: Platform
    history_dir: str
    fields: FieldMapping
    file_suffix: str = EVENT_FILE_SUFFIX
    excluded_markers: tuple[str, ...] = field(default_factory=tuple)

    def accepts_filename(self, name: str) -> bool:
        """Return True if a file with this name holds play events for this platform."""
        if not name.endswith(self.file_suffix):
            return False
        return not any(marker in name for marker in self.excluded_markers)


PLATFORM_PROFILES: dict[Platform, PlatformProfile] = {
    Platform.SPOTIFY: PlatformProfile(
        platform=Platform.SPOTIFY,
        history_dir=SPOTIFY_HISTORY_DIR,
        fields=FieldMapping(
            played_at=SPOTIFY_FIELD_TIMESTAMP,
            duration_ms=SPOTIFY_FIELD_MS_PLAYED,
            track_name=SPOTIFY_FIELD_TRACK_NAME,
            artist_name=SPOTIFY_FIELD_ARTIST_NAME,
            album_name=SPOTIFY_FIELD_ALBUM_NAME,
        ),
        # Video plays use a different event schema and would inflate audio counts
        excluded_markers=(SPOTIFY_VIDEO_MARKER,),
    ),
}


def get_profile(platform: Platform | str) -> PlatformProfile:
    """Look up the profile for a platform name or member.

    Raises ValueError for an unknown platform.
    """
    try:
        return PLATFORM_PROFILES[Platform(platform)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown platform: {platform!r}") from None
