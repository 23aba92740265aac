"""Constants for export archive processing."""

# Plays shorter than this are treated as skips and never persisted.
MIN_MS_PLAYED = 20_000

# Largest duration the history table's INTEGER column holds.
MAX_MS_PLAYED = 2**31 - 1

# Bytes copied per read when streaming an archive member to disk.
EXTRACT_CHUNK_SIZE = 64 * 1024

EVENT_FILE_SUFFIX = ".json"
ARCHIVE_SUFFIX = ".zip"

# Spotify extended streaming history layout and field names
SPOTIFY_HISTORY_DIR = "Spotify Extended Streaming History"
SPOTIFY_VIDEO_MARKER = "Video"

SPOTIFY_FIELD_TIMESTAMP = "ts"
SPOTIFY_FIELD_MS_PLAYED = "ms_played"
SPOTIFY_FIELD_TRACK_NAME = "master_metadata_track_name"
SPOTIFY_FIELD_ARTIST_NAME = "master_metadata_album_artist_name"
SPOTIFY_FIELD_ALBUM_NAME = "master_metadata_album_album_name"
