"""Tests for the ingestion pipeline."""

import asyncio
import json
import zipfile
from collections.abc import Iterable
from pathlib import Path

import pytest
from sqlalchemy import func, select

from ingestor.pipeline import IngestionPipeline
from muzi.config.database import DatabaseSettings
from muzi.db.enums import FileState
from muzi.db.models import HistoryEntry
from muzi.db.session import DatabaseManager
from muzi.db.sink import HistorySink, PersistResult
from muzi.exceptions import SinkError, StoreUnavailableError
from muzi.zip_import.models import PlayEvent

HISTORY_DIR = "export/Spotify Extended Streaming History"


def _record(ts: str, ms_played: int = 200000, track: str = "Song", artist: str = "Band") -> dict[str, object]:
    return {
        "ts": ts,
        "ms_played": ms_played,
        "master_metadata_track_name": track,
        "master_metadata_album_artist_name": artist,
        "master_metadata_album_album_name": "Record",
    }


GOOD_RECORDS = [
    _record("2021-01-01T10:00:00Z", track="One"),
    _record("2021-01-01T10:05:00Z", track="Two"),
    _record("2021-01-01T10:10:00Z", ms_played=5000, track="Skipped"),
]


def _write_archive(path: Path, files: dict[str, object]) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in files.items():
            data = content if isinstance(content, (bytes, str)) else json.dumps(content)
            zf.writestr(name, data)
    return path


def _write_tree(root: Path, files: dict[str, object]) -> Path:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content if isinstance(content, str) else json.dumps(content))
    return root


async def _row_count(db_manager: DatabaseManager) -> int:
    async with db_manager.session() as session:
        return (await session.execute(select(func.count()).select_from(HistoryEntry))).scalar_one()


@pytest.fixture
def dirs(tmp_path: Path) -> tuple[Path, Path]:
    archive_dir = tmp_path / "zip"
    extract_dir = tmp_path / "extracted"
    archive_dir.mkdir()
    return archive_dir, extract_dir


async def test_import_archive_end_to_end(
    sink: HistorySink, db_manager: DatabaseManager, dirs: tuple[Path, Path]
) -> None:
    archive_dir, extract_dir = dirs
    _write_archive(
        archive_dir / "my_spotify_data.zip",
        {
            f"{HISTORY_DIR}/Streaming_History_Audio_2021_1.json": GOOD_RECORDS,
            f"{HISTORY_DIR}/Streaming_History_Video_2021.json": GOOD_RECORDS,
            f"{HISTORY_DIR}/ReadMeFirst.pdf": b"%PDF",
        },
    )

    summary = await IngestionPipeline(sink).import_archives(archive_dir, extract_dir)

    assert summary.ok
    assert summary.archives_extracted == 1
    assert summary.files_processed == 1
    assert summary.records_inserted == 2
    assert summary.records_skipped_duration == 1
    assert summary.records_failed == 0
    assert [f.state for f in summary.files] == [FileState.PERSISTED]
    assert (extract_dir / "my_spotify_data" / HISTORY_DIR / "Streaming_History_Audio_2021_1.json").is_file()
    assert await _row_count(db_manager) == 2


async def test_rerun_inserts_nothing_new(
    sink: HistorySink, db_manager: DatabaseManager, dirs: tuple[Path, Path]
) -> None:
    archive_dir, extract_dir = dirs
    _write_archive(archive_dir / "a.zip", {f"{HISTORY_DIR}/Streaming_History_Audio_2021_1.json": GOOD_RECORDS})
    pipeline = IngestionPipeline(sink)

    first = await pipeline.import_archives(archive_dir, extract_dir)
    second = await pipeline.import_archives(archive_dir, extract_dir)

    assert first.records_inserted == 2
    assert second.records_inserted == 0
    assert second.records_duplicate == 2
    assert await _row_count(db_manager) == 2


async def test_overlapping_exports_deduplicate(
    sink: HistorySink, db_manager: DatabaseManager, tmp_path: Path
) -> None:
    _write_tree(
        tmp_path,
        {
            "export_2022/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": GOOD_RECORDS,
            "export_2023/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": GOOD_RECORDS
            + [_record("2023-05-01T00:00:00Z", track="New")],
        },
    )

    summary = await IngestionPipeline(sink).ingest_directory(tmp_path)

    assert summary.files_processed == 2
    assert summary.records_inserted == 3
    assert summary.records_duplicate == 2
    assert await _row_count(db_manager) == 3


async def test_malformed_file_fails_alone(sink: HistorySink, db_manager: DatabaseManager, tmp_path: Path) -> None:
    _write_tree(
        tmp_path,
        {
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2020.json": b'[{"ts": "2020-01-01T00:00:00Z", ',
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": GOOD_RECORDS,
        },
    )

    summary = await IngestionPipeline(sink).ingest_directory(tmp_path)

    assert summary.ok
    assert summary.files_failed == 1
    assert summary.files_processed == 1
    assert [f.state for f in summary.files] == [FileState.DECODE_FAILED, FileState.PERSISTED]
    assert await _row_count(db_manager) == 2


async def test_record_errors_are_counted(sink: HistorySink, db_manager: DatabaseManager, tmp_path: Path) -> None:
    records = [*GOOD_RECORDS, {"ts": "2021-01-01T11:00:00Z", "ms_played": "long"}, {"ms_played": 30000}]
    _write_tree(tmp_path, {"e/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": records})

    summary = await IngestionPipeline(sink).ingest_directory(tmp_path)

    assert summary.records_inserted == 2
    assert summary.records_failed == 2
    assert summary.files[0].failed == 2
    assert any("ms_played" in error for error in summary.errors)
    assert await _row_count(db_manager) == 2


async def test_bad_archive_does_not_stop_others(
    sink: HistorySink, db_manager: DatabaseManager, dirs: tuple[Path, Path]
) -> None:
    archive_dir, extract_dir = dirs
    (archive_dir / "a_corrupt.zip").write_bytes(b"not a zip")
    _write_archive(archive_dir / "b_unsafe.zip", {"../escape.json": GOOD_RECORDS})
    _write_archive(archive_dir / "c_good.zip", {f"{HISTORY_DIR}/Streaming_History_Audio_2021.json": GOOD_RECORDS})
    (archive_dir / "notes.txt").write_text("not an archive")

    summary = await IngestionPipeline(sink).import_archives(archive_dir, extract_dir)

    assert summary.ok
    assert summary.archives_failed == 2
    assert summary.archives_extracted == 1
    assert summary.records_inserted == 2
    assert not (extract_dir / "escape.json").exists()
    assert await _row_count(db_manager) == 2


async def test_missing_directories_end_run_with_summary(sink: HistorySink, tmp_path: Path) -> None:
    pipeline = IngestionPipeline(sink)

    tree_summary = await pipeline.ingest_directory(tmp_path / "nope")
    archive_summary = await pipeline.import_archives(tmp_path / "nope", tmp_path / "out")

    for summary in (tree_summary, archive_summary):
        assert not summary.ok
        assert summary.fatal_error is not None
        assert "nope" in summary.fatal_error
        assert summary.files == []
    assert not (tmp_path / "out").exists()


async def test_out_of_range_timestamp_fails_only_its_record(
    sink: HistorySink, db_manager: DatabaseManager, tmp_path: Path
) -> None:
    _write_tree(
        tmp_path,
        {
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2020.json": [
                _record("2020-01-01T00:00:00Z"),
                {"ts": "9999-12-31T23:59:59-05:00", "ms_played": 30000},
            ],
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": [_record("2021-01-01T00:00:00Z")],
        },
    )

    summary = await IngestionPipeline(sink).ingest_directory(tmp_path)

    assert summary.ok
    assert summary.files_processed == 2
    assert summary.records_inserted == 2
    assert summary.records_failed == 1
    assert await _row_count(db_manager) == 2


async def test_stop_before_start(sink: HistorySink, db_manager: DatabaseManager, tmp_path: Path) -> None:
    _write_tree(tmp_path, {"e/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": GOOD_RECORDS})
    stop_event = asyncio.Event()
    stop_event.set()

    summary = await IngestionPipeline(sink).ingest_directory(tmp_path, stop_event)

    assert summary.cancelled
    assert not summary.ok
    assert summary.files == []
    assert await _row_count(db_manager) == 0


class _StoppingSink(HistorySink):
    """Requests a stop while the first file is being persisted."""

    def __init__(self, db_manager: DatabaseManager, stop_event: asyncio.Event) -> None:
        super().__init__(db_manager)
        self._stop_event = stop_event

    async def persist(self, events: Iterable[PlayEvent]) -> PersistResult:
        self._stop_event.set()
        return await super().persist(events)


async def test_stop_finishes_current_file(sink: HistorySink, db_manager: DatabaseManager, tmp_path: Path) -> None:
    _write_tree(
        tmp_path,
        {
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2020.json": GOOD_RECORDS,
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": [
                _record("2021-06-01T00:00:00Z", track="Later")
            ],
        },
    )
    stop_event = asyncio.Event()

    summary = await IngestionPipeline(_StoppingSink(db_manager, stop_event)).ingest_directory(tmp_path, stop_event)

    assert summary.cancelled
    assert summary.files_processed == 1
    assert await _row_count(db_manager) == 2


class _FailingSink(HistorySink):
    def __init__(self, db_manager: DatabaseManager, error: SinkError) -> None:
        super().__init__(db_manager)
        self._error = error

    async def persist(self, events: Iterable[PlayEvent]) -> PersistResult:
        raise self._error


async def test_store_loss_aborts_run(sink: HistorySink, db_manager: DatabaseManager, tmp_path: Path) -> None:
    _write_tree(
        tmp_path,
        {
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2020.json": GOOD_RECORDS,
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": GOOD_RECORDS,
        },
    )
    failing = _FailingSink(db_manager, StoreUnavailableError("connection refused"))

    summary = await IngestionPipeline(failing).ingest_directory(tmp_path)

    assert not summary.ok
    assert summary.fatal_error == "connection refused"
    assert len(summary.files) == 1
    assert summary.files[0].state is FileState.PERSIST_FAILED


async def test_commit_failure_moves_to_next_file(sink: HistorySink, db_manager: DatabaseManager, tmp_path: Path) -> None:
    _write_tree(
        tmp_path,
        {
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2020.json": GOOD_RECORDS,
            "e/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": GOOD_RECORDS,
        },
    )
    failing = _FailingSink(db_manager, SinkError("commit failed"))

    summary = await IngestionPipeline(failing).ingest_directory(tmp_path)

    assert summary.ok
    assert summary.files_failed == 2
    assert summary.records_failed == 4
    assert [f.state for f in summary.files] == [FileState.PERSIST_FAILED, FileState.PERSIST_FAILED]


async def test_unreachable_store_is_fatal(tmp_path: Path) -> None:
    _write_tree(tmp_path, {"e/Spotify Extended Streaming History/Streaming_History_Audio_2021.json": GOOD_RECORDS})
    settings = DatabaseSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'history.db'}")

    async with DatabaseManager(settings) as db_manager:
        summary = await IngestionPipeline(HistorySink(db_manager)).ingest_directory(tmp_path)

    assert summary.fatal_error is not None
    assert summary.files == []
