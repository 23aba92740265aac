"""Pipeline driver: walker -> decoder -> sink over extracted exports and archive directories."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from muzi.db.enums import FileState
from muzi.db.sink import HistorySink
from muzi.exceptions import (
    DecodeError,
    ExtractError,
    SchemaError,
    SinkError,
    StoreUnavailableError,
)
from muzi.zip_import.constants import ARCHIVE_SUFFIX
from muzi.zip_import.decoder import decode_file
from muzi.zip_import.extractor import extract_archive
from muzi.zip_import.models import SourceFile
from muzi.zip_import.platforms import Platform
from muzi.zip_import.walker import find_event_files

logger = logging.getLogger(__name__)


@dataclass
class FileOutcome:
    """What happened to one discovered event file."""

    path: Path
    state: FileState = FileState.DISCOVERED
    inserted: int = 0
    duplicates: int = 0
    skipped_duration: int = 0
    failed: int = 0
    error: str | None = None


@dataclass
class IngestionSummary:
    """Aggregate result of a run.

    ``files_processed`` counts files whose records were committed;
    ``files_failed`` counts files that could not be decoded or committed.
    ``records_failed`` covers both per-record decode errors and per-record
    store errors.
    """

    files_processed: int = 0
    files_failed: int = 0
    records_inserted: int = 0
    records_duplicate: int = 0
    records_skipped_duration: int = 0
    records_failed: int = 0
    archives_extracted: int = 0
    archives_failed: int = 0
    entries_skipped: int = 0
    cancelled: bool = False
    fatal_error: str | None = None
    files: list[FileOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True if the run finished without a fatal error or cancellation."""
        return self.fatal_error is None and not self.cancelled


class IngestionPipeline:
    """Runs ingestion one file at a time.

    Each file is fully decoded before any of its records are written, and its
    records are committed before the next file starts, so an interrupted run
    leaves only whole files behind. Re-running is the retry mechanism.
    """

    def __init__(self, sink: HistorySink, platform: Platform | str = Platform.SPOTIFY) -> None:
        self._sink = sink
        self._platform = Platform(platform)

    async def ingest_directory(
        self,
        root_dir: str | Path,
        stop_event: asyncio.Event | None = None,
    ) -> IngestionSummary:
        """Ingest every event file under an extracted export tree."""
        root = Path(root_dir)
        summary = IngestionSummary()
        if self._check_directory(root, summary) and await self._bootstrap(summary):
            await self._ingest_tree(root, summary, stop_event)
        self._log_summary(summary)
        return summary

    async def import_archives(
        self,
        archive_dir: str | Path,
        extract_dir: str | Path,
        stop_event: asyncio.Event | None = None,
    ) -> IngestionSummary:
        """Extract each ``*.zip`` in ``archive_dir`` to ``extract_dir/<stem>`` and ingest it.

        An archive that cannot be opened or contains unsafe paths is counted
        as failed and the run moves on to the next archive.
        """
        archive_root = Path(archive_dir)
        extract_root = Path(extract_dir)

        summary = IngestionSummary()
        if not (self._check_directory(archive_root, summary) and await self._bootstrap(summary)):
            self._log_summary(summary)
            return summary

        archives = sorted(p for p in archive_root.iterdir() if p.is_file() and p.suffix.lower() == ARCHIVE_SUFFIX)
        logger.info("Found %d archive(s) in %s", len(archives), archive_root)

        for archive_path in archives:
            if stop_event is not None and stop_event.is_set():
                summary.cancelled = True
                break

            target = extract_root / archive_path.stem
            try:
                report = await asyncio.to_thread(extract_archive, archive_path, target)
            except ExtractError as exc:
                logger.error("Archive %s failed: %s", archive_path.name, exc, extra={"archive": archive_path.name})
                summary.archives_failed += 1
                summary.errors.append(f"{archive_path.name}: {exc}")
                continue

            summary.archives_extracted += 1
            summary.entries_skipped += len(report.skipped)
            for skipped in report.skipped:
                summary.errors.append(f"{archive_path.name}/{skipped.name}: {skipped.reason}")

            await self._ingest_tree(target, summary, stop_event)
            if not summary.ok:
                break

        self._log_summary(summary)
        return summary

    @staticmethod
    def _check_directory(path: Path, summary: IngestionSummary) -> bool:
        if path.is_dir():
            return True
        logger.error("Directory not found: %s", path)
        summary.fatal_error = f"Directory not found: {path}"
        return False

    async def _bootstrap(self, summary: IngestionSummary) -> bool:
        """Ensure the schema exists; record a fatal error and return False if it cannot."""
        try:
            await self._sink.ensure_schema()
        except (StoreUnavailableError, SchemaError) as exc:
            logger.error("Cannot prepare history store: %s", exc)
            summary.fatal_error = str(exc)
            return False
        return True

    async def _ingest_tree(
        self,
        root: Path,
        summary: IngestionSummary,
        stop_event: asyncio.Event | None,
    ) -> None:
        for source in find_event_files(root, self._platform):
            if stop_event is not None and stop_event.is_set():
                logger.info("Stop requested, not starting %s", source.path.name)
                summary.cancelled = True
                return

            await self.ingest_file(source, summary)
            if summary.fatal_error is not None:
                return

    async def ingest_file(self, source: SourceFile, summary: IngestionSummary) -> FileOutcome:
        """Decode and persist one file, folding its outcome into ``summary``."""
        outcome = FileOutcome(path=source.path)
        summary.files.append(outcome)
        log_extra = {"file": source.path.name}

        outcome.state = FileState.DECODING
        try:
            document = await asyncio.to_thread(decode_file, source.path, source.platform)
        except (DecodeError, OSError) as exc:
            outcome.state = FileState.DECODE_FAILED
            outcome.error = str(exc)
            summary.files_failed += 1
            summary.errors.append(f"{source.path}: {exc}")
            logger.warning("Cannot decode %s: %s", source.path.name, exc, extra=log_extra)
            return outcome

        outcome.state = FileState.DECODED
        outcome.skipped_duration = document.skipped_duration
        outcome.failed = len(document.errors)
        summary.records_skipped_duration += document.skipped_duration
        summary.records_failed += len(document.errors)
        for record_error in document.errors:
            summary.errors.append(f"{source.path}: {record_error}")
            logger.warning("Skipping %s in %s", record_error, source.path.name, extra=log_extra)

        outcome.state = FileState.PERSISTING
        try:
            result = await self._sink.persist(document.events)
        except StoreUnavailableError as exc:
            outcome.state = FileState.PERSIST_FAILED
            outcome.error = str(exc)
            summary.files_failed += 1
            summary.fatal_error = str(exc)
            logger.error("Store unavailable while persisting %s: %s", source.path.name, exc, extra=log_extra)
            return outcome
        except SinkError as exc:
            outcome.state = FileState.PERSIST_FAILED
            outcome.error = str(exc)
            outcome.failed += len(document.events)
            summary.files_failed += 1
            summary.records_failed += len(document.events)
            summary.errors.append(f"{source.path}: {exc}")
            logger.error("Cannot persist %s: %s", source.path.name, exc, extra=log_extra)
            return outcome

        outcome.state = FileState.PERSISTED
        outcome.inserted = result.inserted
        outcome.duplicates = result.duplicates
        outcome.failed += result.failed
        summary.files_processed += 1
        summary.records_inserted += result.inserted
        summary.records_duplicate += result.duplicates
        summary.records_failed += result.failed
        summary.errors.extend(f"{source.path}: {error}" for error in result.errors)

        logger.info(
            "Persisted %s: %d inserted, %d duplicates, %d short, %d failed",
            source.path.name,
            outcome.inserted,
            outcome.duplicates,
            outcome.skipped_duration,
            outcome.failed,
            extra=log_extra,
        )
        return outcome

    @staticmethod
    def _log_summary(summary: IngestionSummary) -> None:
        logger.info(
            "Ingestion finished: files=%d failed_files=%d inserted=%d duplicates=%d short=%d failed=%d%s",
            summary.files_processed,
            summary.files_failed,
            summary.records_inserted,
            summary.records_duplicate,
            summary.records_skipped_duration,
            summary.records_failed,
            " (cancelled)" if summary.cancelled else "",
        )
