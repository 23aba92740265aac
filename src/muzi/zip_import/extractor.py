"""Safe extraction of export archives onto disk."""

import logging
import shutil
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from muzi.exceptions import ArchiveUnreadableError, UnsafePathError
from muzi.zip_import.constants import EXTRACT_CHUNK_SIZE
from muzi.zip_import.models import ArchiveEntry, ExtractionReport, SkippedEntry

logger = logging.getLogger(__name__)

# Errors that spoil a single member but leave the rest of the archive readable
# (CRC mismatch, truncated or corrupt deflate stream, encrypted member, disk I/O).
_ENTRY_ERRORS = (OSError, EOFError, RuntimeError, zipfile.BadZipFile, zlib.error)


def resolve_entry_path(target_dir: Path, entry_name: str) -> Path:
    """Return where ``entry_name`` lands under ``target_dir``.

    Raises UnsafePathError for absolute names, ``..`` segments, or anything
    that resolves outside ``target_dir``.
    """
    normalized = entry_name.replace("\\", "/")
    posix = PurePosixPath(normalized)
    parts = [part for part in posix.parts if part not in ("", ".")]

    if posix.is_absolute() or not parts or ".." in parts:
        raise UnsafePathError(entry_name)

    root = target_dir.resolve()
    destination = root.joinpath(*parts).resolve()
    if destination == root or not destination.is_relative_to(root):
        raise UnsafePathError(entry_name)
    return destination


def extract_archive(archive_path: str | Path, target_dir: str | Path) -> ExtractionReport:
    """Extract every member of a zip archive into ``target_dir``.

    Every entry path is validated before anything is written, so an unsafe
    archive leaves the filesystem untouched. Members that cannot be read or
    written are recorded in the report and the remaining members are still
    extracted.

    Raises:
        ArchiveUnreadableError: the archive cannot be opened.
        UnsafePathError: an entry would escape ``target_dir``.
    """
    archive_path = Path(archive_path)
    target_dir = Path(target_dir)

    try:
        archive = zipfile.ZipFile(archive_path, "r")
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveUnreadableError(str(archive_path), str(exc)) from exc

    report = ExtractionReport(archive_path=archive_path, target_dir=target_dir)

    with archive:
        planned = [
            (entry, resolve_entry_path(target_dir, entry.name))
            for entry in (ArchiveEntry.from_info(info) for info in archive.infolist())
        ]

        target_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Extracting %d entries from %s into %s", len(planned), archive_path, target_dir)

        for entry, destination in planned:
            try:
                if entry.is_dir:
                    destination.mkdir(parents=True, exist_ok=True)
                    report.directories.append(destination)
                else:
                    _extract_member(archive, entry, destination)
                    report.files.append(destination)
            except _ENTRY_ERRORS as exc:
                logger.warning("Skipping archive entry %s: %s", entry.name, exc)
                report.skipped.append(SkippedEntry(name=entry.name, reason=str(exc)))

    logger.info(
        "Extracted %s: %d files, %d directories, %d skipped",
        archive_path.name,
        len(report.files),
        len(report.directories),
        len(report.skipped),
    )
    return report


def _extract_member(archive: zipfile.ZipFile, entry: ArchiveEntry, destination: Path) -> None:
    """Stream one member to disk in fixed-size chunks, removing partial output on failure."""
    destination.parent.mkdir(parents=True, exist_ok=True)

    with entry.open(archive) as source:
        written = False
        try:
            with destination.open("wb") as sink:
                written = True
                shutil.copyfileobj(source, sink, EXTRACT_CHUNK_SIZE)
        except _ENTRY_ERRORS:
            if written:
                destination.unlink(missing_ok=True)
            raise
