"""Main entry point for the streaming history ingestor."""

import asyncio
import logging
import signal
import sys
from pathlib import Path

from ingestor.pipeline import IngestionPipeline, IngestionSummary
from ingestor.settings import ImporterSettings
from muzi.db import DatabaseManager, HistorySink
from muzi.logging import configure_logging

logger = logging.getLogger(__name__)


def _register_shutdown_signals(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event) -> None:
    """Register signal handlers that stop the run after the current file."""

    def _signal_handler_sync(signum: int, _frame: object) -> None:
        logger.info("Shutdown signal received (signal %d)", signum)
        loop.call_soon_threadsafe(stop_event.set)

    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)
    else:
        # Windows: loop.add_signal_handler is not supported
        signal.signal(signal.SIGTERM, _signal_handler_sync)
        signal.signal(signal.SIGINT, _signal_handler_sync)


def ensure_directories(*paths: Path) -> None:
    """Create the working directories if they don't exist."""
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


async def main() -> IngestionSummary:
    """Import every archive in the configured archive directory."""
    settings = ImporterSettings()
    configure_logging("ingestor", settings.LOG_LEVEL, settings.LOG_JSON)
    logger.info("Streaming history ingestor starting...")

    archive_dir = Path(settings.IMPORT_ARCHIVE_DIR)
    extract_dir = Path(settings.IMPORT_EXTRACT_DIR)
    ensure_directories(archive_dir, extract_dir)

    stop_event = asyncio.Event()
    _register_shutdown_signals(asyncio.get_running_loop(), stop_event)

    async with DatabaseManager.from_env() as db_manager:
        pipeline = IngestionPipeline(HistorySink(db_manager), settings.IMPORT_PLATFORM)
        summary = await pipeline.import_archives(archive_dir, extract_dir, stop_event)

    logger.info("Ingestor shut down complete")
    return summary


def run() -> None:
    """Console script entry point; exits non-zero if the run was aborted or cancelled."""
    summary = asyncio.run(main())
    sys.exit(0 if summary.ok else 1)


if __name__ == "__main__":
    run()
