"""Discovery of event files inside extracted export trees.

Expected layout::

    <root>/<export name>/<platform history dir>/*.json

Only that exact nesting is searched. Contents are not opened here.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

from muzi.zip_import.models import SourceFile
from muzi.zip_import.platforms import Platform, get_profile

logger = logging.getLogger(__name__)


def find_event_files(root_dir: str | Path, platform: Platform | str = Platform.SPOTIFY) -> Iterator[SourceFile]:
    """Lazily yield candidate event files under ``root_dir`` in sorted order.

    Each call starts a fresh walk, so the sequence can be restarted by calling
    again.
    """
    profile = get_profile(platform)
    root = Path(root_dir)

    for export_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        history_dir = export_dir / profile.history_dir
        if not history_dir.is_dir():
            logger.debug("No %r directory in %s, skipping", profile.history_dir, export_dir)
            continue

        for path in sorted(history_dir.iterdir()):
            if path.is_file() and profile.accepts_filename(path.name):
                yield SourceFile(path=path, platform=profile.platform)
