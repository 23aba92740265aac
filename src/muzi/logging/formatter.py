"""Line-oriented JSON rendering of log records."""

import json
import logging
from datetime import UTC, datetime

# Set through ``extra=`` by the pipeline so per-archive and per-file lines can be filtered.
_CONTEXT_FIELDS = ("archive", "file")


class JSONLogFormatter(logging.Formatter):
    """One JSON object per record, e.g.::

        {"timestamp": "2024-01-01T00:00:00+00:00", "level": "WARNING",
         "service": "ingestor", "logger": "ingestor.pipeline",
         "message": "Cannot decode ...", "file": "Streaming_History_Audio_2021.json"}
    """

    def __init__(self, service: str = "ingestor") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        entry: dict[str, object] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {name: getattr(record, name) for name in _CONTEXT_FIELDS if getattr(record, name, None)}
        )

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
