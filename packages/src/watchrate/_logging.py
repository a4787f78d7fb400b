"""Logging configuration and structured JSON formatter.

watchrate is a short-lived terminal program, so the default output is
plain text on stderr.  For long-term record keeping the same events
can be written as JSON lines (one object per record) to a rotating
log file, which keeps every sync and measurement auditable next to
the database.

Modules log through ``logging.getLogger(__name__)``.  Calls that
concern a specific watch pass ``extra={"watch": name}`` (plus ``kind``
and, for measurements, ``daily_rate``); the JSON formatter lifts those
attributes into their own fields.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import Any

from watchrate._settings import LoggingSettings

_MEGABYTE = 1024 * 1024

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Attributes passed through ``extra`` that become top-level JSON fields.
_RECORD_FIELDS = ("watch", "kind", "daily_rate")


class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects (NDJSON).

    Fields: ``timestamp`` (UTC ISO 8601), ``level``, ``logger``,
    ``message``, ``service``, plus ``version`` when non-empty, the
    measurement-log fields ``watch``, ``kind`` and ``daily_rate`` when
    the record carries them, and ``exception`` / ``stack_info`` when
    present.

    Args:
        service: Application name included in every log line.
        version: Application version string.  Omitted from
            output when empty.
    """

    def __init__(
        self,
        *,
        service: str = "",
        version: str = "",
    ) -> None:
        super().__init__()
        self._service = service
        self._version = version

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self._service,
        }

        if self._version:
            entry["version"] = self._version

        for name in _RECORD_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


def configure_logging(
    settings: LoggingSettings,
    *,
    service: str = "watchrate",
    version: str = "",
) -> None:
    """Configure the root logger from settings.

    Clears any existing handlers on the root logger, installs a
    stderr :class:`logging.StreamHandler` and, when ``settings.file``
    is set, a :class:`~logging.handlers.RotatingFileHandler` of
    ``settings.max_file_size_mb`` megabytes.

    Args:
        settings: Logging configuration (level, format, file).
        service: Application name passed to :class:`JsonFormatter`.
        version: Application version passed to :class:`JsonFormatter`.
    """
    root = logging.getLogger()

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if settings.format == "json":
        formatter: logging.Formatter = JsonFormatter(service=service, version=version)
    else:
        formatter = logging.Formatter(_TEXT_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if settings.file is not None:
        file_handler = RotatingFileHandler(
            settings.file,
            maxBytes=settings.max_file_size_mb * _MEGABYTE,
            backupCount=settings.backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(settings.level)
