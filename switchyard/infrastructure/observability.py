"""Structured Logging - request-scoped log records for the dispatch path.

Invariants:
    - Every record carries timestamp, level, logger name, and message
    - Request fields (operation_id, method, path, error_code, status_code)
      and endpoint_count are surfaced only when a call site passed them
    - The timestamp is the record's creation time, not the formatting time
    - setup_logging is idempotent: calling it twice never duplicates output

Design Decisions:
    - JSON for machines, a "key=value" suffix for humans; both read the same
      field list so switching SWITCHYARD_LOG_FORMAT loses nothing
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterator, Sequence

REQUEST_FIELDS = (
    "operation_id", "method", "path", "error_code",
    "status_code", "endpoint_count",
)


def _request_fields(record: logging.LogRecord, fields: Sequence[str]) -> Iterator[tuple[str, Any]]:
    for key in fields:
        value = getattr(record, key, None)
        if value is not None:
            yield key, value


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, fields: Sequence[str] = REQUEST_FIELDS):
        super().__init__()
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_request_fields(record, self.fields))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        # UUIDs and enums in extras
        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable line with request fields appended as key=value."""

    def __init__(self, fields: Sequence[str] = REQUEST_FIELDS):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        suffix = " ".join(f"{k}={v}" for k, v in _request_fields(record, self.fields))
        return f"{line} [{suffix}]" if suffix else line


class _SwitchyardHandler(logging.StreamHandler):
    """Marker type so repeated setup replaces instead of stacking handlers."""


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the Switchyard handler on the root logger."""
    handler = _SwitchyardHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, _SwitchyardHandler)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
