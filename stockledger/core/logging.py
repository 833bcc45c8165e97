from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from stockledger.core.config import get_settings

_LOGGER_PREFIX = "stockledger"
_TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}

_configured = False
_lock = threading.Lock()


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; `extra=` fields are merged into the envelope."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            code = getattr(exc, "code", None)
            if code is not None:
                payload["exc_code"] = code
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def configure_logging(
    level: str | int | None = None,
    json_lines: bool | None = None,
    stream: Any = None,
) -> None:
    """Attach a single handler to the ``stockledger`` logger. Safe to call repeatedly."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    settings = get_settings()
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if json_lines is None:
        json_lines = settings.log_json

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonLineFormatter() if json_lines else logging.Formatter(_TEXT_FORMAT))

    package_logger = logging.getLogger(_LOGGER_PREFIX)
    package_logger.setLevel(level)
    package_logger.addHandler(handler)


def reset_logging() -> None:
    global _configured
    with _lock:
        _configured = False
    package_logger = logging.getLogger(_LOGGER_PREFIX)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
