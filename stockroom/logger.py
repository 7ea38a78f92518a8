"""
Structured Logging.

Every log line is a single JSON object so the audit trail and the
operational log can be shipped and queried the same way::

    {"timestamp": "...", "level": "INFO", "logger_name": "stockroom.services",
     "message": "Category created: Beverages (c1)", "extra": {"event": "..."}}

``StructuredLogger`` is injected into every repository and service.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO

# Attributes every LogRecord carries; anything else came in via ``extra=``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.makeLogRecord({})).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Keys: ``timestamp`` (UTC ISO-8601), ``level``, ``logger_name``,
    ``message``, plus ``extra`` for caller-supplied fields and
    ``exception`` when a traceback is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        extra = {k: str(v) for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exception"] = record.exc_text

        return json.dumps(payload, ensure_ascii=False)


class StructuredLogger:
    """Thin wrapper around a named ``logging.Logger`` with JSON handlers.

    Handlers are attached only the first time a name is used, so creating
    several ``StructuredLogger`` objects for one name does not duplicate
    output.  The rotating file handler is skipped with ``log_to_file=False``
    and dropped, with a warning, when the file cannot be created.

        log = StructuredLogger(name="stockroom.services")
        log.warning("Sales history reset.", extra={"event": "RESET_SALES_HISTORY"})
    """

    def __init__(
        self,
        name: str = "stockroom",
        level: int = logging.INFO,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
        log_to_file: bool = True,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        if self._logger.handlers:
            return

        formatter = JSONFormatter()
        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        if log_to_file:
            file_handler = self._rotating_file_handler(log_file, max_bytes, backup_count)
            if file_handler is not None:
                file_handler.setFormatter(formatter)
                self._logger.addHandler(file_handler)

    def _rotating_file_handler(
        self,
        log_file: Optional[str],
        max_bytes: Optional[int],
        backup_count: Optional[int],
    ) -> Optional[RotatingFileHandler]:
        # Imported here: stockroom.config logs through this module.
        from stockroom.config import get_config

        config = get_config()
        path = Path(log_file or config.LOG_FILE)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return RotatingFileHandler(
                filename=str(path),
                maxBytes=config.LOG_MAX_BYTES if max_bytes is None else max_bytes,
                backupCount=config.LOG_BACKUP_COUNT if backup_count is None else backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Log file '%s' unavailable (%s); logging to the console only.", path, exc,
            )
            return None

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.critical(msg, *args, **kwargs)


def get_logger(name: str = "stockroom") -> StructuredLogger:
    """Return a ``StructuredLogger`` for *name* with the configured file handler."""
    return StructuredLogger(name=name)
