"""Structured logging helpers shared across update-check components.

Modules log through ``logging.getLogger(__name__)`` and attach run context with
``extra={...}``.  The console shows only the message; the optional JSON-lines
file keeps every ``extra`` field so failures can be reconstructed afterwards.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = ["LOGGER_NAME", "JSONFormatter", "setup_logging"]

LOGGER_NAME = "PaperFetch"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_MANAGED_FLAG = "_paperfetch_managed"
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record, ``extra`` fields included."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                payload.setdefault(key, value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _install(
    logger: logging.Logger, handler: logging.Handler, formatter: logging.Formatter
) -> None:
    handler.setFormatter(formatter)
    setattr(handler, _MANAGED_FLAG, True)
    logger.addHandler(handler)


def setup_logging(*, level: str = "INFO", log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure the ``PaperFetch`` logger for one CLI run.

    Installs a console handler on stdout and, when ``log_dir`` is given, a
    rotating ``paperfetch-YYYYMMDD.jsonl`` file.  Handlers from an earlier
    call are replaced; records do not propagate to the root logger.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in [h for h in logger.handlers if getattr(h, _MANAGED_FLAG, False)]:
        logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    _install(logger, logging.StreamHandler(sys.stdout), logging.Formatter(CONSOLE_FORMAT))
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            log_dir / f"paperfetch-{today}.jsonl",
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        _install(logger, file_handler, JSONFormatter())

    logger.propagate = False
    return logger
