"""Logging setup for the treewatch command line."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_LOG_FORMAT = "%(message)s"
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5


def configure_logging(log_path: Path | None = None, *, level: int = logging.INFO) -> logging.Logger:
    """Send the ``treewatch`` logger to *log_path*, or to stderr without one.

    Handlers from an earlier call are replaced.
    """

    logger = logging.getLogger("treewatch")
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = RotatingFileHandler(
            log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    return logger


def log_event(
    logger: logging.Logger,
    *,
    level: int,
    action: str,
    message: str,
    extra: dict[str, Any] | None = None,
) -> None:
    """Emit one JSON object describing *action* at *level*."""

    payload: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "level": logging.getLevelName(level),
        "action": action,
        "message": message,
    }
    if extra:
        payload.update(extra)
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


__all__ = ["configure_logging", "log_event"]
