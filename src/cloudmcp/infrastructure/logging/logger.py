# src/cloudmcp/infrastructure/logging/logger.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Structured JSON logging utilities.

This module exposes an idempotent root configurator and a per-module logger
factory that produce JSON logs on standard error. Standard output is owned by
the JSON-RPC dispatcher and must never receive log lines.

Features:
    * Stable keys: ``ts``, ``level``, ``logger``, ``message``.
    * ``extra={"extra": {...}}`` dicts are merged into the payload.
    * Extra keys naming secrets (token, password, ...) are masked.
    * Optional size-rotated log file with age-based pruning of backups.

Typical usage:
    configure_root_logging("info")
    log = get_json_logger(__name__)
    log.info("config_loaded", extra={"extra": {"path": str(path)}})
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final

__all__ = ["configure_root_logging", "get_json_logger", "resolve_level"]

_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset(
    {"token", "password", "authorization", "secret", "api_key"}
)
_MASK: Final[str] = "[REDACTED]"
_LEVEL_ALIASES: Final[dict[str, int]] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
_HANDLER_MARK: Final[str] = "_cloudmcp_handler"


def _mask_sensitive(extra: dict[str, Any]) -> dict[str, Any]:
    masked: dict[str, Any] = {}
    for key, value in extra.items():
        if key.lower() in _SENSITIVE_KEYS and value:
            masked[key] = _MASK
        else:
            masked[key] = value
    return masked


class _JsonFormatter(logging.Formatter):
    """JSON log formatter emitting stable keys and optional extras."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON object.

        Args:
            record: Logging record.

        Returns:
            str: JSON-encoded log line.
        """
        payload: dict[str, Any] = {
            "ts": datetime.now(tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            if exc_type is not None:
                payload["exc_type"] = exc_type.__name__
            if exc_value is not None:
                payload["exc_message"] = str(exc_value)

        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(_mask_sensitive(extra))

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def resolve_level(level: str | int | None) -> int:
    """Map a level name (``debug|info|warn|warning|error``) or number to ``logging``.

    Unknown names fall back to ``INFO``.
    """
    if isinstance(level, int):
        return level
    if not level:
        return logging.INFO
    return _LEVEL_ALIASES.get(level.strip().lower(), logging.INFO)


def _prune_old_backups(log_file: Path, max_age_days: int) -> None:
    if max_age_days <= 0 or not log_file.parent.is_dir():
        return
    cutoff = time.time() - max_age_days * 86400
    for backup in log_file.parent.glob(f"{log_file.name}.*"):
        try:
            if backup.stat().st_mtime < cutoff:
                backup.unlink()
        except OSError:
            continue


def configure_root_logging(
    level: str | int | None = None,
    *,
    log_file: str | os.PathLike[str] | None = None,
    max_size_mb: int = 10,
    max_backups: int = 5,
    max_age_days: int = 30,
) -> None:
    """Initialize the root logger with JSON handlers (idempotent).

    Args:
        level: Level name or number. If ``None``, use env ``LOG_LEVEL`` or ``info``.
        log_file: Optional path of a size-rotated log file.
        max_size_mb: Rotation threshold of the log file, in megabytes.
        max_backups: Number of rotated files kept.
        max_age_days: Rotated files older than this are deleted at configure time.
    """
    root = logging.getLogger()
    root.setLevel(resolve_level(level if level is not None else os.getenv("LOG_LEVEL")))

    # Each handler kind is installed once; a later call may add the file handler.
    ours = [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]
    has_file = any(isinstance(h, logging.handlers.RotatingFileHandler) for h in ours)
    formatter = _JsonFormatter()

    if not any(not isinstance(h, logging.handlers.RotatingFileHandler) for h in ours):
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        setattr(stream_handler, _HANDLER_MARK, True)
        root.addHandler(stream_handler)

    if log_file and not has_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True, mode=0o750)
        _prune_old_backups(path, max_age_days)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max(max_size_mb, 1) * 1024 * 1024,
            backupCount=max(max_backups, 0),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARK, True)
        root.addHandler(file_handler)


def get_json_logger(name: str) -> logging.Logger:
    """Return a module-specific logger backed by the JSON root handler.

    This does *not* implicitly configure the root logger. Call
    :func:`configure_root_logging` once at startup.

    Args:
        name: Logger name, typically ``__name__`` of the caller.

    Returns:
        logging.Logger: Configured logger.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    # Delegate formatting and level to the root logger.
    logger.propagate = True
    return logger
