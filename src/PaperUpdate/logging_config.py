"""
Structured Logging Utilities

This module centralizes logging setup for the updater. The console handler
prints terse ``LEVEL: message`` lines for operators; when a log directory is
configured, a rotating JSONL handler records the same events together with
their structured ``extra`` fields so unattended runs (cron, systemd timers)
can be audited later.
"""

from __future__ import annotations

import gzip
import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from .settings import LoggingConfiguration

LOGGER_NAME = "PaperUpdate"

_RESERVED_RECORD_FIELDS = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def _structured_fields(record: logging.LogRecord) -> Dict[str, object]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_RECORD_FIELDS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        """Serialize a logging record into a JSON line.

        Args:
            record: Log record emitted by the updater components.

        Returns:
            JSON string carrying the message, level, and any ``extra`` fields.
        """
        now = datetime.now(timezone.utc)
        log_obj: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_obj.update(_structured_fields(record))
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def _compress_old_log(path: Path) -> None:
    compressed_path = path.with_suffix(path.suffix + ".gz")
    with path.open("rb") as source, gzip.open(compressed_path, "wb") as target:
        target.write(source.read())
    path.unlink(missing_ok=True)


def _cleanup_logs(log_dir: Path, retention_days: int) -> None:
    """Compress JSONL logs past retention and delete compressed ones past it."""

    now = datetime.now(timezone.utc)
    retention_delta = timedelta(days=retention_days)
    for file in log_dir.glob("*.jsonl"):
        mtime = datetime.fromtimestamp(file.stat().st_mtime, tz=timezone.utc)
        if now - mtime > retention_delta:
            _compress_old_log(file)
    for file in log_dir.glob("*.jsonl.gz"):
        mtime = datetime.fromtimestamp(file.stat().st_mtime, tz=timezone.utc)
        if now - mtime > retention_delta:
            file.unlink(missing_ok=True)


def setup_logging(
    config: LoggingConfiguration,
    *,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Configure console and optional JSONL handlers for the updater.

    Args:
        config: Logging configuration containing level, size, and retention.
        verbose: Force DEBUG level so step-by-step diagnostics are shown.
        log_dir: Optional directory override for JSONL log placement.

    Returns:
        Configured logger instance scoped to the updater.

    Examples:
        >>> logger = setup_logging(LoggingConfiguration(level="INFO"))
        >>> logger.name
        'PaperUpdate'
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if verbose else getattr(logging, config.level.upper(), logging.INFO)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_paperupdate_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._paperupdate_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    target_dir = log_dir or config.log_dir
    if target_dir is not None:
        target_dir.mkdir(parents=True, exist_ok=True)
        _cleanup_logs(target_dir, config.retention_days)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            target_dir / f"paper-update-{today}.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=5,
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._paperupdate_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


__all__ = ["LOGGER_NAME", "JSONFormatter", "setup_logging"]
