"""Loguru helpers for the worker's side channel and optional log files."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_SINK_IDS: dict[str, int] = {}

STDERR_FORMAT = "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <7}</level> | ssr-worker | {message}"


def configure_stderr_logging(level: str = "INFO") -> None:
    """Route all loguru output to stderr; stdout is reserved for protocol frames."""
    logger.remove()
    _SINK_IDS.clear()
    _SINK_IDS["stderr"] = logger.add(
        sys.stderr,
        level=level.upper(),
        format=STDERR_FORMAT,
        backtrace=False,
        diagnose=False,
    )


def ensure_rotating_log_file(path: str | Path, level: str = "INFO") -> Path:
    """Ensure a rotating log sink at the given path."""
    log_path = Path(path).expanduser()
    key = str(log_path)
    if key in _SINK_IDS:
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    sink_id = logger.add(
        str(log_path),
        level=level.upper(),
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[key] = sink_id
    return log_path
