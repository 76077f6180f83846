"""Loguru sinks for harness runs.

Every record carries a ``component`` extra (``input``, ``watch``, ``store``,
``session`` ...) so interleaved output from a script run can be filtered per
subsystem. File output goes to ``dosharness.log`` in the configured or
``DOSHARNESS_LOG_DIR`` directory.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FILE_NAME = "dosharness.log"

_TEXT_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "[<cyan>{extra[component]}</cyan>] "
    "{message}"
)
_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} | "
    "{name}:{function}:{line} - {message}"
)


def _default_log_dir() -> Path | None:
    base = os.environ.get("DOSHARNESS_LOG_DIR")
    return Path(base) if base else None


def _add_file_sink(
    log_dir: Path, level: str, serialize: bool, retention_days: int
) -> None:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("File logging disabled, cannot create {}: {}", log_dir, exc)
        return
    logger.add(
        log_dir / LOG_FILE_NAME,
        rotation="1 day",
        retention=f"{retention_days} days",
        compression="gz",
        level=level,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
        format=_FILE_FORMAT,
    )


def configure_logging(
    log_dir: Path | str | None = None,
    level: str = "INFO",
    *,
    serialize: bool = False,
    retention_days: int = 14,
) -> None:
    """Replace all sinks with a console sink and, if a directory is known, a file sink.

    ``serialize`` switches both sinks to loguru's JSON lines.
    """

    logger.remove()
    logger.configure(extra={"component": "harness"})
    if serialize:
        logger.add(sys.stdout, level=level, serialize=True)
    else:
        logger.add(sys.stdout, format=_TEXT_FORMAT, colorize=True, level=level)

    if log_dir is None:
        log_dir = _default_log_dir()
    if log_dir is not None:
        _add_file_sink(Path(log_dir), level, serialize, retention_days)


def get_logger(name: Optional[str] = None):
    """Logger bound to ``name`` as its component."""

    if name:
        return logger.bind(component=name)
    return logger
