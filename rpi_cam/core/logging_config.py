"""Root logging setup for rpi-cam entry points.

Console output always goes to stderr: ``rpi-cam still --output -`` writes the
JPEG itself to stdout.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

_configured = False


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    try:
        return LOG_LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level '{level}'") from None


def _build_handlers(
    console: bool,
    log_file: Optional[Union[str, Path]],
    max_bytes: int,
    backup_count: int,
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"))
    return handlers


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    force: bool = False,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 500 * 1024,
    backup_count: int = 2,
    suppressed_loggers: Iterable[str] = ("aiohttp.access",),
) -> None:
    """Install the rpi-cam handlers on the root logger.

    A second call only adjusts levels unless ``force`` is set, in which case
    the existing root handlers are closed and replaced.

    Args:
        level: Level name ("debug", "info", ...) or number.
        force: Rebuild the handlers even if logging is already configured.
        console: Log to stderr.
        log_file: Also log to this file, rotated at ``max_bytes``.
        suppressed_loggers: Loggers raised to ERROR; aiohttp's access log by
            default since requests are logged by the API middleware.
    """
    global _configured
    numeric_level = _coerce_level(level)
    root = logging.getLogger()

    if force or not _configured:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            with contextlib.suppress(Exception):
                handler.close()

        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
        for handler in _build_handlers(console, log_file, max_bytes, backup_count):
            handler.setFormatter(formatter)
            root.addHandler(handler)
        if not root.handlers:
            root.addHandler(logging.NullHandler())
        _configured = True

    root.setLevel(numeric_level)
    for handler in root.handlers:
        handler.setLevel(numeric_level)
    for name in suppressed_loggers:
        logging.getLogger(name).setLevel(logging.ERROR)


__all__ = ["configure_logging", "LOG_FORMAT", "LOG_DATEFMT", "LOG_LEVELS"]
