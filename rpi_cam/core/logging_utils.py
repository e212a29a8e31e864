"""Component-tagged loggers for rpi-cam.

Every logger lives under the ``rpi_cam`` namespace and prefixes its messages
with ``[Component]`` so interleaved output from several cameras stays
readable, e.g. ``[CaptureOrchestrator.cam1.tasks] Registered ...``.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

NAMESPACE = "rpi_cam"
DEFAULT_COMPONENT = "Core"


def _qualified_name(name: Optional[str]) -> str:
    if not name:
        return NAMESPACE
    if name == NAMESPACE or name.startswith(NAMESPACE + "."):
        return name
    return f"{NAMESPACE}.{name}"


def _component_for(logger_name: str) -> str:
    if logger_name == NAMESPACE:
        return DEFAULT_COMPONENT
    if logger_name.startswith(NAMESPACE + "."):
        return logger_name[len(NAMESPACE) + 1:]
    return logger_name or DEFAULT_COMPONENT


class StructuredLogger:
    """Wraps a ``logging.Logger`` and tags every message with its component."""

    __slots__ = ("_logger", "_component", "_prefix")

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        self._logger = logger
        self._component = component or _component_for(logger.name)
        self._prefix = f"[{self._component}] "

    def __getattr__(self, item):
        # setLevel, isEnabledFor, handlers, ...
        return getattr(self._logger, item)

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def component(self) -> str:
        return self._component

    def _render(self, message: object, args: tuple) -> str:
        text = str(message)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} | args={' '.join(map(str, args))}"
        if text.startswith(self._prefix):
            return text
        return self._prefix + text

    def log(self, level: int, message: object, *args, **kwargs) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self._render(message, args), **kwargs)

    def debug(self, message: object, *args, **kwargs) -> None:
        self.log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: object, *args, **kwargs) -> None:
        self.log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: object, *args, **kwargs) -> None:
        self.log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: object, *args, **kwargs) -> None:
        self.log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: object, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, message, *args, **kwargs)

    def getChild(self, suffix: str) -> "StructuredLogger":
        return StructuredLogger(self._logger.getChild(suffix), component=f"{self._component}.{suffix}")


LoggerLike = Union[StructuredLogger, logging.Logger, None]


def ensure_structured_logger(
    logger: LoggerLike,
    *,
    component: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Return ``logger`` as a StructuredLogger, or a fresh one named ``fallback_name``."""
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger, component=component)
    return get_module_logger(fallback_name)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(_qualified_name(name)))


__all__ = [
    "StructuredLogger",
    "LoggerLike",
    "ensure_structured_logger",
    "get_module_logger",
]
