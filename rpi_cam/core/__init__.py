"""Shared infrastructure: logging, configuration, errors and task bookkeeping."""

from .errors import (
    CaptureResult,
    CaptureToolError,
    ConfigError,
    DuplicateTaskIdError,
    ErrorKind,
    OptionsError,
    ResultError,
    RpiCamError,
)
from .logging_utils import get_module_logger

__all__ = [
    "CaptureResult",
    "CaptureToolError",
    "ConfigError",
    "DuplicateTaskIdError",
    "ErrorKind",
    "OptionsError",
    "ResultError",
    "RpiCamError",
    "get_module_logger",
]
