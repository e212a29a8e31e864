"""Error taxonomy and the structured result returned by fallible operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Machine-readable failure kinds (values are the wire names)."""

    DEVICE_BUSY = "CAMERA_BUSY_ALREADY"
    NOT_RESERVED = "NOT_RESERVED"
    UNKNOWN_TASK_ID = "BAD_ID"
    DUPLICATE_TASK_ID = "DUPLICATE_ID"
    STILL_CAPTURE_FAILED = "CAMERA_STILLING_INTERNAL_ERROR"
    VIDEO_CAPTURE_FAILED = "CAMERA_VIDEO_INTERNAL_ERROR"
    LIST_FAILED = "CAMERA_LIST_ERROR"
    CANCEL_ALL_FAILED = "KILLING_ALL_ID_ERROR"


@dataclass(frozen=True, slots=True)
class ResultError:
    kind: ErrorKind
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(slots=True)
class CaptureResult:
    """Outcome of an operation: ``output`` on success, ``error`` on failure.

    ``output`` holds captured stdout bytes for buffered operations and the
    live process handle for streamed ones.
    """

    success: bool
    output: Any = None
    error: Optional[ResultError] = None

    @classmethod
    def ok(cls, output: Any = None) -> "CaptureResult":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "CaptureResult":
        return cls(success=False, error=ResultError(kind, message))

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if isinstance(self.output, (bytes, bytearray)):
            data["output_bytes"] = len(self.output)
        return data


class RpiCamError(Exception):
    """Base exception for all rpi-cam errors."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None):
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class DuplicateTaskIdError(RpiCamError):
    """Raised when a task id is already taken by a live task."""

    kind = ErrorKind.DUPLICATE_TASK_ID

    def __init__(self, task_id: str, operation: Optional[str] = None):
        self.task_id = task_id
        prefix = f"'{operation}', " if operation else ""
        super().__init__(f"{prefix}id must be unique! ({task_id!r} is already running)")


class CaptureToolError(RpiCamError):
    """Raised when a capture tool cannot be spawned or exits non-zero."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        returncode: Optional[int] = None,
        stderr: bytes = b"",
        argv: Optional[list[str]] = None,
    ):
        self.returncode = returncode
        self.stderr = stderr or b""
        self.argv = list(argv) if argv else []
        super().__init__(message, kind=kind)

    def to_result(self) -> CaptureResult:
        return CaptureResult.fail(self.kind, str(self))


class OptionsError(RpiCamError, ValueError):
    """Raised for capture options that cannot be mapped to tool flags."""


class ConfigError(RpiCamError):
    """Raised when a configuration file cannot be used."""


__all__ = [
    "ErrorKind",
    "ResultError",
    "CaptureResult",
    "RpiCamError",
    "DuplicateTaskIdError",
    "CaptureToolError",
    "OptionsError",
    "ConfigError",
]
