"""Per-device table of running capture processes keyed by caller-chosen ids."""

from __future__ import annotations

import os
import signal
import threading
import time
from dataclasses import dataclass
from typing import Optional

from rpi_cam.core.errors import CaptureResult, DuplicateTaskIdError, ErrorKind
from rpi_cam.core.logging_utils import LoggerLike, ensure_structured_logger


@dataclass(frozen=True, slots=True)
class TaskRecord:
    task_id: str
    pid: int
    created: float


class TaskRegistry:
    """Track ``{id, pid}`` pairs and deliver cancellation signals.

    Entries are added by the operation that spawned the process and removed
    by that same operation when the process settles; cancelling only sends a
    signal. All access is serialized with a lock so the registry can be shared
    with worker threads.
    """

    def __init__(self, name: Optional[str] = None, logger: LoggerLike = None) -> None:
        self._name = name or "TaskRegistry"
        self._logger = ensure_structured_logger(logger, fallback_name=self._name)
        self._lock = threading.Lock()
        self._records: dict[str, TaskRecord] = {}

    # ------------------------------------------------------------------
    # registration

    def ensure_available(self, task_id: str, operation: Optional[str] = None) -> None:
        """Raise ``DuplicateTaskIdError`` if ``task_id`` is currently live."""
        with self._lock:
            if task_id in self._records:
                raise DuplicateTaskIdError(task_id, operation)

    def register(self, task_id: str, pid: int, operation: Optional[str] = None) -> TaskRecord:
        with self._lock:
            if task_id in self._records:
                raise DuplicateTaskIdError(task_id, operation)
            record = TaskRecord(task_id=task_id, pid=pid, created=time.monotonic())
            self._records[task_id] = record
        self._logger.debug("Registered task %s (pid %d)", task_id, pid)
        return record

    def remove(self, task_id: str) -> bool:
        with self._lock:
            record = self._records.pop(task_id, None)
        if record is None:
            return False
        self._logger.debug(
            "Removed task %s (pid %d) after %.1fs",
            task_id,
            record.pid,
            time.monotonic() - record.created,
        )
        return True

    # ------------------------------------------------------------------
    # cancellation

    def cancel(self, task_id: str, force: bool = True) -> CaptureResult:
        """Signal the process behind ``task_id``.

        ``force`` sends SIGKILL, otherwise SIGTERM. Unknown ids are reported
        as a ``BAD_ID`` failure rather than raised.
        """
        with self._lock:
            record = self._records.get(task_id)

        if record is None:
            self._logger.debug("Cancel requested for unknown task %s", task_id)
            return CaptureResult.fail(ErrorKind.UNKNOWN_TASK_ID, "id not exists in tasks!")

        sig = signal.SIGKILL if force else signal.SIGTERM
        self._signal(record, sig)
        self._logger.info("Sent %s to task %s (pid %d)", sig.name, task_id, record.pid)
        return CaptureResult.ok()

    def cancel_all(self, force: bool = False) -> CaptureResult:
        """Signal every tracked process; failures are reported as one aggregate."""
        with self._lock:
            records = list(self._records.values())

        sig = signal.SIGKILL if force else signal.SIGTERM
        failures: list[str] = []
        for record in records:
            try:
                self._signal(record, sig)
            except OSError as exc:
                failures.append(f"{record.task_id}: {exc}")

        if failures:
            self._logger.warning("Failed to signal %d of %d task(s)", len(failures), len(records))
            return CaptureResult.fail(
                ErrorKind.CANCEL_ALL_FAILED,
                "An error detected while trying to kill all tasks!\nerr: " + "; ".join(failures),
            )

        if records:
            self._logger.info("Sent %s to %d task(s)", sig.name, len(records))
        return CaptureResult.ok()

    def _signal(self, record: TaskRecord, sig: signal.Signals) -> None:
        try:
            os.kill(record.pid, sig)
        except ProcessLookupError:
            # exited already; its owner has not collected it yet
            self._logger.debug("Task %s (pid %d) already exited", record.task_id, record.pid)

    # ------------------------------------------------------------------
    # inspection

    def get(self, task_id: str) -> Optional[TaskRecord]:
        with self._lock:
            return self._records.get(task_id)

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def describe(self) -> list[dict[str, object]]:
        """Diagnostic snapshot of tracked tasks."""
        now = time.monotonic()
        with self._lock:
            return [
                {"id": rec.task_id, "pid": rec.pid, "age_s": round(now - rec.created, 3)}
                for rec in self._records.values()
            ]

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["TaskRecord", "TaskRegistry"]
