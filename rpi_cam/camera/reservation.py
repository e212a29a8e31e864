"""
Reservation State Machine - advisory hold on a camera device.

A device is either FREE or HELD. HELD is realized by one long-running,
zero-timeout, minimal-resolution video capture registered under the
``Reserve`` task id. The hold only keeps other well-behaved producers from
opening the device; anything that bypasses this process can still seize it
once the hold is released.

State transitions:
- FREE -> HELD: reserve() when the readiness probe succeeds
- FREE -> FREE: reserve() when the probe fails (CAMERA_BUSY_ALREADY)
- HELD -> FREE: unlock(), or the hold process exiting on its own
"""

from __future__ import annotations

import asyncio
import contextlib
import subprocess
import threading
from enum import Enum
from typing import AsyncIterator, Callable, Iterator, Optional

from rpi_cam.core.errors import CaptureResult, DuplicateTaskIdError, ErrorKind
from rpi_cam.core.logging_utils import LoggerLike, ensure_structured_logger

from .task_registry import TaskRegistry


RESERVE_TASK_ID = "Reserve"


class ReservationState(Enum):
    FREE = "free"
    HELD = "held"


class ReservationStateMachine:
    """FREE/HELD advisory hold on one camera, realized by a background video capture."""

    def __init__(
        self,
        registry: TaskRegistry,
        *,
        probe: Callable[[], bool],
        spawn_hold: Callable[[], subprocess.Popen],
        auto_reserve: bool = False,
        unlock_wait: float = 2.0,
        logger: LoggerLike = None,
    ) -> None:
        self.logger = ensure_structured_logger(logger, fallback_name="Reservation")
        self._registry = registry
        self._probe = probe
        self._spawn_hold = spawn_hold
        self._unlock_wait = unlock_wait
        self.auto_reserve = auto_reserve

        self._lock = threading.RLock()
        self._state = ReservationState.FREE
        self._hold: Optional[subprocess.Popen] = None

    def start(self) -> None:
        """Take the initial hold when automatic reservation is configured.

        A busy device is not an error here; the device simply stays FREE.
        """
        if not self.auto_reserve:
            return
        result = self.reserve()
        if not result.success:
            self.logger.info("Initial reservation skipped: %s", result.error.message)

    # =========================================================================
    # State queries
    # =========================================================================

    @property
    def state(self) -> ReservationState:
        with self._lock:
            self._collect_exited_hold()
            return self._state

    def is_reserved(self) -> bool:
        return self.state is ReservationState.HELD

    def _collect_exited_hold(self) -> None:
        if self._state is not ReservationState.HELD or self._hold is None:
            return
        returncode = self._hold.poll()
        if returncode is None:
            return
        self.logger.warning("Reservation process exited on its own (code %s)", returncode)
        self._drop_hold()

    def _drop_hold(self) -> None:
        self._registry.remove(RESERVE_TASK_ID)
        self._hold = None
        self._set_state(ReservationState.FREE)

    def _set_state(self, state: ReservationState) -> None:
        if self._state is state:
            return
        self.logger.info("Reservation: %s -> %s", self._state.value, state.value)
        self._state = state

    # =========================================================================
    # Transitions
    # =========================================================================

    def reserve(self) -> CaptureResult:
        """Hold the device by starting the background reservation capture."""
        with self._lock:
            self._collect_exited_hold()
            if self._state is ReservationState.HELD:
                self.logger.debug("Already reserved")
                return CaptureResult.ok()

            if not self._probe():
                return CaptureResult.fail(
                    ErrorKind.DEVICE_BUSY,
                    "Can not reserve camera because is busy (in use of other process).",
                )

            self._registry.ensure_available(RESERVE_TASK_ID, "reserve")
            hold = self._spawn_hold()
            try:
                self._registry.register(RESERVE_TASK_ID, hold.pid, "reserve")
            except DuplicateTaskIdError:
                hold.kill()
                hold.wait()
                raise

            self._hold = hold
            self._set_state(ReservationState.HELD)
            return CaptureResult.ok()

    def unlock(self) -> CaptureResult:
        """Stop the reservation capture and mark the device free."""
        with self._lock:
            self._collect_exited_hold()
            if self._state is not ReservationState.HELD:
                return CaptureResult.fail(ErrorKind.NOT_RESERVED, "Camera should be reserved to unlock!")

            result = self._registry.cancel(RESERVE_TASK_ID, force=True)
            if self._hold is not None:
                try:
                    self._hold.wait(timeout=self._unlock_wait)
                except subprocess.TimeoutExpired:
                    self.logger.warning(
                        "Reservation process %d still alive %.1fs after kill",
                        self._hold.pid,
                        self._unlock_wait,
                    )
            self._drop_hold()
            return result

    def release(self) -> bool:
        """Give up the hold ahead of a real operation; True if one was held."""
        with self._lock:
            if not self.is_reserved():
                return False
            self.unlock()
            return True

    def reacquire(self) -> None:
        """Re-take the hold after an operation when auto reservation is on.

        Best effort: failures are logged and never raised to the caller of
        the operation that triggered it.
        """
        if not self.auto_reserve:
            return
        try:
            result = self.reserve()
        except Exception as exc:
            self.logger.warning("Automatic re-reservation failed: %s", exc)
            return
        if not result.success:
            self.logger.warning("Automatic re-reservation skipped: %s", result.error.message)

    # =========================================================================
    # Scoped helpers
    # =========================================================================

    @contextlib.contextmanager
    def released(self) -> Iterator[None]:
        """Release the hold for the duration of the block, re-take it after."""
        self.release()
        try:
            yield
        finally:
            self.reacquire()

    @contextlib.asynccontextmanager
    async def released_async(self) -> AsyncIterator[None]:
        await asyncio.to_thread(self.release)
        try:
            yield
        finally:
            await asyncio.to_thread(self.reacquire)


__all__ = ["RESERVE_TASK_ID", "ReservationState", "ReservationStateMachine"]
