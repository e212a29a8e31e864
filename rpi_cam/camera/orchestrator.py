"""
Capture Orchestrator - public entry point for driving one camera device.

Every capture follows the same pattern: give up the advisory reservation,
render the argument vector, then either run the tool to completion
(buffered), hand back the live process (streamed) or run it as a tracked
task under a caller-chosen id. When automatic reservation is configured the
hold is taken again once a buffered or tracked operation settles.
"""

from __future__ import annotations

import asyncio
import contextlib
import subprocess
from typing import Optional, Union

from rpi_cam.core.errors import CaptureResult, CaptureToolError, ConfigError, DuplicateTaskIdError, ErrorKind
from rpi_cam.core.logging_utils import get_module_logger
from rpi_cam.core.task_manager import AsyncTaskManager

from .command_builder import build_still_args, build_video_args
from .config import CameraConfig
from .discovery import CameraDescriptor, list_cameras, list_cameras_async
from .live_stream import LiveEvent, LiveStream
from .options import StillOptions, VideoOptions
from .reservation import ReservationState, ReservationStateMachine
from .task_registry import TaskRegistry

_FAILURE_MESSAGES = {
    ErrorKind.STILL_CAPTURE_FAILED: "An error in capturing still on camera!",
    ErrorKind.VIDEO_CAPTURE_FAILED: "An error in capturing video on camera!",
}
_STDERR_TAIL = 500


class CaptureOrchestrator:
    """Captures, live streaming, reservation and task control for one camera device."""

    def __init__(
        self,
        camera: Optional[int] = None,
        config: Optional[CameraConfig] = None,
        *,
        registry: Optional[TaskRegistry] = None,
    ) -> None:
        self.config = config or CameraConfig()
        self.camera = self.config.camera if camera is None else camera
        if self.camera < 0:
            raise ConfigError(f"camera index must be >= 0, got {self.camera}")

        self.logger = get_module_logger(f"CaptureOrchestrator.cam{self.camera}")
        self.registry = registry or TaskRegistry(
            name=f"TaskRegistry.cam{self.camera}",
            logger=self.logger.getChild("tasks"),
        )
        self.live = LiveStream()
        self._background = AsyncTaskManager(
            name=f"Background.cam{self.camera}",
            logger=self.logger.getChild("background"),
        )
        self._reservation = ReservationStateMachine(
            self.registry,
            probe=self.probe_ready_sync,
            spawn_hold=self._spawn_hold,
            auto_reserve=self.config.auto_reserve,
            unlock_wait=self.config.unlock_wait,
            logger=self.logger.getChild("reservation"),
        )
        self._reservation.start()

    async def __aenter__(self) -> "CaptureOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop live streams, drop the reservation and signal remaining tasks.

        Automatic re-reservation is switched off so operations still settling
        do not take the hold again.
        """
        self._reservation.auto_reserve = False
        await self._background.shutdown()
        if self._reservation.is_reserved():
            await asyncio.to_thread(self._reservation.unlock)
        if len(self.registry):
            self.registry.cancel_all(force=True)
        self.logger.debug("Closed")

    # =========================================================================
    # Reservation
    # =========================================================================

    def reserve(self) -> CaptureResult:
        return self._reservation.reserve()

    async def reserve_async(self) -> CaptureResult:
        return await asyncio.to_thread(self._reservation.reserve)

    def unlock_reserve(self) -> CaptureResult:
        return self._reservation.unlock()

    def is_reserved(self) -> bool:
        return self._reservation.is_reserved()

    @property
    def reservation_state(self) -> ReservationState:
        return self._reservation.state

    # =========================================================================
    # Tasks
    # =========================================================================

    def cancel_task(self, task_id: str, force: bool = True) -> CaptureResult:
        return self.registry.cancel(task_id, force)

    def cancel_all_tasks(self, force: bool = False) -> CaptureResult:
        return self.registry.cancel_all(force)

    @property
    def tasks(self) -> list[dict[str, object]]:
        return self.registry.describe()

    # =========================================================================
    # Still capture
    # =========================================================================

    def capture_still_sync(
        self,
        output: str,
        width: int,
        height: int,
        options: Optional[StillOptions] = None,
        *,
        stream: bool = False,
    ) -> CaptureResult:
        """Run the still tool and return its stdout, or the process when streaming.

        Raises:
            CaptureToolError: the tool could not be started or exited non-zero.
        """
        argv = self._still_argv(output, width, height, options)
        return self._run_sync(argv, ErrorKind.STILL_CAPTURE_FAILED, stream)

    async def capture_still(
        self,
        output: str,
        width: int,
        height: int,
        task_id: str,
        options: Optional[StillOptions] = None,
        *,
        stream: bool = False,
    ) -> CaptureResult:
        """Capture a still as a tracked task named ``task_id``.

        Raises:
            DuplicateTaskIdError: ``task_id`` is already running.
            CaptureToolError: the tool could not be started or exited non-zero.
        """
        argv = self._still_argv(output, width, height, options)
        return await self._run_async(task_id, argv, ErrorKind.STILL_CAPTURE_FAILED, stream, "capture_still")

    # =========================================================================
    # Video capture
    # =========================================================================

    def capture_video_sync(
        self,
        output: str,
        timeout: int,
        width: int,
        height: int,
        options: Optional[VideoOptions] = None,
        *,
        stream: bool = False,
    ) -> CaptureResult:
        argv = self._video_argv(output, timeout, width, height, options)
        return self._run_sync(argv, ErrorKind.VIDEO_CAPTURE_FAILED, stream)

    async def capture_video(
        self,
        output: str,
        timeout: int,
        width: int,
        height: int,
        task_id: str,
        options: Optional[VideoOptions] = None,
        *,
        stream: bool = False,
    ) -> CaptureResult:
        argv = self._video_argv(output, timeout, width, height, options)
        return await self._run_async(task_id, argv, ErrorKind.VIDEO_CAPTURE_FAILED, stream, "capture_video")

    # =========================================================================
    # Live stream
    # =========================================================================

    async def start_live_stream(
        self,
        width: int,
        height: int,
        task_id: str,
        options: Optional[VideoOptions] = None,
    ) -> asyncio.subprocess.Process:
        """Start an endless video capture whose stdout is published on ``self.live``.

        ``started`` is emitted once the process is running, ``frame`` for every
        chunk read from stdout and ``closed`` when the process ends.
        """
        argv = self._video_argv("-", 0, width, height, options)
        self.registry.ensure_available(task_id, "start_live_stream")
        await asyncio.to_thread(self._reservation.release)

        # until the pump owns the process, a failure here must give the hold back
        try:
            process = await self._spawn(
                argv,
                ErrorKind.VIDEO_CAPTURE_FAILED,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await self._register_or_kill(task_id, process, "start_live_stream")

            try:
                await self.live.emit(LiveEvent.STARTED)
                self._background.create(self._pump_live(task_id, process), name=f"live:{task_id}")
            except BaseException:
                self.registry.remove(task_id)
                await self._kill(process)
                raise
        except BaseException:
            await asyncio.to_thread(self._reservation.reacquire)
            raise

        self.logger.info("Live stream %s started (pid %d)", task_id, process.pid)
        return process

    async def _pump_live(self, task_id: str, process: asyncio.subprocess.Process) -> None:
        try:
            while True:
                chunk = await process.stdout.read(self.config.live_chunk_size)
                if not chunk:
                    break
                await self.live.emit(LiveEvent.FRAME, chunk)
            returncode = await process.wait()
            self.logger.info("Live stream %s closed (code %s)", task_id, returncode)
        finally:
            await self._kill(process)
            self.registry.remove(task_id)
            await self.live.emit(LiveEvent.CLOSED)

        await asyncio.to_thread(self._reservation.reacquire)

    # =========================================================================
    # Readiness probe and discovery
    # =========================================================================

    def _probe_argv(self) -> list[str]:
        return [
            self.config.still_command,
            "--camera", str(self.camera),
            "--timeout", str(self.config.probe_timeout_ms),
            "--output", "-",
        ]

    def probe_ready_sync(self) -> bool:
        """True when a minimal still capture on the device succeeds."""
        try:
            result = subprocess.run(
                self._probe_argv(),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            self.logger.debug("Readiness probe could not start: %s", exc)
            return False
        return result.returncode == 0

    async def probe_ready(self) -> bool:
        try:
            process = await asyncio.create_subprocess_exec(
                *self._probe_argv(),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            self.logger.debug("Readiness probe could not start: %s", exc)
            return False
        return await process.wait() == 0

    def list_devices(self) -> list[CameraDescriptor]:
        return list_cameras(self.config.list_command)

    async def list_devices_async(self) -> list[CameraDescriptor]:
        return await list_cameras_async(self.config.list_command)

    # =========================================================================
    # Execution helpers
    # =========================================================================

    def _still_argv(self, output: str, width: int, height: int, options: Optional[StillOptions]) -> list[str]:
        return [self.config.still_command, *build_still_args(self.camera, output, width, height, options)]

    def _video_argv(
        self,
        output: str,
        timeout: Optional[int],
        width: int,
        height: int,
        options: Optional[VideoOptions],
    ) -> list[str]:
        return [self.config.video_command, *build_video_args(self.camera, output, timeout, width, height, options)]

    def _spawn_hold(self) -> subprocess.Popen:
        options = VideoOptions(fps=self.config.reserve_fps)
        argv = self._video_argv("-", 0, self.config.reserve_width, self.config.reserve_height, options)
        try:
            return subprocess.Popen(argv, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as exc:
            raise CaptureToolError(
                f"Could not start reservation capture: {exc}",
                kind=ErrorKind.VIDEO_CAPTURE_FAILED,
                argv=argv,
            ) from exc

    def _run_sync(self, argv: list[str], kind: ErrorKind, stream: bool) -> CaptureResult:
        self._reservation.release()

        if stream:
            try:
                process = subprocess.Popen(argv, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL)
            except OSError as exc:
                self._reservation.reacquire()
                raise self._spawn_failure(argv, kind, exc) from exc
            return CaptureResult.ok(process)

        try:
            try:
                completed = subprocess.run(argv, capture_output=True)
            except OSError as exc:
                raise self._spawn_failure(argv, kind, exc) from exc
            if completed.returncode != 0:
                raise self._exit_failure(argv, kind, completed.returncode, completed.stderr)
            return CaptureResult.ok(completed.stdout)
        finally:
            self._reservation.reacquire()

    async def _run_async(
        self,
        task_id: str,
        argv: list[str],
        kind: ErrorKind,
        stream: bool,
        operation: str,
    ) -> CaptureResult:
        self.registry.ensure_available(task_id, operation)

        if stream:
            await asyncio.to_thread(self._reservation.release)
            try:
                process = await self._spawn(
                    argv,
                    kind,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.DEVNULL,
                )
            except BaseException:
                await asyncio.to_thread(self._reservation.reacquire)
                raise
            return CaptureResult.ok(process)

        async with self._reservation.released_async():
            return await self._run_tracked(task_id, argv, kind, operation)

    async def _run_tracked(self, task_id: str, argv: list[str], kind: ErrorKind, operation: str) -> CaptureResult:
        process = await self._spawn(
            argv,
            kind,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        await self._register_or_kill(task_id, process, operation)

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            await self._kill(process)
            raise
        finally:
            self.registry.remove(task_id)

        if process.returncode != 0:
            raise self._exit_failure(argv, kind, process.returncode, stderr)
        return CaptureResult.ok(stdout)

    async def _spawn(self, argv: list[str], kind: ErrorKind, **kwargs) -> asyncio.subprocess.Process:
        self.logger.debug("Command: %s", " ".join(argv))
        try:
            return await asyncio.create_subprocess_exec(*argv, **kwargs)
        except OSError as exc:
            raise self._spawn_failure(argv, kind, exc) from exc

    async def _register_or_kill(self, task_id: str, process: asyncio.subprocess.Process, operation: str) -> None:
        try:
            self.registry.register(task_id, process.pid, operation)
        except DuplicateTaskIdError:
            await self._kill(process)
            raise

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()

    def _spawn_failure(self, argv: list[str], kind: ErrorKind, exc: OSError) -> CaptureToolError:
        self.logger.error("Could not start %s: %s", argv[0], exc)
        return CaptureToolError(
            f"{_FAILURE_MESSAGES.get(kind, 'Capture failed!')}\nerr: {exc}",
            kind=kind,
            argv=argv,
        )

    def _exit_failure(
        self,
        argv: list[str],
        kind: ErrorKind,
        returncode: int,
        stderr: Union[bytes, None],
    ) -> CaptureToolError:
        detail = (stderr or b"").decode(errors="replace").strip()[-_STDERR_TAIL:]
        reason = f"terminated by signal {-returncode}" if returncode < 0 else f"exit code {returncode}"
        self.logger.error("%s failed (%s)%s", argv[0], reason, f": {detail}" if detail else "")
        message = f"{_FAILURE_MESSAGES.get(kind, 'Capture failed!')}\nerr: {reason}"
        if detail:
            message += f"\n{detail}"
        return CaptureToolError(message, kind=kind, returncode=returncode, stderr=stderr or b"", argv=argv)


__all__ = ["CaptureOrchestrator"]
