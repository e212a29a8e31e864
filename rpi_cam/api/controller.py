"""
API Controller - Thin wrapper around CaptureOrchestrator for the REST API.

Delegates to the orchestrator without duplicating business logic; the
synchronous orchestrator calls are pushed to worker threads so handlers never
block the event loop.
"""

import asyncio
import datetime
from typing import Any, Dict, List, Optional

from rpi_cam import __version__
from rpi_cam.camera.options import StillOptions
from rpi_cam.camera.orchestrator import CaptureOrchestrator
from rpi_cam.core.errors import CaptureResult
from rpi_cam.core.logging_utils import get_module_logger


class APIController:
    """Async facade over one ``CaptureOrchestrator``."""

    def __init__(self, orchestrator: CaptureOrchestrator):
        self.logger = get_module_logger("APIController")
        self.orchestrator = orchestrator

    # =========================================================================
    # System Endpoints
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": datetime.datetime.now().isoformat(),
            "api_version": "v1",
            "version": __version__,
        }

    async def get_status(self) -> Dict[str, Any]:
        return {
            "camera": self.orchestrator.camera,
            "reserved": self.orchestrator.is_reserved(),
            "auto_reserve": self.orchestrator.config.auto_reserve,
            "tasks": self.orchestrator.tasks,
            "live_observers": self.orchestrator.live.observer_count,
        }

    # =========================================================================
    # Camera Endpoints
    # =========================================================================

    async def list_cameras(self) -> List[Dict[str, Any]]:
        cameras = await self.orchestrator.list_devices_async()
        return [camera.to_dict() for camera in cameras]

    async def probe_ready(self) -> bool:
        return await self.orchestrator.probe_ready()

    async def reserve(self) -> CaptureResult:
        return await self.orchestrator.reserve_async()

    async def unlock(self) -> CaptureResult:
        return await asyncio.to_thread(self.orchestrator.unlock_reserve)

    async def capture_still(
        self,
        task_id: str,
        width: int,
        height: int,
        options: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """Capture a JPEG to stdout as a tracked task and return the bytes."""
        still_options = StillOptions.from_dict(options)
        result = await self.orchestrator.capture_still("-", width, height, task_id, still_options)
        self.logger.info("Still %s captured (%d bytes)", task_id, len(result.output))
        return result.output

    # =========================================================================
    # Task Endpoints
    # =========================================================================

    async def list_tasks(self) -> List[Dict[str, Any]]:
        return self.orchestrator.tasks

    async def cancel_task(self, task_id: str, force: bool = True) -> CaptureResult:
        return self.orchestrator.cancel_task(task_id, force)

    async def cancel_all_tasks(self, force: bool = False) -> CaptureResult:
        return self.orchestrator.cancel_all_tasks(force)
