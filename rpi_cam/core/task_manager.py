"""Bookkeeping for background asyncio tasks (live-stream pumps and the like)."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from typing import Optional

from .logging_utils import LoggerLike, ensure_structured_logger


@dataclass(slots=True)
class _BackgroundRecord:
    task: asyncio.Task
    name: str
    created: float


class AsyncTaskManager:
    """Keep track of background coroutines and shut them down safely."""

    def __init__(self, name: Optional[str] = None, logger: LoggerLike = None) -> None:
        self._name = name or self.__class__.__name__
        self._logger = ensure_structured_logger(logger, fallback_name=self._name)
        self._closed = False
        self._records: dict[asyncio.Task, _BackgroundRecord] = {}

    def create(self, coro: Awaitable, *, name: Optional[str] = None) -> asyncio.Task:
        """Create and register a task on the running loop."""

        if self._closed:
            raise RuntimeError(f"{self._name} is shutting down; no new tasks permitted")

        task_name = name or getattr(coro, "__name__", None) or repr(coro)
        task = asyncio.get_running_loop().create_task(coro, name=task_name)
        self._records[task] = _BackgroundRecord(task=task, name=task_name, created=time.perf_counter())
        task.add_done_callback(self._finalize)
        return task

    def _finalize(self, task: asyncio.Task) -> None:
        record = self._records.pop(task, None)
        name = record.name if record else task.get_name()
        elapsed_ms = (time.perf_counter() - record.created) * 1000 if record else 0.0

        if task.cancelled():
            status = "cancelled"
        elif task.exception() is not None:
            exc = task.exception()
            self._logger.error("%s task %s failed: %s", self._name, name, exc, exc_info=exc)
            status = f"error:{exc.__class__.__name__}"
        else:
            status = "completed"

        self._logger.debug("%s task %s finished (%s) in %.1fms", self._name, name, status, elapsed_ms)

    async def cancel(self, name: str, *, timeout: float = 5.0) -> bool:
        """Cancel every task registered under ``name``."""

        tasks = [rec.task for rec in self._records.values() if rec.name == name]
        return await self._cancel_and_wait(tasks, timeout=timeout, reason=f"cancel:{name}")

    async def shutdown(self, *, timeout: float = 5.0) -> bool:
        """Refuse new tasks, cancel outstanding ones and wait for them."""

        self._closed = True
        return await self._cancel_and_wait(list(self._records), timeout=timeout, reason="shutdown")

    async def _cancel_and_wait(self, tasks: Iterable[asyncio.Task], *, timeout: float, reason: str) -> bool:
        pending = [task for task in tasks if not task.done()]
        if not pending:
            return True

        for task in pending:
            task.cancel()

        try:
            await asyncio.wait_for(asyncio.gather(*pending, return_exceptions=True), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            hanging = [t.get_name() for t in pending if not t.done()]
            self._logger.warning(
                "%s %s timed out after %.1fs; %d task(s) still pending: %s",
                self._name,
                reason,
                timeout,
                len(hanging),
                ", ".join(hanging),
            )
            return False

    def active_names(self) -> list[str]:
        return [rec.name for rec in self._records.values() if not rec.task.done()]

    def active_count(self) -> int:
        return len(self.active_names())


__all__ = ["AsyncTaskManager"]
