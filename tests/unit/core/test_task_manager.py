"""Tests for background asyncio task bookkeeping."""

import asyncio

import pytest

from rpi_cam.core.task_manager import AsyncTaskManager


class TestAsyncTaskManager:

    @pytest.mark.asyncio
    async def test_create_and_complete(self):
        manager = AsyncTaskManager("Test")

        task = manager.create(asyncio.sleep(0, result="done"), name="quick")
        assert manager.active_names() == ["quick"]

        assert await task == "done"
        await asyncio.sleep(0)
        assert manager.active_count() == 0

    @pytest.mark.asyncio
    async def test_cancel_by_name(self):
        manager = AsyncTaskManager("Test")
        task = manager.create(asyncio.sleep(30), name="pump")

        assert await manager.cancel("pump")
        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_shutdown_refuses_new_tasks(self):
        manager = AsyncTaskManager("Test")
        task = manager.create(asyncio.sleep(30), name="pump")

        assert await manager.shutdown()
        assert task.cancelled()

        coro = asyncio.sleep(0)
        with pytest.raises(RuntimeError):
            manager.create(coro)
        coro.close()

    @pytest.mark.asyncio
    async def test_failed_task_is_logged(self, caplog):
        manager = AsyncTaskManager("Test")

        async def boom():
            raise ValueError("bad")

        task = manager.create(boom(), name="boom")
        with pytest.raises(ValueError):
            await task
        await asyncio.sleep(0)

        assert any("boom failed" in message for message in caplog.messages)
