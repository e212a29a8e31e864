"""Tests for the per-device task table using real child processes."""

import signal
import subprocess
from unittest.mock import patch

import pytest

from rpi_cam.camera.task_registry import TaskRegistry
from rpi_cam.core.errors import DuplicateTaskIdError, ErrorKind


@pytest.fixture
def sleeper():
    """Factory for ``sleep`` processes that are always reaped."""
    procs = []

    def factory():
        proc = subprocess.Popen(["sleep", "30"])
        procs.append(proc)
        return proc

    yield factory
    for proc in procs:
        if proc.poll() is None:
            proc.kill()
        proc.wait()


class TestRegistration:

    def test_register_and_remove(self):
        registry = TaskRegistry()
        record = registry.register("a", 1234)

        assert record.task_id == "a"
        assert "a" in registry
        assert len(registry) == 1
        assert registry.get("a").pid == 1234

        assert registry.remove("a") is True
        assert "a" not in registry
        assert registry.remove("a") is False

    def test_duplicate_id_rejected(self):
        registry = TaskRegistry()
        registry.register("a", 1)

        with pytest.raises(DuplicateTaskIdError) as excinfo:
            registry.register("a", 2, "capture_still")

        assert excinfo.value.kind is ErrorKind.DUPLICATE_TASK_ID
        assert "'capture_still', id must be unique!" in str(excinfo.value)
        assert registry.get("a").pid == 1

    def test_ensure_available(self):
        registry = TaskRegistry()
        registry.ensure_available("a")
        registry.register("a", 1)

        with pytest.raises(DuplicateTaskIdError):
            registry.ensure_available("a")

    def test_id_reusable_after_remove(self):
        registry = TaskRegistry()
        registry.register("a", 1)
        registry.remove("a")
        registry.register("a", 2)
        assert registry.get("a").pid == 2

    def test_describe(self):
        registry = TaskRegistry()
        registry.register("a", 11)
        registry.register("b", 22)

        snapshot = registry.describe()

        assert [entry["id"] for entry in snapshot] == ["a", "b"]
        assert [entry["pid"] for entry in snapshot] == [11, 22]
        assert all(entry["age_s"] >= 0 for entry in snapshot)
        assert registry.ids() == ["a", "b"]


class TestCancel:

    def test_unknown_id_is_structured_failure(self):
        result = TaskRegistry().cancel("missing")

        assert not result
        assert result.error.kind is ErrorKind.UNKNOWN_TASK_ID
        assert result.error.message == "id not exists in tasks!"

    def test_force_sends_sigkill(self, sleeper):
        proc = sleeper()
        registry = TaskRegistry()
        registry.register("a", proc.pid)

        assert registry.cancel("a", force=True).success
        assert proc.wait(timeout=5) == -signal.SIGKILL

    def test_graceful_sends_sigterm(self, sleeper):
        proc = sleeper()
        registry = TaskRegistry()
        registry.register("a", proc.pid)

        assert registry.cancel("a", force=False).success
        assert proc.wait(timeout=5) == -signal.SIGTERM

    def test_cancel_does_not_remove_entry(self, sleeper):
        proc = sleeper()
        registry = TaskRegistry()
        registry.register("a", proc.pid)

        registry.cancel("a")

        assert "a" in registry

    def test_already_exited_process_counts_as_cancelled(self):
        registry = TaskRegistry()
        registry.register("a", 4242)

        with patch("rpi_cam.camera.task_registry.os.kill", side_effect=ProcessLookupError):
            assert registry.cancel("a").success

    def test_other_signal_errors_propagate(self):
        registry = TaskRegistry()
        registry.register("a", 4242)

        with patch("rpi_cam.camera.task_registry.os.kill", side_effect=PermissionError):
            with pytest.raises(PermissionError):
                registry.cancel("a")


class TestCancelAll:

    def test_signals_every_task(self, sleeper):
        first, second = sleeper(), sleeper()
        registry = TaskRegistry()
        registry.register("a", first.pid)
        registry.register("b", second.pid)

        result = registry.cancel_all()

        assert result.success
        assert first.wait(timeout=5) == -signal.SIGTERM
        assert second.wait(timeout=5) == -signal.SIGTERM

    def test_force(self, sleeper):
        proc = sleeper()
        registry = TaskRegistry()
        registry.register("a", proc.pid)

        registry.cancel_all(force=True)

        assert proc.wait(timeout=5) == -signal.SIGKILL

    def test_empty_registry(self):
        assert TaskRegistry().cancel_all().success

    def test_partial_failure_is_aggregated(self):
        registry = TaskRegistry()
        registry.register("a", 1001)
        registry.register("b", 1002)
        registry.register("c", 1003)
        signalled = []

        def fake_kill(pid, sig):
            if pid == 1002:
                raise PermissionError("not allowed")
            signalled.append(pid)

        with patch("rpi_cam.camera.task_registry.os.kill", side_effect=fake_kill):
            result = registry.cancel_all()

        assert not result.success
        assert result.error.kind is ErrorKind.CANCEL_ALL_FAILED
        assert signalled == [1001, 1003]
        assert registry.ids() == ["a", "b", "c"]
