"""Unit test fixtures: fake capture tools and isolated configuration.

The capture tools are replaced by small executable shell scripts written
into ``tmp_path``. They are wired in through the ``CameraConfig`` command
fields so tests exercise real processes, real exit codes and real signals
without a camera attached.
"""

from __future__ import annotations

import os
import signal
from pathlib import Path
from typing import Callable, Iterator

import pytest

from rpi_cam.camera.config import CameraConfig


SAMPLE_LISTING = """Available cameras
-----------------
0 : imx708 [4608x2592 10-bit RGGB] (/base/soc/i2c0mux/i2c@1/imx708@1a)
    Modes: 'SRGGB10_CSI2P' : 1536x864 [120.13 fps - (768, 432)/3072x1728 crop]
                             2304x1296 [56.03 fps - (0, 0)/4608x2592 crop]

1 : ov5647 [2592x1944 10-bit GBRG] (/base/soc/i2c0mux/i2c@0/ov5647@36)
    Modes: 'SGBRG10_CSI2P' : 640x480 [58.92 fps - (16, 0)/2560x1920 crop]
"""

ToolFactory = Callable[[str, str], str]


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME and the rpi-cam env vars at a throwaway directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("RPI_CAM_CONFIG", raising=False)
    monkeypatch.delenv("RPI_CAM_STATE_DIR", raising=False)
    return tmp_path


@pytest.fixture
def calls_log(tmp_path: Path) -> Path:
    """File the fake tools append their argv to, one line per invocation."""
    return tmp_path / "calls.log"


@pytest.fixture
def make_tool(tmp_path: Path) -> ToolFactory:
    """Create an executable ``/bin/sh`` script and return its path."""
    tools_dir = tmp_path / "bin"
    tools_dir.mkdir(exist_ok=True)

    def factory(name: str, body: str) -> str:
        path = tools_dir / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(0o755)
        return str(path)

    return factory


@pytest.fixture
def still_tool(make_tool: ToolFactory, calls_log: Path) -> str:
    """Still tool that records its argv and prints fake JPEG bytes."""
    return make_tool("fake-still", f'echo "still $*" >> "{calls_log}"\nprintf "JPEG"')


@pytest.fixture
def failing_still_tool(make_tool: ToolFactory, calls_log: Path) -> str:
    return make_tool("fake-still-fail", f'echo "still $*" >> "{calls_log}"\necho "boom" >&2\nexit 1')


@pytest.fixture
def slow_still_tool(make_tool: ToolFactory) -> str:
    """Still tool that passes the readiness probe but blocks real captures."""
    return make_tool(
        "fake-still-slow",
        'case "$*" in\n  *"--timeout 10 "*) exit 0 ;;\nesac\nexec sleep 30',
    )


@pytest.fixture
def video_tool(make_tool: ToolFactory, calls_log: Path) -> str:
    """Video tool: endless captures (``--timeout 0``) block, others print fake H264."""
    return make_tool(
        "fake-vid",
        f'echo "video $*" >> "{calls_log}"\n'
        'case "$*" in\n  *"--timeout 0 "*) exec sleep 30 ;;\nesac\n'
        'printf "H264"',
    )


@pytest.fixture
def list_tool(make_tool: ToolFactory, tmp_path: Path) -> str:
    listing = tmp_path / "listing.txt"
    listing.write_text(SAMPLE_LISTING)
    # some tool versions print the table on stderr
    return make_tool("fake-hello", f'cat "{listing}" >&2')


@pytest.fixture
def camera_config(still_tool: str, video_tool: str, list_tool: str) -> Callable[..., CameraConfig]:
    """Build a CameraConfig wired to the fake tools."""

    def factory(**overrides) -> CameraConfig:
        values = dict(
            camera=0,
            still_command=still_tool,
            video_command=video_tool,
            list_command=list_tool,
            unlock_wait=2.0,
        )
        values.update(overrides)
        return CameraConfig(**values)

    return factory


@pytest.fixture
def spawned_pids() -> Iterator[list[int]]:
    """Collect pids started by a test; anything still alive is killed afterwards."""
    pids: list[int] = []
    yield pids
    for pid in pids:
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
