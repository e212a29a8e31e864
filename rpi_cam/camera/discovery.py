"""
Camera discovery via the capture tool's ``--list-cameras`` output.

Typical listing:

    Available cameras
    -----------------
    0 : imx708 [4608x2592 10-bit RGGB] (/base/soc/i2c0mux/i2c@1/imx708@1a)
        Modes: 'SRGGB10_CSI2P' : 1536x864 [120.13 fps - (768, 432)/3072x1728 crop]
                                 2304x1296 [56.03 fps - (0, 0)/4608x2592 crop]
"""

from __future__ import annotations

import asyncio
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Iterable, Optional

from rpi_cam.core.errors import CaptureToolError, ErrorKind
from rpi_cam.core.logging_utils import get_module_logger

logger = get_module_logger("CameraDiscovery")

NO_CAMERAS_MARKER = "No cameras available!"
LISTING_DELIMITER = "-----------------"

LIST_TOOL_CANDIDATES = ("rpicam-hello", "libcamera-hello")
STILL_TOOL_CANDIDATES = ("rpicam-still", "libcamera-still")
VIDEO_TOOL_CANDIDATES = ("rpicam-vid", "libcamera-vid")

# "N : model [WxH extra] (path)"
_CAMERA_PATTERN = re.compile(r'^(\d+)\s*:\s*(\S+)\s*\[([^\]]+)\]\s*\(([^)]+)\)')
_FORMAT_PATTERN = re.compile(r"'([^']+)'\s*:")
_MODE_PATTERN = re.compile(
    r'(\d+)x(\d+)\s*\[([\d.]+)\s*fps\s*-\s*\((\d+),\s*(\d+)\)/(\d+)x(\d+)\s*crop\]'
)
_RESOLUTION_PATTERN = re.compile(r'(\d+)x(\d+)')


@dataclass(frozen=True, slots=True)
class Resolution:
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class CameraMode:
    """One sensor mode advertised by the listing."""
    format: str
    resolution: Resolution
    fps: float
    crop_offset: tuple[int, int]
    crop_size: Resolution


@dataclass(frozen=True, slots=True)
class CameraDescriptor:
    index: int
    name: str
    resolution: Resolution
    path: str
    modes: tuple[CameraMode, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "name": self.name,
            "resolution": {"width": self.resolution.width, "height": self.resolution.height},
            "path": self.path,
            "modes": [
                {
                    "format": mode.format,
                    "resolution": {"width": mode.resolution.width, "height": mode.resolution.height},
                    "fps": mode.fps,
                    "crop_offset": list(mode.crop_offset),
                    "crop": {"width": mode.crop_size.width, "height": mode.crop_size.height},
                }
                for mode in self.modes
            ],
        }


def find_camera_tool(candidates: Iterable[str]) -> Optional[str]:
    """Return the first candidate found on PATH."""
    for cmd in candidates:
        if shutil.which(cmd):
            return cmd
    return None


def parse_camera_list(text: str) -> list[CameraDescriptor]:
    """Parse listing output into descriptors (empty when no camera is present)."""
    if NO_CAMERAS_MARKER in text or LISTING_DELIMITER not in text:
        return []

    body = text.split(LISTING_DELIMITER, 1)[1]
    cameras: list[CameraDescriptor] = []
    current: Optional[dict] = None
    current_format = ""

    def flush() -> None:
        if current is not None:
            cameras.append(CameraDescriptor(modes=tuple(current.pop("modes")), **current))

    for raw_line in body.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        match = _CAMERA_PATTERN.match(line)
        if match:
            flush()
            res = _RESOLUTION_PATTERN.search(match.group(3))
            current = {
                "index": int(match.group(1)),
                "name": match.group(2),
                "resolution": Resolution(int(res.group(1)), int(res.group(2))) if res else Resolution(0, 0),
                "path": match.group(4),
                "modes": [],
            }
            current_format = ""
            continue

        if current is None:
            continue

        fmt = _FORMAT_PATTERN.search(line)
        if fmt:
            current_format = fmt.group(1)

        for mode in _MODE_PATTERN.finditer(line):
            current["modes"].append(CameraMode(
                format=current_format,
                resolution=Resolution(int(mode.group(1)), int(mode.group(2))),
                fps=float(mode.group(3)),
                crop_offset=(int(mode.group(4)), int(mode.group(5))),
                crop_size=Resolution(int(mode.group(6)), int(mode.group(7))),
            ))

    flush()
    return cameras


def list_cameras(command: Optional[str] = None) -> list[CameraDescriptor]:
    """Run the listing tool once and parse its output."""
    cmd = command or find_camera_tool(LIST_TOOL_CANDIDATES) or LIST_TOOL_CANDIDATES[0]
    argv = [cmd, "--list-cameras"]

    try:
        result = subprocess.run(argv, capture_output=True, text=True)
    except OSError as exc:
        raise CaptureToolError(
            f"Could not run {cmd}: {exc}", kind=ErrorKind.LIST_FAILED, argv=argv
        ) from exc

    # the listing is printed on stderr by some tool versions
    output = result.stdout + result.stderr
    if NO_CAMERAS_MARKER in output:
        logger.info("No cameras available")
        return []

    if result.returncode != 0:
        raise CaptureToolError(
            f"{cmd} --list-cameras exited with code {result.returncode}",
            kind=ErrorKind.LIST_FAILED,
            returncode=result.returncode,
            stderr=result.stderr.encode(),
            argv=argv,
        )

    cameras = parse_camera_list(output)
    logger.debug("Found %d camera(s)", len(cameras))
    return cameras


async def list_cameras_async(command: Optional[str] = None) -> list[CameraDescriptor]:
    return await asyncio.to_thread(list_cameras, command)


__all__ = [
    "Resolution",
    "CameraMode",
    "CameraDescriptor",
    "NO_CAMERAS_MARKER",
    "LIST_TOOL_CANDIDATES",
    "STILL_TOOL_CANDIDATES",
    "VIDEO_TOOL_CANDIDATES",
    "find_camera_tool",
    "parse_camera_list",
    "list_cameras",
    "list_cameras_async",
]
