"""Typed camera configuration loaded from ``key = value`` files."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from rpi_cam.core.config_manager import get_config_manager
from rpi_cam.core.errors import ConfigError

from .discovery import (
    LIST_TOOL_CANDIDATES,
    STILL_TOOL_CANDIDATES,
    VIDEO_TOOL_CANDIDATES,
    find_camera_tool,
)


@dataclass(slots=True)
class CameraConfig:
    camera: int = 0
    auto_reserve: bool = False
    still_command: str = ""
    video_command: str = ""
    list_command: str = ""
    reserve_width: int = 50
    reserve_height: int = 50
    reserve_fps: int = 5
    probe_timeout_ms: int = 10
    live_chunk_size: int = 65536
    unlock_wait: float = 2.0

    def __post_init__(self) -> None:
        if self.camera < 0:
            raise ConfigError(f"camera index must be >= 0, got {self.camera}")
        if self.live_chunk_size <= 0:
            raise ConfigError(f"live_chunk_size must be positive, got {self.live_chunk_size}")
        self.still_command = self.still_command or _detect(STILL_TOOL_CANDIDATES)
        self.video_command = self.video_command or _detect(VIDEO_TOOL_CANDIDATES)
        self.list_command = self.list_command or _detect(LIST_TOOL_CANDIDATES)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "CameraConfig":
        """Build from raw config values (strings from a file or typed values)."""
        manager = get_config_manager()
        data = dict(config)
        return cls(
            camera=manager.get_int(data, "camera", 0),
            auto_reserve=manager.get_bool(data, "auto_reserve", False),
            still_command=manager.get_str(data, "still_command", "") or "",
            video_command=manager.get_str(data, "video_command", "") or "",
            list_command=manager.get_str(data, "list_command", "") or "",
            reserve_width=manager.get_int(data, "reserve_width", 50),
            reserve_height=manager.get_int(data, "reserve_height", 50),
            reserve_fps=manager.get_int(data, "reserve_fps", 5),
            probe_timeout_ms=manager.get_int(data, "probe_timeout_ms", 10),
            live_chunk_size=manager.get_int(data, "live_chunk_size", 65536),
            unlock_wait=manager.get_float(data, "unlock_wait", 2.0),
        )

    @classmethod
    def load(cls, path: Path, overrides: Optional[Mapping[str, Any]] = None) -> "CameraConfig":
        values: dict[str, Any] = dict(get_config_manager().read_config(Path(path)))
        if overrides:
            values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_mapping(values)

    @classmethod
    async def load_async(cls, path: Path, overrides: Optional[Mapping[str, Any]] = None) -> "CameraConfig":
        values: dict[str, Any] = dict(await get_config_manager().read_config_async(Path(path)))
        if overrides:
            values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_mapping(values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _detect(candidates: tuple[str, ...]) -> str:
    return find_camera_tool(candidates) or candidates[0]


__all__ = ["CameraConfig"]
