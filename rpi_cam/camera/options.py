"""Capture option models for the still and video tools.

Every field defaults to ``None`` meaning "unset": the command builder only
renders a flag for fields that are set (numbers additionally have to be
``>= 0``, so ``-1`` also works as an explicit "unset").
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from functools import lru_cache
from typing import Any, Mapping, Optional, TypeVar, Union

from rpi_cam.core.errors import OptionsError


class Zoom(str, Enum):
    X1 = "1x"
    X2 = "2x"
    X3 = "3x"
    X4 = "4x"
    X5 = "5x"
    X6 = "6x"
    X7 = "7x"
    X8 = "8x"
    X9 = "9x"
    X10 = "10x"


# Normalized (x, y, w, h) sensor crop for each digital zoom step
ZOOM_REGIONS: dict[Zoom, tuple[float, float, float, float]] = {
    Zoom.X1: (0, 0, 1, 1),
    Zoom.X2: (0.25, 0.25, 0.5, 0.5),
    Zoom.X3: (0.385, 0.385, 0.33, 0.33),
    Zoom.X4: (0.375, 0.375, 0.25, 0.25),
    Zoom.X5: (0.4, 0.4, 0.2, 0.2),
    Zoom.X6: (0.42, 0.42, 0.16, 0.16),
    Zoom.X7: (0.43, 0.43, 0.14, 0.14),
    Zoom.X8: (0.437, 0.437, 0.125, 0.125),
    Zoom.X9: (0.445, 0.445, 0.11, 0.11),
    Zoom.X10: (0.45, 0.45, 0.1, 0.1),
}


def zoom_region(zoom: Union[Zoom, str, None]) -> tuple[float, float, float, float]:
    """Return the region of interest for ``zoom`` (``1x`` when unset)."""
    if zoom is None:
        return ZOOM_REGIONS[Zoom.X1]
    try:
        return ZOOM_REGIONS[Zoom(zoom)]
    except ValueError:
        raise OptionsError(f"Unknown zoom level {zoom!r}") from None


ROTATIONS = (0, 90, 180, 270)
ISO_VALUES = (100, 200, 400, 800, 1600, 3200, 6400, 12800, 25600)
AUTOFOCUS_RANGES = ("normal", "macro")
VIDEO_CODECS = ("h264", "mjpeg", "yuv420", "h265")
CODEC_PROFILES = ("high", "main")
EFFECTS = (
    "none", "negative", "solarise", "posterise", "whiteboard", "blackboard",
    "sketch", "denoise", "emboss", "oilpaint", "hatch", "gpen", "pastel",
    "watercolor", "film", "blur", "saturation", "colourswap", "washedout",
    "colourpoint", "colourbalance", "cartoon",
)
AWB_MODES = (
    "auto", "off", "sun", "cloud", "shade", "tungsten", "fluorescent",
    "incandescent", "flash",
)
EXPOSURE_MODES = (
    "night", "auto", "backlight", "snow", "sports", "nightpreview", "verylong",
    "fixedfps", "antishake", "spotlight", "beach",
)

# field name -> allowed values, checked by validate()
_CHOICES: dict[str, tuple] = {
    "rotation": ROTATIONS,
    "iso": ISO_VALUES,
    "autofocus_range": AUTOFOCUS_RANGES,
    "codec": VIDEO_CODECS,
    "codec_profile": CODEC_PROFILES,
    "effect": EFFECTS,
    "awb": AWB_MODES,
    "exposure": EXPOSURE_MODES,
}

T = TypeVar("T", bound="CaptureOptions")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_negative_number(value: Any) -> bool:
    return _is_number(value) and value < 0


# value kind -> (check, description used in errors)
_KIND_CHECKS = {
    "number": (_is_number, "a number"),
    "switch": (lambda value: isinstance(value, bool), "true or false"),
    "text": (lambda value: isinstance(value, (str, Enum)), "a string"),
}


def _kind_of(annotation: Any) -> str:
    name = str(annotation)
    if "bool" in name:
        return "switch"
    if "int" in name or "float" in name:
        return "number"
    return "text"


@lru_cache(maxsize=None)
def _field_kinds(cls: type) -> tuple[tuple[str, str], ...]:
    return tuple((f.name, _kind_of(f.type)) for f in fields(cls))


@dataclass(slots=True)
class CaptureOptions:
    """Tunables shared by the still and the video tool."""

    zoom: Optional[Zoom] = None
    format: Optional[str] = None
    iso: Optional[int] = None
    effect: Optional[str] = None
    exposure: Optional[str] = None
    exposure_compensation: Optional[float] = None
    no_preview: Optional[bool] = None
    contrast: Optional[float] = None
    sharpness: Optional[float] = None
    brightness: Optional[float] = None
    saturation: Optional[float] = None
    flip_horizontal: Optional[bool] = None
    flip_vertical: Optional[bool] = None
    denoise: Optional[bool] = None
    awb: Optional[str] = None
    autofocus_on_capture: Optional[bool] = None
    autofocus_range: Optional[str] = None
    mode: Optional[str] = None
    rotation: Optional[int] = None
    datetime: Optional[bool] = None
    awbgains: Optional[str] = None
    metadata: Optional[bool] = None
    initial_command: Optional[str] = None
    final_command: Optional[str] = None
    signal: Optional[str] = None
    keypress: Optional[str] = None

    def __post_init__(self) -> None:
        if self.zoom is not None and not isinstance(self.zoom, Zoom):
            try:
                self.zoom = Zoom(self.zoom)
            except ValueError:
                raise OptionsError(f"Unknown zoom level {self.zoom!r}") from None
        self.validate()

    def validate(self) -> None:
        """Reject values of the wrong kind or outside the enumerations the tools accept."""
        for name, kind in _field_kinds(type(self)):
            value = getattr(self, name)
            if value is None:
                continue
            check, expected = _KIND_CHECKS[kind]
            if not check(value):
                raise OptionsError(f"Invalid {name} {value!r}; expected {expected}")

        for name, allowed in _CHOICES.items():
            value = getattr(self, name, None)
            if value is None or value == "" or _is_negative_number(value):
                continue
            if value not in allowed:
                raise OptionsError(f"Invalid {name} {value!r}; expected one of {', '.join(map(str, allowed))}")

    @classmethod
    def from_dict(cls: type[T], data: Optional[Mapping[str, Any]]) -> T:
        """Build options from a plain mapping of snake_case field names."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise OptionsError(f"Unknown {cls.__name__} field(s): {', '.join(unknown)}")
        return cls(**dict(data))

    def to_dict(self) -> dict[str, Any]:
        """Export only the fields that are set."""
        result = {}
        for key, value in asdict(self).items():
            if value is None:
                continue
            result[key] = value.value if isinstance(value, Enum) else value
        return result


@dataclass(slots=True)
class StillOptions(CaptureOptions):
    timeout: Optional[int] = None
    quality: Optional[int] = None
    burst: Optional[bool] = None
    timelapse: Optional[int] = None


@dataclass(slots=True)
class VideoOptions(CaptureOptions):
    fps: Optional[float] = None
    intra: Optional[int] = None
    codec: Optional[str] = None
    segment: Optional[int] = None
    codec_level: Optional[str] = None
    codec_profile: Optional[str] = None
    bitrate: Optional[str] = None
    save_pts: Optional[str] = None
    max_file_size: Optional[str] = None
    circular_mode: Optional[bool] = None


__all__ = [
    "Zoom",
    "ZOOM_REGIONS",
    "zoom_region",
    "CaptureOptions",
    "StillOptions",
    "VideoOptions",
]
