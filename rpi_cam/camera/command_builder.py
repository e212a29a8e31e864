"""Render capture options into argument vectors for the capture tools.

The mapping is table driven: each ``FlagSpec`` names the option field it
reads, the predicate deciding whether the flag is emitted and how the value
is rendered (``None`` for bare switches). Still and video share the common
table and differ only in their tail.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from .options import CaptureOptions, StillOptions, VideoOptions, zoom_region


Predicate = Callable[[Any], bool]
Renderer = Callable[[Any], str]


@dataclass(frozen=True, slots=True)
class FlagSpec:
    flag: str
    field: str
    predicate: Predicate
    render: Optional[Renderer] = None


def _is_number_set(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    return value >= 0


def _is_truthy(value: Any) -> bool:
    return bool(value)


def _is_text_set(value: Any) -> bool:
    return value is not None and _format_text(value) != ""


def _is_explicit_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _format_roi(zoom: Any) -> str:
    return ",".join(_format_number(part) for part in zoom_region(zoom))


def number(field: str, flag: str) -> FlagSpec:
    return FlagSpec(flag, field, _is_number_set, _format_number)


def switch(field: str, flag: str) -> FlagSpec:
    return FlagSpec(flag, field, _is_truthy)


def text(field: str, flag: str) -> FlagSpec:
    return FlagSpec(flag, field, _is_text_set, _format_text)


def on_off(field: str, flag: str) -> FlagSpec:
    """Tri-state: rendered as ``on``/``off`` only when explicitly a bool."""
    return FlagSpec(flag, field, _is_explicit_bool, lambda value: "on" if value else "off")


def on_when_true(field: str, flag: str) -> FlagSpec:
    return FlagSpec(flag, field, _is_truthy, lambda value: "on")


COMMON_FLAGS: tuple[FlagSpec, ...] = (
    FlagSpec("--roi", "zoom", lambda value: value is not None, _format_roi),
    text("format", "--format"),
    number("iso", "--iso"),
    text("effect", "--effect"),
    text("exposure", "--exposure"),
    number("exposure_compensation", "--ev"),
    switch("no_preview", "--no-preview"),
    number("timeout", "--timeout"),
    number("contrast", "--contrast"),
    number("sharpness", "--sharpness"),
    number("brightness", "--brightness"),
    switch("flip_horizontal", "--hflip"),
    switch("flip_vertical", "--vflip"),
    on_off("denoise", "--denoise"),
    number("saturation", "--saturation"),
    text("awb", "--awb"),
    switch("autofocus_on_capture", "--autofocus-on-capture"),
    text("autofocus_range", "--autofocus-range"),
    text("mode", "--mode"),
    number("rotation", "--rotation"),
    switch("datetime", "--datetime"),
    text("awbgains", "--awbgains"),
    on_when_true("metadata", "--metadata"),
    text("final_command", "--final"),
    text("initial_command", "--initial"),
    text("signal", "--signal"),
    text("keypress", "--keypress"),
)

STILL_FLAGS: tuple[FlagSpec, ...] = (
    number("quality", "--quality"),
    switch("burst", "--burst"),
    number("timelapse", "--timelapse"),
)

VIDEO_FLAGS: tuple[FlagSpec, ...] = (
    number("fps", "--fps"),
    number("intra", "--intra"),
    text("codec", "--codec"),
    number("segment", "--segment"),
    text("codec_level", "--level"),
    text("codec_profile", "--profile"),
    text("bitrate", "--bitrate"),
    text("save_pts", "--save-pts"),
    text("max_file_size", "--max-length"),
    switch("circular_mode", "--circular"),
)


def render_flags(specs: Iterable[FlagSpec], values: dict[str, Any]) -> list[str]:
    """Evaluate ``specs`` against ``values`` and return the emitted tokens."""
    args: list[str] = []
    for spec in specs:
        value = values.get(spec.field)
        if not spec.predicate(value):
            continue
        args.append(spec.flag)
        if spec.render is not None:
            args.append(spec.render(value))
    return args


def _option_values(options: Optional[CaptureOptions]) -> dict[str, Any]:
    if options is None:
        return {}
    return {name: getattr(options, name) for name in options.__dataclass_fields__}


def _common_tail(index: int, output: str, width: int, height: int) -> list[str]:
    tail: list[str] = []
    if output:
        tail += ["--output", output]
    tail += ["--width", _format_number(width), "--height", _format_number(height)]
    if index >= 0:
        tail += ["--camera", str(index)]
    return tail


def build_still_args(
    index: int,
    output: str,
    width: int,
    height: int,
    options: Union[StillOptions, CaptureOptions, None] = None,
) -> list[str]:
    """Arguments for the still tool (without the program name)."""
    values = _option_values(options)
    args = render_flags(COMMON_FLAGS, values)
    args += render_flags(STILL_FLAGS, values)
    return args + _common_tail(index, output, width, height)


def build_video_args(
    index: int,
    output: str,
    timeout: Optional[int],
    width: int,
    height: int,
    options: Union[VideoOptions, CaptureOptions, None] = None,
) -> list[str]:
    """Arguments for the video tool (without the program name).

    ``timeout`` is the recording length in ms; ``0`` records until stopped.
    """
    values = _option_values(options)
    values["timeout"] = timeout
    args = render_flags(COMMON_FLAGS, values)
    args += render_flags(VIDEO_FLAGS, values)
    return args + _common_tail(index, output, width, height)


__all__ = [
    "FlagSpec",
    "COMMON_FLAGS",
    "STILL_FLAGS",
    "VIDEO_FLAGS",
    "render_flags",
    "build_still_args",
    "build_video_args",
]
