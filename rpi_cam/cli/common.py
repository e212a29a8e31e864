from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Optional

from rpi_cam.camera.config import CameraConfig
from rpi_cam.camera.options import Zoom
from rpi_cam.core.logging_config import LOG_LEVELS, configure_logging
from rpi_cam.core.logging_utils import get_module_logger
from rpi_cam.core.paths import resolve_config_path


def add_common_cli_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (default: $RPI_CAM_CONFIG, ~/.rpi_cam/config.txt, packaged defaults)",
    )

    parser.add_argument(
        "--camera",
        type=non_negative_int,
        default=None,
        help="Camera index (overrides the config file)",
    )

    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default="warning",
        help="Logging verbosity",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to write rotating logs",
    )


def add_capture_arguments(parser: argparse.ArgumentParser) -> None:
    """Tunables shared by the ``still`` and ``video`` subcommands."""
    parser.add_argument("output", help="Output path, or '-' for stdout")
    parser.add_argument("--width", type=non_negative_int, default=0, help="Frame width (0 = tool default)")
    parser.add_argument("--height", type=non_negative_int, default=0, help="Frame height (0 = tool default)")
    parser.add_argument("--zoom", choices=[z.value for z in Zoom], default=None, help="Digital zoom level")
    parser.add_argument("--hflip", dest="flip_horizontal", action="store_true", default=None, help="Flip horizontally")
    parser.add_argument("--vflip", dest="flip_vertical", action="store_true", default=None, help="Flip vertically")
    parser.add_argument("--rotation", type=int, choices=(0, 90, 180, 270), default=None)
    parser.add_argument("--brightness", type=float, default=None)
    parser.add_argument("--contrast", type=float, default=None)
    parser.add_argument("--sharpness", type=float, default=None)
    parser.add_argument("--saturation", type=float, default=None)
    parser.add_argument("--awb", default=None, help="White balance mode")
    parser.add_argument("--exposure", default=None, help="Exposure mode")
    parser.add_argument("--no-preview", dest="no_preview", action="store_true", default=None)


CAPTURE_OPTION_FIELDS = (
    "zoom",
    "flip_horizontal",
    "flip_vertical",
    "rotation",
    "brightness",
    "contrast",
    "sharpness",
    "saturation",
    "awb",
    "exposure",
    "no_preview",
)


def collect_options(args: argparse.Namespace, names: tuple[str, ...]) -> dict[str, Any]:
    """Pick the option fields that were given on the command line."""
    return {name: getattr(args, name) for name in names if getattr(args, name, None) is not None}


def non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be an integer") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("Value must be >= 0")
    return parsed


def positive_int(value: str) -> int:
    parsed = non_negative_int(value)
    if parsed == 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed


def setup_cli_logging(args: argparse.Namespace) -> None:
    configure_logging(args.log_level, force=True, log_file=args.log_file)
    get_module_logger("CLI").debug("Logging configured at %s", args.log_level)


def load_camera_config(config_path: Optional[Path], camera: Optional[int]) -> CameraConfig:
    path = resolve_config_path(config_path)
    overrides = {"camera": camera} if camera is not None else None
    return CameraConfig.load(path, overrides)


__all__ = [
    "add_common_cli_arguments",
    "add_capture_arguments",
    "CAPTURE_OPTION_FIELDS",
    "collect_options",
    "non_negative_int",
    "positive_int",
    "setup_cli_logging",
    "load_camera_config",
]
