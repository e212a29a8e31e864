"""Command-line entry point: ``rpi-cam {list,probe,still,video,serve}``."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import signal
import sys
from typing import Optional, Sequence

from rpi_cam import __version__
from rpi_cam.camera.config import CameraConfig
from rpi_cam.camera.discovery import list_cameras
from rpi_cam.camera.options import VIDEO_CODECS, StillOptions, VideoOptions
from rpi_cam.camera.orchestrator import CaptureOrchestrator
from rpi_cam.core.errors import CaptureResult, CaptureToolError, ConfigError, OptionsError
from rpi_cam.core.logging_utils import get_module_logger

from .common import (
    CAPTURE_OPTION_FIELDS,
    add_capture_arguments,
    add_common_cli_arguments,
    collect_options,
    load_camera_config,
    non_negative_int,
    positive_int,
    setup_cli_logging,
)

logger = get_module_logger("CLI")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

STILL_OPTION_FIELDS = CAPTURE_OPTION_FIELDS + ("quality", "timeout", "burst")
VIDEO_OPTION_FIELDS = CAPTURE_OPTION_FIELDS + ("fps", "codec", "bitrate", "intra", "circular_mode")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rpi-cam", description="Raspberry Pi camera capture orchestrator")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    add_common_cli_arguments(parser)

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List attached cameras")
    list_parser.add_argument("--json", action="store_true", help="Print descriptors as JSON")

    subparsers.add_parser("probe", help="Check whether the camera accepts a capture")

    still_parser = subparsers.add_parser("still", help="Capture one still image")
    add_capture_arguments(still_parser)
    still_parser.add_argument("--quality", type=non_negative_int, default=None, help="JPEG quality")
    still_parser.add_argument("--timeout", type=non_negative_int, default=None, help="Delay before capture (ms)")
    still_parser.add_argument("--burst", action="store_true", default=None)

    video_parser = subparsers.add_parser("video", help="Record a video")
    add_capture_arguments(video_parser)
    video_parser.add_argument("--timeout", type=non_negative_int, required=True, help="Duration in ms (0 = endless)")
    video_parser.add_argument("--fps", type=float, default=None)
    video_parser.add_argument("--codec", choices=VIDEO_CODECS, default=None)
    video_parser.add_argument("--bitrate", default=None)
    video_parser.add_argument("--intra", type=non_negative_int, default=None, help="Intra frame period")
    video_parser.add_argument("--circular", dest="circular_mode", action="store_true", default=None)

    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=positive_int, default=8080)
    serve_parser.add_argument(
        "--allow-remote",
        dest="localhost_only",
        action="store_false",
        help="Accept requests from hosts other than localhost",
    )
    serve_parser.add_argument("--debug", action="store_true", help="Verbose error responses")

    return parser


def _write_output(result: CaptureResult, output: str) -> None:
    if output == "-" and isinstance(result.output, (bytes, bytearray)):
        sys.stdout.buffer.write(result.output)
        sys.stdout.buffer.flush()


def _cmd_list(args: argparse.Namespace, config: CameraConfig) -> int:
    cameras = list_cameras(config.list_command)
    if args.json:
        print(json.dumps([camera.to_dict() for camera in cameras], indent=2))
        return EXIT_OK

    if not cameras:
        print("No cameras available")
        return EXIT_OK
    for camera in cameras:
        res = camera.resolution
        print(f"{camera.index} : {camera.name} [{res.width}x{res.height}] ({camera.path})")
    return EXIT_OK


def _one_shot(config: CameraConfig) -> CaptureOrchestrator:
    # a hold taken by a one-shot command would outlive the process
    return CaptureOrchestrator(config=dataclasses.replace(config, auto_reserve=False))


def _cmd_probe(args: argparse.Namespace, config: CameraConfig) -> int:
    orchestrator = _one_shot(config)
    ready = orchestrator.probe_ready_sync()
    print("ready" if ready else "busy")
    return EXIT_OK if ready else EXIT_FAILURE


def _cmd_still(args: argparse.Namespace, config: CameraConfig) -> int:
    options = StillOptions.from_dict(collect_options(args, STILL_OPTION_FIELDS))
    orchestrator = _one_shot(config)
    result = orchestrator.capture_still_sync(args.output, args.width, args.height, options)
    _write_output(result, args.output)
    return EXIT_OK


def _cmd_video(args: argparse.Namespace, config: CameraConfig) -> int:
    options = VideoOptions.from_dict(collect_options(args, VIDEO_OPTION_FIELDS))
    orchestrator = _one_shot(config)
    result = orchestrator.capture_video_sync(args.output, args.timeout, args.width, args.height, options)
    _write_output(result, args.output)
    return EXIT_OK


async def _serve(args: argparse.Namespace, config: CameraConfig) -> None:
    from rpi_cam.api import APIController, APIServer

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    async with CaptureOrchestrator(config=config) as orchestrator:
        server = APIServer(
            APIController(orchestrator),
            host=args.host,
            port=args.port,
            localhost_only=args.localhost_only,
            debug=args.debug,
        )
        async with server:
            await stop_event.wait()


def _cmd_serve(args: argparse.Namespace, config: CameraConfig) -> int:
    asyncio.run(_serve(args, config))
    return EXIT_OK


COMMANDS = {
    "list": _cmd_list,
    "probe": _cmd_probe,
    "still": _cmd_still,
    "video": _cmd_video,
    "serve": _cmd_serve,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    setup_cli_logging(args)

    try:
        config = load_camera_config(args.config, args.camera)
        return COMMANDS[args.command](args, config)
    except (ConfigError, OptionsError) as exc:
        logger.error("%s", exc)
        print(f"rpi-cam: error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except CaptureToolError as exc:
        print(f"rpi-cam: {exc.kind.value}: {exc}", file=sys.stderr)
        return EXIT_FAILURE


__all__ = ["build_parser", "main"]
