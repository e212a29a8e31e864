"""Camera capture components: argument rendering, task tracking, reservation and orchestration."""

from .command_builder import build_still_args, build_video_args
from .config import CameraConfig
from .discovery import CameraDescriptor, CameraMode, Resolution, list_cameras, parse_camera_list
from .live_stream import LiveEvent, LiveStream
from .options import CaptureOptions, StillOptions, VideoOptions, Zoom
from .orchestrator import CaptureOrchestrator
from .reservation import RESERVE_TASK_ID, ReservationState, ReservationStateMachine
from .task_registry import TaskRecord, TaskRegistry

__all__ = [
    "build_still_args",
    "build_video_args",
    "CameraConfig",
    "CameraDescriptor",
    "CameraMode",
    "Resolution",
    "list_cameras",
    "parse_camera_list",
    "LiveEvent",
    "LiveStream",
    "CaptureOptions",
    "StillOptions",
    "VideoOptions",
    "Zoom",
    "CaptureOrchestrator",
    "RESERVE_TASK_ID",
    "ReservationState",
    "ReservationStateMachine",
    "TaskRecord",
    "TaskRegistry",
]
