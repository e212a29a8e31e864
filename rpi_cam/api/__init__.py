"""REST API over a single CaptureOrchestrator."""

from .controller import APIController
from .server import APIServer

__all__ = ["APIController", "APIServer"]
