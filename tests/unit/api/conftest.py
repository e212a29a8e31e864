"""Fixtures for API tests: a real orchestrator on fake tools behind TestServer."""

from __future__ import annotations

import pytest
from aiohttp import web

from rpi_cam.api.controller import APIController
from rpi_cam.api.server import APIServer
from rpi_cam.camera.orchestrator import CaptureOrchestrator


def create_test_app(controller: APIController, localhost_only: bool = True) -> web.Application:
    """Build the aiohttp application the server would run."""
    return APIServer(controller, localhost_only=localhost_only).create_app()


@pytest.fixture
def make_controller(camera_config):
    """Factory for controllers; their orchestrators are torn down after the test."""
    orchestrators = []

    def factory(**overrides) -> APIController:
        orchestrator = CaptureOrchestrator(config=camera_config(**overrides))
        orchestrators.append(orchestrator)
        return APIController(orchestrator)

    yield factory
    for orchestrator in orchestrators:
        if orchestrator.is_reserved():
            orchestrator.unlock_reserve()
        orchestrator.cancel_all_tasks(force=True)
