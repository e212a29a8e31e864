"""
API Server - aiohttp REST server for one camera.

The server shares the asyncio event loop with the orchestrator it exposes,
so capture handlers await the same tracked tasks as library callers.
"""

from typing import Optional

from aiohttp import web

from rpi_cam.core.logging_utils import get_module_logger

from .controller import APIController
from .middleware import error_handling_middleware, localhost_only_middleware, request_logging_middleware
from .routes import setup_all_routes


logger = get_module_logger("APIServer")


class APIServer:

    def __init__(
        self,
        controller: APIController,
        host: str = "127.0.0.1",
        port: int = 8080,
        localhost_only: bool = True,
        debug: bool = False,
    ):
        """
        Args:
            controller: APIController wrapping the camera's CaptureOrchestrator
            host: Bind address (loopback by default)
            port: Bind port
            localhost_only: Reject requests whose peer is not a loopback address
            debug: Include tracebacks in 500 responses
        """
        self.controller = controller
        self.host = host
        self.port = port
        self.localhost_only = localhost_only
        self.debug = debug

        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        middlewares = [request_logging_middleware, error_handling_middleware]
        if self.localhost_only:
            middlewares.insert(0, localhost_only_middleware)

        app = web.Application(middlewares=middlewares)
        app["controller"] = self.controller
        app["debug"] = self.debug
        setup_all_routes(app, self.controller)
        return app

    async def start(self) -> None:
        if self._runner is not None:
            logger.warning("API server already running on %s", self.url)
            return

        runner = web.AppRunner(self.create_app())
        await runner.setup()
        try:
            await web.TCPSite(runner, self.host, self.port).start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

        logger.info(
            "API server for camera %d on %s%s",
            self.controller.orchestrator.camera,
            self.url,
            " (debug)" if self.debug else "",
        )

    async def stop(self) -> None:
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
        logger.info("API server stopped")

    async def __aenter__(self) -> "APIServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"
