"""Camera, task and system routes."""

from aiohttp import web

from .controller import APIController
from .middleware import create_error_response, parse_json_body, result_to_response


def setup_all_routes(app: web.Application, controller: APIController) -> None:
    """Register all API routes with the application."""
    app.router.add_get("/api/v1/health", health_handler)
    app.router.add_get("/api/v1/status", status_handler)
    app.router.add_get("/api/v1/cameras", list_cameras_handler)
    app.router.add_get("/api/v1/camera/ready", ready_handler)
    app.router.add_post("/api/v1/camera/reserve", reserve_handler)
    app.router.add_post("/api/v1/camera/unlock", unlock_handler)
    app.router.add_post("/api/v1/camera/still", still_handler)
    app.router.add_get("/api/v1/tasks", list_tasks_handler)
    app.router.add_delete("/api/v1/tasks", cancel_all_handler)
    app.router.add_delete("/api/v1/tasks/{task_id}", cancel_task_handler)


def _query_flag(request: web.Request, name: str, default: bool) -> bool:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"'{name}' must be a boolean, got {raw!r}")


async def health_handler(request: web.Request) -> web.Response:
    """GET /api/v1/health - Health check."""
    controller: APIController = request.app["controller"]
    return web.json_response(await controller.health_check())


async def status_handler(request: web.Request) -> web.Response:
    """GET /api/v1/status - Camera index, reservation and live tasks."""
    controller: APIController = request.app["controller"]
    return web.json_response(await controller.get_status())


async def list_cameras_handler(request: web.Request) -> web.Response:
    """GET /api/v1/cameras - Enumerate attached cameras."""
    controller: APIController = request.app["controller"]
    return web.json_response({"cameras": await controller.list_cameras()})


async def ready_handler(request: web.Request) -> web.Response:
    """GET /api/v1/camera/ready - Readiness probe."""
    controller: APIController = request.app["controller"]
    return web.json_response({"ready": await controller.probe_ready()})


async def reserve_handler(request: web.Request) -> web.Response:
    """POST /api/v1/camera/reserve - Take the advisory hold."""
    controller: APIController = request.app["controller"]
    return result_to_response(await controller.reserve())


async def unlock_handler(request: web.Request) -> web.Response:
    """POST /api/v1/camera/unlock - Drop the advisory hold."""
    controller: APIController = request.app["controller"]
    return result_to_response(await controller.unlock())


async def still_handler(request: web.Request) -> web.Response:
    """POST /api/v1/camera/still - Capture a still and return the JPEG."""
    controller: APIController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err

    task_id = body.get("task_id")
    if not task_id or not isinstance(task_id, str):
        return create_error_response("MISSING_TASK_ID", "'task_id' (string) is required", status=400)
    try:
        width = int(body.get("width", 0))
        height = int(body.get("height", 0))
    except (TypeError, ValueError):
        return create_error_response("VALIDATION_ERROR", "'width' and 'height' must be integers", status=400)

    options = body.get("options")
    if options is not None and not isinstance(options, dict):
        return create_error_response("VALIDATION_ERROR", "'options' must be an object", status=400)

    image = await controller.capture_still(task_id, width, height, options)
    return web.Response(body=image, content_type="image/jpeg")


async def list_tasks_handler(request: web.Request) -> web.Response:
    """GET /api/v1/tasks - Tracked capture processes."""
    controller: APIController = request.app["controller"]
    return web.json_response({"tasks": await controller.list_tasks()})


async def cancel_task_handler(request: web.Request) -> web.Response:
    """DELETE /api/v1/tasks/{task_id} - Signal one task (SIGKILL unless force=false)."""
    controller: APIController = request.app["controller"]
    force = _query_flag(request, "force", True)
    result = await controller.cancel_task(request.match_info["task_id"], force)
    return result_to_response(result)


async def cancel_all_handler(request: web.Request) -> web.Response:
    """DELETE /api/v1/tasks - Signal every task (SIGTERM unless force=true)."""
    controller: APIController = request.app["controller"]
    force = _query_flag(request, "force", False)
    result = await controller.cancel_all_tasks(force)
    return result_to_response(result, fail_status=500)
