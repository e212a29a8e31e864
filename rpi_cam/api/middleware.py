"""
API Middleware - access control, request logging and the JSON error envelope.

Every failure leaves the API as::

    {"error": {"code": "...", "message": "...", "details": {...}}, "status": 409}

where ``code`` is an ``ErrorKind`` wire name for camera failures.
"""

import time
import traceback
from typing import Callable, Optional

from aiohttp import web

from rpi_cam.core.errors import CaptureResult, CaptureToolError, DuplicateTaskIdError, ErrorKind
from rpi_cam.core.logging_utils import get_module_logger


logger = get_module_logger("APIMiddleware")

LOCALHOST_IPS = {"127.0.0.1", "::1", "::ffff:127.0.0.1"}

# Capture tool failures are upstream failures from the client's point of view
TOOL_FAILURE_STATUS = 502


@web.middleware
async def localhost_only_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    peername = request.transport.get_extra_info("peername") if request.transport else None
    if peername and peername[0] not in LOCALHOST_IPS:
        logger.warning("Rejected request from %s", peername[0])
        return create_error_response("ACCESS_DENIED", "API access is restricted to localhost only", status=403)
    return await handler(request)


@web.middleware
async def request_logging_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    started = time.perf_counter()
    response = await handler(request)
    logger.debug(
        "%s %s -> %d (%.1fms)",
        request.method,
        request.path,
        response.status,
        (time.perf_counter() - started) * 1000,
    )
    return response


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Turn camera exceptions and unexpected errors into the JSON envelope."""
    try:
        return await handler(request)
    except web.HTTPException as e:
        code = e.reason.upper().replace(" ", "_") if e.reason else "HTTP_ERROR"
        return create_error_response(code, e.text or str(e), status=e.status)
    except DuplicateTaskIdError as e:
        return create_error_response(e.kind.value, str(e), status=409)
    except CaptureToolError as e:
        details = {"returncode": e.returncode} if e.returncode is not None else None
        return create_error_response(e.kind.value, str(e), status=TOOL_FAILURE_STATUS, details=details)
    except ValueError as e:
        # OptionsError and malformed query/body values
        logger.warning("Validation error: %s", e)
        return create_error_response("VALIDATION_ERROR", str(e), status=400)
    except KeyError as e:
        return create_error_response("MISSING_FIELD", f"Missing required field: {e}", status=400)
    except Exception as e:
        tb = traceback.format_exc()
        logger.error("Unhandled error on %s %s: %s\n%s", request.method, request.path, e, tb)
        details = {"type": type(e).__name__, "message": str(e)}
        if request.app.get("debug"):
            details["traceback"] = tb.split("\n")
        return create_error_response("INTERNAL_ERROR", "An unexpected error occurred", status=500, details=details)


def create_error_response(code: str, message: str, status: int = 400, details: Optional[dict] = None) -> web.Response:
    error = {"error": {"code": code, "message": message}, "status": status}
    if details:
        error["error"]["details"] = details
    return web.json_response(error, status=status)


async def parse_json_body(request: web.Request, required: bool = True):
    """Parse a JSON object body. Returns ``(body, error_response)``."""
    try:
        body = await request.json()
    except ValueError:
        if required:
            return None, create_error_response("INVALID_BODY", "Request body must be valid JSON", status=400)
        return {}, None
    if not isinstance(body, dict):
        return None, create_error_response("INVALID_BODY", "Request body must be a JSON object", status=400)
    if required and not body:
        return None, create_error_response("EMPTY_BODY", "Request body must contain data", status=400)
    return body, None


def result_to_response(result: CaptureResult, fail_status: int = 409) -> web.Response:
    """Render a CaptureResult; an unknown task id is a 404, other failures ``fail_status``."""
    if result.success:
        return web.json_response(result.to_dict())
    status = 404 if result.error.kind is ErrorKind.UNKNOWN_TASK_ID else fail_status
    return create_error_response(result.error.kind.value, result.error.message, status=status)
