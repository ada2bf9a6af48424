"""
HTTP Middleware - request logging and error formatting for the hub listener.

Provides:
- Request logging (skipped for WebSocket upgrades, which log on their own)
- Unified JSON error responses
"""

import time
import traceback
from typing import Callable

from aiohttp import web

from device_hub.core.logging_utils import get_module_logger


logger = get_module_logger("HTTPMiddleware")

# Debug mode flag - set via HubServer
_debug_mode: bool = False


def set_debug_mode(enabled: bool) -> None:
    """Enable or disable verbose error responses."""
    global _debug_mode
    _debug_mode = enabled


def is_websocket_upgrade(request: web.Request) -> bool:
    return request.headers.get("Upgrade", "").lower() == "websocket"


@web.middleware
async def request_logging_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Log method, path, status and timing of plain HTTP requests."""
    if is_websocket_upgrade(request):
        return await handler(request)

    start_time = time.perf_counter()
    response = await handler(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.debug("%s %s -> %d (%.1fms)", request.method, request.path, response.status, elapsed_ms)
    return response


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """
    Catch and format errors as JSON responses:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable message",
            "details": { ... }  # debug mode only
        },
        "status": 500
    }
    """
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return web.json_response(
            {
                "error": {
                    "code": e.reason.upper().replace(" ", "_") if e.reason else "HTTP_ERROR",
                    "message": e.text or str(e),
                },
                "status": e.status,
            },
            status=e.status,
        )
    except Exception as e:
        tb = traceback.format_exc()
        logger.error("Unexpected error: %s\n%s", e, tb)

        error_response = {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            },
            "status": 500,
        }

        if _debug_mode:
            error_response["error"]["details"] = {
                "type": type(e).__name__,
                "message": str(e),
                "traceback": tb.split("\n"),
            }

        return web.json_response(error_response, status=500)
