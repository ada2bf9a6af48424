"""
System Routes - health check and hub status.
"""

from aiohttp import web

from device_hub.core.hub import Hub


def setup_system_routes(app: web.Application, hub: Hub) -> None:
    """Register system routes."""
    app.router.add_get("/health", health_handler)
    app.router.add_get("/api/v1/status", status_handler)


async def health_handler(request: web.Request) -> web.Response:
    """GET /health - Health check."""
    return web.json_response({"status": "ok"})


async def status_handler(request: web.Request) -> web.Response:
    """GET /api/v1/status - Registry, connectivity and queue depths."""
    hub: Hub = request.app["hub"]
    return web.json_response(hub.snapshot())


async def banner_handler(request: web.Request) -> web.Response:
    """Any other plain HTTP request - answer 200 so health checks see the hub alive."""
    port = request.app.get("port")
    suffix = f" on port {port}" if port else ""
    return web.Response(text=f"Device hub WebSocket endpoint active{suffix}\n")
