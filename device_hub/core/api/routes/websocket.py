"""
WebSocket Route - device connections on any path of the listener.

Plain HTTP requests on the same paths get the banner response, so the
listener also serves as a health check.
"""

from aiohttp import WSMsgType, web

from device_hub.core.hub import Hub
from device_hub.core.logging_utils import get_module_logger

from ..middleware import is_websocket_upgrade
from .system import banner_handler


logger = get_module_logger("WebSocketRoute")


def setup_websocket_routes(app: web.Application, hub: Hub) -> None:
    """Register the catch-all route. Must be added after specific routes."""
    app.router.add_route("*", "/{tail:.*}", device_endpoint)


async def device_endpoint(request: web.Request) -> web.StreamResponse:
    if request.method == "GET" and is_websocket_upgrade(request):
        return await websocket_handler(request)
    return await banner_handler(request)


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    """Feed one socket's frames into the hub until it closes."""
    hub: Hub = request.app["hub"]
    ws = web.WebSocketResponse(
        heartbeat=hub.config.ws_heartbeat,
        max_msg_size=hub.config.max_message_size,
    )
    await ws.prepare(request)

    connection = hub.accept(ws, remote=request.remote)
    connection.start(on_lost=hub.connection_lost, on_ready=hub.connection_ready)
    reason = "peer closed"

    try:
        async for msg in ws:
            if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                hub.receive(connection, msg.data)
            elif msg.type == WSMsgType.ERROR:
                reason = f"socket error: {ws.exception()}"
                break
    finally:
        if ws.close_code is not None and reason == "peer closed":
            reason = f"closed with code {ws.close_code}"
        hub.disconnect(connection, reason)

    return ws
