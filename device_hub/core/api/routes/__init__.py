"""
HTTP route modules.

- system: /health health check and /api/v1/status hub snapshot
- websocket: catch-all device endpoint (WebSocket upgrade or banner)
"""

from .system import setup_system_routes
from .websocket import setup_websocket_routes


def setup_all_routes(app, hub):
    """Register all routes. The catch-all device endpoint goes last."""
    setup_system_routes(app, hub)
    setup_websocket_routes(app, hub)


__all__ = ["setup_all_routes"]
