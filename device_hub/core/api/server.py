"""
Hub Server - aiohttp listener for device WebSockets and health checks.
"""

import asyncio
import ssl
from typing import Optional

from aiohttp import web

from device_hub.core.hub import Hub
from device_hub.core.logging_utils import get_module_logger

from .middleware import (
    error_handling_middleware,
    request_logging_middleware,
    set_debug_mode,
)
from .routes import setup_all_routes


logger = get_module_logger("HubServer")

SHUTDOWN_FLUSH_TIMEOUT = 2.0


def build_ssl_context(certfile, keyfile) -> ssl.SSLContext:
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(str(certfile), str(keyfile))
    return context


def create_app(hub: Hub, *, port: Optional[int] = None) -> web.Application:
    """Create and configure the aiohttp application."""
    app = web.Application(middlewares=[request_logging_middleware, error_handling_middleware])
    app["hub"] = hub
    app["port"] = port
    setup_all_routes(app, hub)
    return app


class HubServer:
    """
    Network front end of the hub.

    Serves the WebSocket device endpoint on every path, plus ``/health``
    and ``/api/v1/status``. TLS is enabled when the hub config names both a
    certificate and a key.
    """

    def __init__(
        self,
        hub: Hub,
        host: Optional[str] = None,
        port: Optional[int] = None,
        debug: bool = False,
    ):
        self.hub = hub
        self.host = host or hub.config.host
        self.port = port if port is not None else hub.config.port
        self.debug = debug

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._running = False

        set_debug_mode(debug)

    async def start(self) -> None:
        """Start the server (non-blocking)."""
        if self._running:
            logger.warning("Hub server already running")
            return

        ssl_context = None
        if self.hub.config.tls_enabled:
            ssl_context = build_ssl_context(self.hub.config.tls_cert, self.hub.config.tls_key)

        self._app = create_app(self.hub, port=self.port)
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port, ssl_context=ssl_context)
        await self._site.start()

        self._running = True
        logger.info("Hub listening on %s", self.url)

    async def stop(self) -> None:
        """Close device connections, then stop the listener."""
        if not self._running:
            return

        logger.info("Stopping hub server...")
        connections = self.hub.shutdown()

        # Give writers a moment to deliver close frames.
        loop = asyncio.get_running_loop()
        deadline = loop.time() + SHUTDOWN_FLUSH_TIMEOUT
        while any(self.hub.is_tracked(conn) for conn in connections) and loop.time() < deadline:
            await asyncio.sleep(0.05)

        for connection in connections:
            await connection.stop()

        if self._site:
            await self._site.stop()
            self._site = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        self._app = None
        self._running = False
        logger.info("Hub server stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        scheme = "https" if self.hub.config.tls_enabled else "http"
        return f"{scheme}://{self.host}:{self.port}"
