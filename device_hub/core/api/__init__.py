"""
Network front end for the device hub.

Usage:
    python -m device_hub --port 8080

One aiohttp listener carries both the device WebSockets and the
health check.
"""

from .server import HubServer, create_app

__all__ = ["HubServer", "create_app"]
