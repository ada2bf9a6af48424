"""Pytest fixtures for hub listener tests.

Provides helpers for running the aiohttp application in-process with
``aiohttp.test_utils`` so device WebSockets can be exercised end to end.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

import pytest
from aiohttp import web

from device_hub.core.api import create_app
from device_hub.core.hub import Hub, HubConfig


T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def create_test_app(hub: Optional[Hub] = None) -> web.Application:
    """Create the hub application around ``hub`` (or a fresh one)."""
    return create_app(hub or Hub(HubConfig(ws_heartbeat=None)))


async def register_ws(client, device: str):
    """Open a device WebSocket and complete registration."""
    ws = await client.ws_connect("/")
    await ws.send_json({"type": "register", "device": device})
    reply = await asyncio.wait_for(ws.receive_json(), timeout=2.0)
    assert reply == {"type": "registered", "message": "OK"}
    return ws


@pytest.fixture
def test_hub() -> Hub:
    return Hub(HubConfig(ws_heartbeat=None))
