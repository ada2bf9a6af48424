"""Unit test fixtures for the hub core.

Hub tests drive ``Hub.handle`` directly and inspect each connection's
pending outbound frames; no writer task or network socket is involved.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

import pytest

from device_hub.core.hub import Connection, FrameKind, Hub, HubConfig
from tests.infrastructure.mocks.socket_mocks import MockWebSocket


# =============================================================================
# Frame helpers
# =============================================================================

def json_payloads(connection: Connection) -> List[Dict[str, Any]]:
    """JSON envelopes waiting in a connection's outbox, oldest first."""
    return [frame.payload for frame in connection.pending_frames() if not frame.is_binary]


def binary_payloads(connection: Connection) -> List[bytes]:
    return [frame.payload for frame in connection.pending_frames() if frame.is_binary]


def payloads_of_type(connection: Connection, msg_type: str) -> List[Dict[str, Any]]:
    return [payload for payload in json_payloads(connection) if payload.get("type") == msg_type]


def frame_kinds(connection: Connection) -> List[FrameKind]:
    return [frame.kind for frame in connection.pending_frames()]


def send(hub: Hub, connection: Connection, payload: Any) -> None:
    """Feed a message to the hub as a text frame (dicts are JSON-encoded)."""
    hub.receive(connection, payload if isinstance(payload, str) else json.dumps(payload))


# =============================================================================
# Hub fixtures
# =============================================================================

@pytest.fixture
def hub_config() -> HubConfig:
    return HubConfig(registration_timeout=45.0, photo_queue_limit=50, command_queue_limit=100)


@pytest.fixture
def hub(hub_config: HubConfig) -> Hub:
    return Hub(hub_config)


@pytest.fixture
def connect(hub: Hub) -> Callable[..., Connection]:
    """Factory: accept a new connection on a recording socket.

    Must be called from a running event loop (the registration timer
    arms on it).
    """

    def _connect(remote: str = "127.0.0.1") -> Connection:
        return hub.accept(MockWebSocket(), remote=remote)

    return _connect


@pytest.fixture
def register(hub: Hub, connect: Callable[..., Connection]) -> Callable[[str], Connection]:
    """Factory: accept a connection and register it as ``device``."""

    def _register(device: str) -> Connection:
        connection = connect()
        send(hub, connection, {"type": "register", "device": device})
        return connection

    return _register
