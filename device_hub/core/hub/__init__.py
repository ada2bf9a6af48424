"""
Rendezvous hub core.

Bridges the controller, camera and actuator roles: one connection per
role, per-role outbound queues for absent targets, a registration
watchdog, and message routing including photo transport.
"""

from .config import HubConfig
from .connection import Connection, FrameKind, OutboundFrame
from .errors import HubError, ProtocolError, RegistrationError, TransportError
from .events import Closed, Connected, MessageReceived, OutboxReady, TimerFired
from .hub import Hub
from .outbound_queue import OutboundQueue, OverflowPolicy
from .registration_timer import RegistrationTimer, TimerState
from .registry import ConnectionRegistry
from .roles import Role
from .router import Router
from .status import StatusBroadcaster

__all__ = [
    'Hub',
    'HubConfig',
    'Connection',
    'FrameKind',
    'OutboundFrame',
    'HubError',
    'ProtocolError',
    'RegistrationError',
    'TransportError',
    'Connected',
    'MessageReceived',
    'Closed',
    'TimerFired',
    'OutboxReady',
    'OutboundQueue',
    'OverflowPolicy',
    'RegistrationTimer',
    'TimerState',
    'ConnectionRegistry',
    'Role',
    'Router',
    'StatusBroadcaster',
]
