"""Events the hub folds over its state, one at a time."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .connection import Connection


@dataclass(frozen=True)
class Connected:
    connection: Connection


@dataclass(frozen=True)
class MessageReceived:
    connection: Connection
    data: Union[str, bytes]


@dataclass(frozen=True)
class Closed:
    connection: Connection
    reason: str = "peer closed"


@dataclass(frozen=True)
class TimerFired:
    connection: Connection


@dataclass(frozen=True)
class OutboxReady:
    """The writer made room for more queued photos or commands."""
    connection: Connection


HubEvent = Union[Connected, MessageReceived, Closed, TimerFired, OutboxReady]
