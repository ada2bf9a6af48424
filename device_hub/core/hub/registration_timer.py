"""
Registration Timer - per-connection deadline for claiming a role.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional

DEFAULT_REGISTRATION_TIMEOUT = 45.0


class TimerState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    CANCELLED = "cancelled"
    FIRED = "fired"


class RegistrationTimer:
    """
    A cancellable delayed event.

    The timer leaves ARMED exactly once: either it is cancelled (successful
    registration or close) or it fires. Cancelling after it fired, or
    firing after it was cancelled, is a no-op.
    """

    def __init__(self, timeout: float, on_expire: Callable[[], None]):
        self.timeout = timeout
        self._on_expire = on_expire
        self._handle: Optional[asyncio.TimerHandle] = None
        self.state = TimerState.IDLE

    def arm(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if self.state is not TimerState.IDLE:
            raise RuntimeError(f"Timer already {self.state.value}")
        loop = loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout, self._fire)
        self.state = TimerState.ARMED

    def cancel(self) -> bool:
        """Cancel an armed timer. Returns True only for the call that cancelled it."""
        if self.state is not TimerState.ARMED:
            return False
        self.state = TimerState.CANCELLED
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        return True

    @property
    def is_armed(self) -> bool:
        return self.state is TimerState.ARMED

    def _fire(self) -> None:
        if self.state is not TimerState.ARMED:
            return
        self.state = TimerState.FIRED
        self._handle = None
        self._on_expire()
