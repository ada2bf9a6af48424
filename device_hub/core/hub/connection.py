"""
Connection - one duplex channel to a device and its outbound writer.

The hub never awaits network I/O. ``send_json``/``send_bytes`` append a
frame to the connection's outbox and return immediately; a per-connection
writer task performs the actual socket writes in order. Frames that belong
in an outbound queue (photos, device commands) and were never written are
handed back on teardown so the hub can requeue them.

Queueable frames may only fill half of the outbox (the backlog share). The
rest stays in the hub's outbound queue and is pulled in as the writer makes
room, so a large backlog never trips the slow-consumer limit.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import time
import uuid
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol, Tuple, Union, TYPE_CHECKING

from device_hub.core.asyncio_utils import create_logged_task
from device_hub.core.logging_utils import connection_logger, get_module_logger

from .errors import TransportError
from .roles import Role

if TYPE_CHECKING:
    from .registration_timer import RegistrationTimer

logger = get_module_logger("Connection")

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_TRY_AGAIN_LATER = 1013


class FrameKind(Enum):
    """What an outbound frame is, which decides whether it can be requeued."""
    TRANSIENT = "transient"  # Replies, status, forwarded alerts/acknowledgements
    PHOTO = "photo"          # Photo bound for the controller
    COMMAND = "command"      # Command bound for a device

    @property
    def queueable(self) -> bool:
        return self is not FrameKind.TRANSIENT


@dataclass(frozen=True)
class OutboundFrame:
    kind: FrameKind
    payload: Union[Dict[str, Any], bytes]

    @property
    def is_binary(self) -> bool:
        return isinstance(self.payload, (bytes, bytearray))


class WebSocketLike(Protocol):
    """The subset of ``aiohttp.web.WebSocketResponse`` the writer uses."""

    async def send_str(self, data: str) -> None: ...

    async def send_bytes(self, data: bytes) -> None: ...

    async def close(self, *, code: int = ..., message: bytes = ...) -> bool: ...


ConnectionCallback = Callable[["Connection"], None]


class Connection:
    """A live device connection, tagged with a role once registered."""

    def __init__(
        self,
        socket: WebSocketLike,
        *,
        remote: Optional[str] = None,
        max_pending_frames: int = 256,
        connection_id: Optional[str] = None,
    ):
        self.id = connection_id or uuid.uuid4().hex
        self.socket = socket
        self.remote = remote or "unknown"
        self.role = Role.UNASSIGNED
        self.accepted_at = time.time()
        self.registered_at: Optional[float] = None
        self.registration_timer: Optional["RegistrationTimer"] = None
        self.max_pending_frames = max_pending_frames
        self.backlog_limit = max(1, max_pending_frames // 2)
        self.logger = connection_logger(logger, self.id)

        self._outbox: Deque[OutboundFrame] = deque()
        self._undelivered: List[OutboundFrame] = []
        self._in_flight: Optional[OutboundFrame] = None
        self._refill_requested = False
        self._close_request: Optional[Tuple[int, str]] = None
        self._closing = False
        self._closed = False
        self._wakeup = asyncio.Event()
        self._writer_task: Optional[asyncio.Task] = None
        self._on_lost: Optional[ConnectionCallback] = None
        self._on_ready: Optional[ConnectionCallback] = None

    def __repr__(self) -> str:
        return f"Connection(id={self.id[:8]}, role={self.role.value}, remote={self.remote})"

    # ------------------------------------------------------------------
    # State

    @property
    def is_open(self) -> bool:
        """True while the connection still accepts outbound frames."""
        return not (self._closing or self._closed)

    @property
    def is_registered(self) -> bool:
        return self.role is not Role.UNASSIGNED

    @property
    def close_request(self) -> Optional[Tuple[int, str]]:
        return self._close_request

    @property
    def pending_count(self) -> int:
        return len(self._outbox)

    @property
    def backlog_room(self) -> int:
        """How many more queueable frames the outbox takes right now."""
        if not self.is_open:
            return 0
        return max(0, self.backlog_limit - len(self._outbox))

    @property
    def has_queueable_in_flight(self) -> bool:
        """A photo or command is being written and may still fail."""
        return self._in_flight is not None and self._in_flight.kind.queueable

    def pending_frames(self) -> List[OutboundFrame]:
        return list(self._outbox)

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "remote": self.remote,
            "accepted_at": self.accepted_at,
            "registered_at": self.registered_at,
            "pending_frames": len(self._outbox),
        }

    # ------------------------------------------------------------------
    # Outbound

    def send_json(self, payload: Dict[str, Any], *, kind: FrameKind = FrameKind.TRANSIENT) -> bool:
        """Queue a JSON text frame. Returns False if the frame was refused."""
        return self._push(OutboundFrame(kind, payload))

    def send_bytes(self, data: bytes, *, kind: FrameKind = FrameKind.PHOTO) -> bool:
        """Queue a binary frame. Returns False if the frame was refused."""
        return self._push(OutboundFrame(kind, bytes(data)))

    def _push(self, frame: OutboundFrame) -> bool:
        if not self.is_open:
            return False
        if len(self._outbox) >= self.max_pending_frames:
            self.logger.warning(
                "Outbox full (%d frames), disconnecting slow consumer", len(self._outbox)
            )
            self.abort(CLOSE_TRY_AGAIN_LATER, "slow consumer")
            return False
        self._outbox.append(frame)
        self._wakeup.set()
        return True

    def request_refill(self) -> None:
        """Ask the writer to report back once it has made backlog room."""
        self._refill_requested = True

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close once the frames already queued have been written."""
        if not self.is_open:
            return
        self._closing = True
        self._close_request = (code, reason)
        self._wakeup.set()
        self.logger.info("Closing (code=%d, reason=%s)", code, reason or "-")

    def abort(self, code: int, reason: str) -> None:
        """Close without flushing; queueable frames are kept for requeueing."""
        if not self.is_open:
            return
        self._undelivered.extend(frame for frame in self._outbox if frame.kind.queueable)
        self._outbox.clear()
        self.close(code, reason)

    def withdraw_queueable(self) -> List[OutboundFrame]:
        """Take back unwritten photos and commands, leaving other frames to flush."""
        withdrawn = self._undelivered + [frame for frame in self._outbox if frame.kind.queueable]
        self._undelivered = []
        self._outbox = deque(frame for frame in self._outbox if not frame.kind.queueable)
        return withdrawn

    def detach(self) -> List[OutboundFrame]:
        """Stop all traffic and return queueable frames that were never written."""
        self._closing = True
        self._closed = True
        undelivered = self.withdraw_queueable()
        self._outbox.clear()
        self._wakeup.set()
        return undelivered

    # ------------------------------------------------------------------
    # Writer

    def start(
        self,
        on_lost: Optional[ConnectionCallback] = None,
        on_ready: Optional[ConnectionCallback] = None,
    ) -> asyncio.Task:
        """Start the writer task.

        ``on_lost`` runs once if a write fails. ``on_ready`` runs when a
        requested refill finds backlog room again.
        """
        self._on_lost = on_lost
        self._on_ready = on_ready
        if self._writer_task is None:
            self._writer_task = create_logged_task(
                self._run_writer(),
                logger=self.logger,
                context=f"writer-{self.id[:8]}",
            )
        return self._writer_task

    async def stop(self) -> None:
        """Cancel the writer task (used on shutdown)."""
        task = self._writer_task
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _write(self, frame: OutboundFrame) -> None:
        if frame.is_binary:
            await self.socket.send_bytes(frame.payload)
        else:
            await self.socket.send_str(json.dumps(frame.payload))

    def _maybe_refill(self) -> None:
        if self._refill_requested and self._on_ready is not None and self.backlog_room > 0:
            self._refill_requested = False
            self._on_ready(self)

    async def _run_writer(self) -> None:
        while True:
            while self._outbox and not self._closed:
                frame = self._outbox.popleft()
                self._in_flight = frame
                try:
                    await self._write(frame)
                except Exception as exc:
                    await self._handle_transport_error(TransportError(self.id, exc), frame)
                    return
                finally:
                    self._in_flight = None
                self._maybe_refill()

            if self._closed:
                return

            if self._close_request is not None:
                code, reason = self._close_request
                try:
                    await self.socket.close(code=code, message=reason.encode("utf-8"))
                except Exception as exc:
                    self.logger.debug("Socket close failed: %s", exc)
                self._closed = True
                return

            self._wakeup.clear()
            await self._wakeup.wait()

    async def _handle_transport_error(self, error: TransportError, frame: OutboundFrame) -> None:
        self.logger.warning("%s", error)
        if frame.kind.queueable:
            self._undelivered.append(frame)
        self._undelivered.extend(pending for pending in self._outbox if pending.kind.queueable)
        self._outbox.clear()
        self._closing = True

        if self._on_lost is not None:
            self._on_lost(self)

        # Unblock the reader side so the socket handler can finish.
        with contextlib.suppress(Exception):
            await self.socket.close(code=CLOSE_NORMAL, message=b"transport error")
        self._closed = True


__all__ = [
    "CLOSE_NORMAL",
    "CLOSE_GOING_AWAY",
    "CLOSE_TRY_AGAIN_LATER",
    "Connection",
    "FrameKind",
    "OutboundFrame",
    "WebSocketLike",
]
