"""
Hub - owns the registry, queues and status for one device triplet.

Every state change is the reaction to one event (Connected,
MessageReceived, Closed, TimerFired, OutboxReady) handled synchronously by
``Hub.handle``. Handlers never await, so on a single event loop one event
always runs to completion before the next starts.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Type

from device_hub.core.logging_utils import get_module_logger

from .config import HubConfig
from .connection import CLOSE_GOING_AWAY, CLOSE_NORMAL, Connection, WebSocketLike
from .errors import ProtocolError, RegistrationError
from .events import Closed, Connected, HubEvent, MessageReceived, OutboxReady, TimerFired
from .messages import decode_frame, error_envelope
from .outbound_queue import OutboundQueue
from .registration_timer import RegistrationTimer
from .registry import ConnectionRegistry
from .roles import DEVICE_ROLES, Role
from .router import Router
from .status import StatusBroadcaster


class Hub:
    """The rendezvous hub. Create one per process."""

    def __init__(self, config: Optional[HubConfig] = None):
        self.config = config or HubConfig()
        self.logger = get_module_logger("Hub")

        self.registry = ConnectionRegistry()
        self.queues = OutboundQueue(
            photo_limit=self.config.photo_queue_limit,
            command_limit=self.config.command_queue_limit,
            policy=self.config.queue_overflow_policy,
        )
        self.status = StatusBroadcaster(self.registry)
        self.router = Router(self.registry, self.queues, self.status)

        self._connections: Dict[str, Connection] = {}
        self._handlers: Dict[Type[Any], Callable[[Any], None]] = {
            Connected: self._on_connected,
            MessageReceived: self._on_message,
            Closed: self._on_closed,
            TimerFired: self._on_timer_fired,
            OutboxReady: self._on_outbox_ready,
        }

    # =========================================================================
    # Entry points
    # =========================================================================

    def handle(self, event: HubEvent) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported hub event: {event!r}")
        handler(event)

    def accept(self, socket: WebSocketLike, remote: Optional[str] = None) -> Connection:
        """Wrap a freshly opened socket and start its registration window."""
        connection = Connection(
            socket,
            remote=remote,
            max_pending_frames=self.config.max_pending_frames,
        )
        self.handle(Connected(connection))
        return connection

    def receive(self, connection: Connection, data: Any) -> None:
        self.handle(MessageReceived(connection, data))

    def disconnect(self, connection: Connection, reason: str = "peer closed") -> None:
        self.handle(Closed(connection, reason))

    def connection_ready(self, connection: Connection) -> None:
        """Writer callback once a refill request finds backlog room."""
        self.handle(OutboxReady(connection))

    def connection_lost(self, connection: Connection) -> None:
        """Writer callback for a failed send; same cleanup as a close."""
        self.handle(Closed(connection, "transport error"))

    def shutdown(self) -> List[Connection]:
        """Close every live connection. Returns the connections being closed."""
        connections = list(self._connections.values())
        for connection in connections:
            if connection.registration_timer is not None:
                connection.registration_timer.cancel()
            connection.close(CLOSE_GOING_AWAY, "server shutdown")
        if connections:
            self.logger.info("Closing %d connection(s) for shutdown", len(connections))
        return connections

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def is_tracked(self, connection: Connection) -> bool:
        return connection.id in self._connections

    def snapshot(self) -> Dict[str, Any]:
        self.status.recompute()
        return {
            "roles": self.registry.snapshot(),
            **self.status.snapshot(),
            "queues": self.queues.depths(),
            "dropped": self.queues.dropped,
            "connections": len(self._connections),
            "clients": [connection.describe() for connection in self._connections.values()],
        }

    # =========================================================================
    # Event handlers
    # =========================================================================

    def _on_connected(self, event: Connected) -> None:
        connection = event.connection
        self._connections[connection.id] = connection

        timer = RegistrationTimer(
            self.config.registration_timeout,
            lambda: self.handle(TimerFired(connection)),
        )
        connection.registration_timer = timer
        timer.arm()
        connection.logger.info(
            "Connection accepted from %s (registration window %.0fs)",
            connection.remote,
            self.config.registration_timeout,
        )

    def _on_message(self, event: MessageReceived) -> None:
        connection = event.connection
        if not self.is_tracked(connection) or not connection.is_open:
            connection.logger.debug("Ignoring message on closing connection")
            return

        try:
            message = decode_frame(event.data)
            self.router.route(connection, message)
        except ProtocolError as exc:
            connection.logger.warning("Protocol error from %s: %s", connection.role.value, exc.message)
            connection.send_json(error_envelope(exc.message))
        except RegistrationError as exc:
            connection.logger.warning("Registration rejected: %s", exc.message)
            connection.send_json(error_envelope(exc.message))
            self._close(connection, exc.close_reason)
        except Exception:
            connection.logger.exception("Error handling message")
            connection.send_json(error_envelope("internal error"))

    def _on_timer_fired(self, event: TimerFired) -> None:
        connection = event.connection
        if connection.is_registered or not connection.is_open:
            return
        connection.logger.info("Registration timeout, disconnecting")
        connection.send_json(error_envelope("registration required"))
        connection.close(CLOSE_NORMAL, "registration timeout")

    def _on_closed(self, event: Closed) -> None:
        connection = event.connection
        if self._connections.pop(connection.id, None) is None:
            return

        if connection.registration_timer is not None:
            connection.registration_timer.cancel()

        undelivered = connection.detach()
        vacated = self.registry.unregister(connection)
        connection.logger.info(
            "Disconnected: %s (%s)", connection.role.value, event.reason
        )

        role = connection.role
        if undelivered:
            self.router.requeue(role, undelivered)
        released = role is not Role.UNASSIGNED and self.queues.release(role, connection.id)

        # A successor may already hold the role (eviction); hand it the items.
        if undelivered or released:
            occupant = self.registry.lookup(role)
            if occupant is not None and occupant.is_open:
                self.queues.drain_to(occupant)

        if vacated in DEVICE_ROLES:
            self.status.broadcast()

    def _on_outbox_ready(self, event: OutboxReady) -> None:
        connection = event.connection
        if not self.is_tracked(connection) or not connection.is_open:
            return
        if self.registry.lookup(connection.role) is not connection:
            return
        self.queues.drain_to(connection)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _close(self, connection: Connection, reason: str) -> None:
        if connection.registration_timer is not None:
            connection.registration_timer.cancel()
        connection.close(CLOSE_NORMAL, reason)
