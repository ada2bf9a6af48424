"""
Router - registration state machine and message dispatch.

Each decoded message type maps to the roles allowed to send it and the
action to take. Photos and device commands always pass through their
outbound lane, which forwards them at once when the target is connected
and holds them otherwise; everything else is a direct reply or relay.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, FrozenSet, List, Tuple, Type

from device_hub.core.logging_utils import get_module_logger

from .connection import Connection, FrameKind, OutboundFrame
from .errors import ProtocolError, RegistrationError
from .messages import (
    Alert,
    CaptureRequest,
    CommandResponse,
    ConfigCommand,
    ImageData,
    Message,
    PhotoFrame,
    Ping,
    Register,
    UnknownType,
    command_response_envelope,
    pong_envelope,
    registered_envelope,
    turn_on_light_envelope,
)
from .outbound_queue import OutboundQueue
from .registry import ConnectionRegistry
from .roles import ASSIGNABLE_ROLES, DEVICE_ROLES, Role
from .status import StatusBroadcaster


ANY_ROLE: FrozenSet[Role] = frozenset(ASSIGNABLE_ROLES)
DEVICES: FrozenSet[Role] = frozenset(DEVICE_ROLES)
CONTROLLER_ONLY: FrozenSet[Role] = frozenset({Role.CONTROLLER})
CAMERA_ONLY: FrozenSet[Role] = frozenset({Role.CAMERA})

CONFIG_REPLIES = {
    "network_config": "network configuration forwarded",
    "security_config": "security configuration forwarded",
}

Handler = Callable[[Connection, Any], None]


class Router:
    """Dispatches messages for one hub. All methods run without suspending."""

    def __init__(self, registry: ConnectionRegistry, queues: OutboundQueue, status: StatusBroadcaster):
        self.logger = get_module_logger("Router")
        self.registry = registry
        self.queues = queues
        self.status = status

        self._routes: Dict[Type[Message], Tuple[FrozenSet[Role], Handler]] = {
            Ping: (ANY_ROLE, self._on_ping),
            Alert: (DEVICES, self._on_alert),
            ConfigCommand: (CONTROLLER_ONLY, self._on_config),
            CaptureRequest: (CONTROLLER_ONLY, self._on_capture_request),
            CommandResponse: (DEVICES, self._on_command_response),
            PhotoFrame: (CAMERA_ONLY, self._on_photo_frame),
            ImageData: (CAMERA_ONLY, self._on_image_data),
            UnknownType: (ANY_ROLE, self._on_unknown),
        }

    def route(self, connection: Connection, message: Message) -> None:
        """Handle one message. Raises ProtocolError or RegistrationError."""
        if isinstance(message, Register):
            self._register(connection, message)
            return

        if not connection.is_registered:
            raise ProtocolError("registration required")

        route = self._routes.get(type(message))
        if route is None:
            raise ProtocolError("unknown command")

        allowed, handler = route
        if connection.role not in allowed:
            if isinstance(message, PhotoFrame):
                raise ProtocolError("only camera may send binary")
            raise ProtocolError("unknown command")

        handler(connection, message)

    # =========================================================================
    # Registration
    # =========================================================================

    def _register(self, connection: Connection, message: Register) -> None:
        if connection.is_registered:
            raise ProtocolError("already registered")

        role = Role.from_device(message.device)
        if role is None:
            raise RegistrationError("unknown device", close_reason="invalid device")

        if connection.registration_timer is not None:
            connection.registration_timer.cancel()

        connection.role = role
        connection.registered_at = time.time()
        evicted = self.registry.register(role, connection)
        if evicted is not None:
            self._settle_evicted(role, evicted)
        connection.send_json(registered_envelope())
        self.queues.drain_to(connection)
        self.status.broadcast()

    def _settle_evicted(self, role: Role, evicted: Connection) -> None:
        """Move the evicted connection's unwritten photos/commands back to the lane head.

        If one is mid-write it may still fail and come back, so the lane is
        held until the evicted connection has closed.
        """
        self.requeue(role, evicted.withdraw_queueable())
        if evicted.has_queueable_in_flight:
            self.queues.hold(role, evicted.id)

    # =========================================================================
    # Delivery helpers
    # =========================================================================

    def requeue(self, role: Role, frames: List[OutboundFrame]) -> None:
        """Put undelivered frames back at the head of their lanes, in order."""
        photos = [frame.payload for frame in frames if frame.kind is FrameKind.PHOTO]
        commands = [frame.payload for frame in frames if frame.kind is FrameKind.COMMAND]

        if photos:
            self.queues.requeue_photos(photos)
        if commands and role in DEVICE_ROLES:
            self.queues.requeue_commands(role, commands)

    def send_command(self, role: Role, envelope: Dict[str, Any]) -> bool:
        """Queue a command for a device and push it on if the device is connected.

        Returns True when the device is connected.
        """
        target = self.registry.lookup(role)
        self.queues.enqueue_command(role, envelope)
        if target is None:
            self.logger.info("%s offline, %s queued", role.value, envelope.get("type"))
            return False
        self.queues.drain_to(target)
        return True

    def send_photo(self, photo: bytes) -> bool:
        """Queue a photo for the controller and push it on if connected."""
        controller = self.registry.lookup(Role.CONTROLLER)
        self.queues.enqueue_photo(photo)
        if controller is None:
            self.logger.info(
                "Controller offline, photo queued (%d bytes, queue: %d)", len(photo), len(self.queues.photos)
            )
            return False
        self.queues.drain_to(controller)
        return True

    def notify_controller(self, envelope: Dict[str, Any]) -> bool:
        """Best-effort transient delivery to the controller; never queued."""
        controller = self.registry.lookup(Role.CONTROLLER)
        if controller is None:
            self.logger.debug("Controller offline, dropping %s", envelope.get("type"))
            return False
        return controller.send_json(envelope)

    # =========================================================================
    # Handlers
    # =========================================================================

    def _on_ping(self, connection: Connection, message: Ping) -> None:
        connection.send_json(pong_envelope())

    def _on_alert(self, connection: Connection, message: Alert) -> None:
        self.logger.info("Alert from %s: %s", connection.role.value, message.envelope.get("message"))
        self.notify_controller(message.envelope)
        self.send_command(Role.ACTUATOR, turn_on_light_envelope())

    def _on_config(self, connection: Connection, message: ConfigCommand) -> None:
        for role in DEVICE_ROLES:
            self.send_command(role, message.envelope)
        connection.send_json(command_response_envelope(True, CONFIG_REPLIES[message.type]))

    def _on_capture_request(self, connection: Connection, message: CaptureRequest) -> None:
        if self.send_command(Role.CAMERA, message.envelope):
            connection.send_json(command_response_envelope(True, "capture request sent"))
        else:
            connection.send_json(
                command_response_envelope(False, "camera offline, capture request queued", queued=True)
            )

    def _on_command_response(self, connection: Connection, message: CommandResponse) -> None:
        self.notify_controller(message.envelope)

    def _on_photo_frame(self, connection: Connection, message: PhotoFrame) -> None:
        self._handle_photo(message.photo)

    def _on_image_data(self, connection: Connection, message: ImageData) -> None:
        if not message.success:
            self.logger.info("Camera reported a failed capture")
            self.notify_controller(message.envelope)
            return
        self._handle_photo(message.decode_photo())

    def _on_unknown(self, connection: Connection, message: UnknownType) -> None:
        raise ProtocolError("unknown command")

    def _handle_photo(self, photo: bytes) -> None:
        self.logger.info("Photo received from camera (%d bytes)", len(photo))
        self.send_photo(photo)
        self.send_command(Role.ACTUATOR, turn_on_light_envelope())
