"""
Status Broadcaster - camera/actuator connectivity pushed to the controller.
"""

from __future__ import annotations

from typing import Dict

from device_hub.core.logging_utils import get_module_logger

from .messages import status_envelope
from .registry import ConnectionRegistry
from .roles import Role


class StatusBroadcaster:
    """Derives connectivity flags from the registry and reports them.

    Snapshots are ephemeral: if no controller is connected nothing is sent
    and nothing is kept for later.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.logger = get_module_logger("StatusBroadcaster")
        self._registry = registry
        self.camera_connected = False
        self.actuator_connected = False

    def recompute(self) -> None:
        self.camera_connected = self._registry.is_connected(Role.CAMERA)
        self.actuator_connected = self._registry.is_connected(Role.ACTUATOR)

    def broadcast(self) -> bool:
        """Recompute and send a snapshot to the controller. True if sent."""
        self.recompute()
        controller = self._registry.lookup(Role.CONTROLLER)
        if controller is None:
            return False

        sent = controller.send_json(status_envelope(self.camera_connected, self.actuator_connected))
        if sent:
            self.logger.debug(
                "Status sent to controller: camera=%s actuator=%s",
                self.camera_connected,
                self.actuator_connected,
            )
        return sent

    def snapshot(self) -> Dict[str, bool]:
        return {
            "camera_connected": self.camera_connected,
            "actuator_connected": self.actuator_connected,
        }
