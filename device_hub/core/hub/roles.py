"""Device roles a connection can claim."""

from enum import Enum
from typing import Optional


class Role(Enum):
    """Fixed roles of the device triplet plus the pre-registration state."""
    UNASSIGNED = "unassigned"
    CONTROLLER = "controller"  # Mobile application
    CAMERA = "camera"          # Sensor, sole source of photos
    ACTUATOR = "actuator"      # Executes physical actions (lighting)

    @classmethod
    def from_device(cls, device: object) -> Optional["Role"]:
        """Map a ``register`` device name to a role, ``None`` if invalid."""
        if not isinstance(device, str):
            return None
        for role in ASSIGNABLE_ROLES:
            if role.value == device:
                return role
        return None


ASSIGNABLE_ROLES = (Role.CONTROLLER, Role.CAMERA, Role.ACTUATOR)

# Roles that receive queued commands from the controller
DEVICE_ROLES = (Role.CAMERA, Role.ACTUATOR)
