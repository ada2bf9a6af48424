"""
Connection Registry - at most one live connection per role.
"""

from __future__ import annotations

from typing import Dict, Optional, TYPE_CHECKING

from device_hub.core.logging_utils import get_module_logger

from .connection import CLOSE_NORMAL
from .roles import ASSIGNABLE_ROLES, Role

if TYPE_CHECKING:
    from .connection import Connection


class ConnectionRegistry:
    """
    Maps each assignable role to its single connection.

    Registering over an occupied role always evicts the previous occupant
    and closes it with reason "replaced"; the old socket is never left
    open behind the new one.
    """

    def __init__(self):
        self.logger = get_module_logger("ConnectionRegistry")
        self._slots: Dict[Role, Optional["Connection"]] = {role: None for role in ASSIGNABLE_ROLES}

    def register(self, role: Role, connection: "Connection") -> Optional["Connection"]:
        """Install ``connection`` for ``role``. Returns the evicted connection, if any."""
        if role not in self._slots:
            raise ValueError(f"Role {role.value} cannot be registered")

        previous = self._slots[role]
        if previous is connection:
            return None

        self._slots[role] = connection
        if previous is not None:
            self.logger.info("Replacing %s connection %s with %s", role.value, previous.id[:8], connection.id[:8])
            previous.close(CLOSE_NORMAL, "replaced")
        else:
            self.logger.info("%s registered (%s)", role.value, connection.id[:8])
        return previous

    def unregister(self, connection: "Connection") -> Optional[Role]:
        """Remove ``connection`` from its slot. Returns the vacated role, if any."""
        for role, occupant in self._slots.items():
            if occupant is connection:
                self._slots[role] = None
                self.logger.info("%s unregistered (%s)", role.value, connection.id[:8])
                return role
        return None

    def lookup(self, role: Role) -> Optional["Connection"]:
        return self._slots.get(role)

    def is_connected(self, role: Role) -> bool:
        return self._slots.get(role) is not None

    def connections(self) -> Dict[Role, "Connection"]:
        return {role: conn for role, conn in self._slots.items() if conn is not None}

    def snapshot(self) -> Dict[str, bool]:
        return {role.value: conn is not None for role, conn in self._slots.items()}
