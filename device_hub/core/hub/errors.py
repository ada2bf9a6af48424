"""Hub error taxonomy.

- ProtocolError: recoverable, answered with an error envelope.
- RegistrationError: terminal for the connection (error envelope, then close).
- TransportError: a write failed; the connection is treated as closed.
"""

from __future__ import annotations


class HubError(Exception):
    """Base class for errors raised while handling hub traffic."""


class ProtocolError(HubError):
    """Malformed or unroutable message; the connection stays open."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RegistrationError(HubError):
    """Registration failed; the connection must be closed."""

    def __init__(self, message: str, close_reason: str):
        super().__init__(message)
        self.message = message
        self.close_reason = close_reason


class TransportError(HubError):
    """Sending on a socket failed."""

    def __init__(self, connection_id: str, cause: BaseException | None = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Transport failure on connection {connection_id}{detail}")
        self.connection_id = connection_id
        self.cause = cause
