"""
Wire messages - decode inbound frames once into typed messages.

Text frames carry a JSON object with a required ``type`` string. Binary
frames are always raw photo bytes; they are never parsed as JSON.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Union

from .errors import ProtocolError


@dataclass(frozen=True)
class Message:
    """Base of every decoded message. ``envelope`` is the JSON as received."""
    envelope: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        return self.envelope.get("type", "")


@dataclass(frozen=True)
class Register(Message):
    device: Any = None


@dataclass(frozen=True)
class Ping(Message):
    pass


@dataclass(frozen=True)
class Alert(Message):
    pass


@dataclass(frozen=True)
class ConfigCommand(Message):
    """``network_config`` or ``security_config`` for both devices."""
    pass


@dataclass(frozen=True)
class CaptureRequest(Message):
    pass


@dataclass(frozen=True)
class CommandResponse(Message):
    pass


@dataclass(frozen=True)
class ImageData(Message):
    """Base64 photo inside JSON, decoded only once the sender is known to be the camera."""
    success: bool = False

    def decode_photo(self) -> bytes:
        """Return the photo bytes. Raises ProtocolError for a missing or invalid payload."""
        data = self.envelope.get("data")
        if not isinstance(data, str) or not data:
            raise ProtocolError("invalid image data")
        try:
            photo = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ProtocolError("invalid image data") from exc
        if not photo:
            raise ProtocolError("invalid image data")
        return photo


@dataclass(frozen=True)
class PhotoFrame(Message):
    """A binary frame."""
    photo: bytes = b""


@dataclass(frozen=True)
class UnknownType(Message):
    pass


def _decode_register(envelope: Dict[str, Any]) -> Message:
    return Register(envelope, device=envelope.get("device"))


def _decode_image_data(envelope: Dict[str, Any]) -> Message:
    return ImageData(envelope, success=envelope.get("success") is True)


_DECODERS: Dict[str, Callable[[Dict[str, Any]], Message]] = {
    "register": _decode_register,
    "ping": Ping,
    "alert": Alert,
    "network_config": ConfigCommand,
    "security_config": ConfigCommand,
    "capture_request": CaptureRequest,
    "command_response": CommandResponse,
    "image_data": _decode_image_data,
}


def decode_text(raw: str) -> Message:
    """Decode a text frame. Raises ProtocolError for malformed input."""
    try:
        envelope = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ProtocolError("invalid message") from exc

    if not isinstance(envelope, dict):
        raise ProtocolError("invalid message")

    msg_type = envelope.get("type")
    if not isinstance(msg_type, str) or not msg_type:
        raise ProtocolError("invalid message")

    decoder = _DECODERS.get(msg_type)
    if decoder is None:
        return UnknownType(envelope)
    return decoder(envelope)


def decode_binary(data: bytes) -> PhotoFrame:
    return PhotoFrame({"type": "photo"}, photo=bytes(data))


def decode_frame(data: Union[str, bytes, bytearray]) -> Message:
    if isinstance(data, str):
        return decode_text(data)
    return decode_binary(data)


# =============================================================================
# Outbound envelopes
# =============================================================================

def error_envelope(message: str) -> Dict[str, Any]:
    return {"type": "error", "message": message}


def registered_envelope() -> Dict[str, Any]:
    return {"type": "registered", "message": "OK"}


def pong_envelope() -> Dict[str, Any]:
    return {"type": "pong"}


def turn_on_light_envelope() -> Dict[str, Any]:
    return {"type": "turn_on_light"}


def command_response_envelope(success: bool, message: str, **extra: Any) -> Dict[str, Any]:
    envelope = {"type": "command_response", "success": success, "message": message}
    envelope.update(extra)
    return envelope


def status_envelope(camera: bool, actuator: bool) -> Dict[str, Any]:
    # "connected" mirrors the camera flag for older controller builds
    return {"type": "esp_status", "camera": camera, "actuator": actuator, "connected": camera}


__all__ = [
    "Message",
    "Register",
    "Ping",
    "Alert",
    "ConfigCommand",
    "CaptureRequest",
    "CommandResponse",
    "ImageData",
    "PhotoFrame",
    "UnknownType",
    "decode_text",
    "decode_binary",
    "decode_frame",
    "error_envelope",
    "registered_envelope",
    "pong_envelope",
    "turn_on_light_envelope",
    "command_response_envelope",
    "status_envelope",
]
