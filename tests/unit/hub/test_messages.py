"""Unit tests for inbound frame decoding."""

import base64
import json

import pytest

from device_hub.core.hub import ProtocolError
from device_hub.core.hub.messages import (
    Alert,
    CaptureRequest,
    CommandResponse,
    ConfigCommand,
    ImageData,
    PhotoFrame,
    Ping,
    Register,
    UnknownType,
    decode_frame,
    decode_text,
    status_envelope,
)


class TestDecodeText:
    """Test JSON text frame decoding."""

    @pytest.mark.parametrize("msg_type,expected", [
        ("ping", Ping),
        ("alert", Alert),
        ("network_config", ConfigCommand),
        ("security_config", ConfigCommand),
        ("capture_request", CaptureRequest),
        ("command_response", CommandResponse),
    ])
    def test_known_types(self, msg_type, expected):
        message = decode_text(json.dumps({"type": msg_type, "extra": 1}))

        assert isinstance(message, expected)
        assert message.type == msg_type
        assert message.envelope["extra"] == 1

    def test_register_carries_device(self):
        message = decode_text('{"type": "register", "device": "camera"}')

        assert isinstance(message, Register)
        assert message.device == "camera"

    def test_unknown_type(self):
        message = decode_text('{"type": "reboot"}')

        assert isinstance(message, UnknownType)
        assert message.type == "reboot"

    @pytest.mark.parametrize("raw", [
        "{not json",
        "[1, 2, 3]",
        '"ping"',
        "{}",
        '{"type": 7}',
        '{"type": ""}',
    ])
    def test_malformed_frames(self, raw):
        with pytest.raises(ProtocolError) as exc_info:
            decode_text(raw)

        assert exc_info.value.message == "invalid message"


class TestImageData:
    """Test base64 photo decoding."""

    def test_decodes_base64_payload(self):
        photo = b"\xff\xd8\xff\xe0jpeg-bytes"
        raw = json.dumps({"type": "image_data", "success": True, "data": base64.b64encode(photo).decode()})

        message = decode_text(raw)

        assert isinstance(message, ImageData)
        assert message.success is True
        assert message.decode_photo() == photo

    def test_failed_capture_keeps_envelope(self):
        message = decode_text('{"type": "image_data", "success": false, "message": "no frame"}')

        assert isinstance(message, ImageData)
        assert message.success is False
        assert message.envelope["message"] == "no frame"

    @pytest.mark.parametrize("data", [None, "", "!!not-base64!!", 42])
    def test_invalid_payload_decodes_lazily(self, data):
        raw = json.dumps({"type": "image_data", "success": True, "data": data})

        message = decode_text(raw)

        with pytest.raises(ProtocolError, match="invalid image data"):
            message.decode_photo()


class TestDecodeFrame:

    def test_binary_is_always_a_photo(self):
        # Even bytes that look like JSON are treated as photo data
        message = decode_frame(b'{"type": "ping"}')

        assert isinstance(message, PhotoFrame)
        assert message.photo == b'{"type": "ping"}'

    def test_bytearray(self):
        message = decode_frame(bytearray(b"\x00\x01"))

        assert isinstance(message, PhotoFrame)
        assert message.photo == b"\x00\x01"

    def test_text_dispatch(self):
        assert isinstance(decode_frame('{"type": "ping"}'), Ping)


def test_status_envelope_mirrors_camera_flag():
    assert status_envelope(True, False) == {
        "type": "esp_status",
        "camera": True,
        "actuator": False,
        "connected": True,
    }
