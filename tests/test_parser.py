"""Tests for decoding response frames."""

import pytest

from biotriage_serial.errors import DecodeError, TruncatedFrameError, UnknownResponseError
from biotriage_serial.protocol.framing import Frame, FrameParser
from biotriage_serial.protocol.parser import (
    InclineResponse,
    PressureResponse,
    SpeedResponse,
    TemperatureResponse,
    parse_response,
)


def _frame(command: int, payload: bytes) -> Frame:
    return Frame(command=command, payload=payload, source=0x07)


def test_temperature_from_byte_stream():
    """0x0145 = 325 -> 32.5 degrees."""
    frames = FrameParser().feed_bytes(bytes([0x02, 0x08, 0x0B, 0x01, 0x45, 0x03]))
    assert parse_response(frames[0]) == TemperatureResponse(32.5)


def test_pressure_divided_by_ten():
    assert parse_response(_frame(0x0C, b"\x27\x95")) == PressureResponse(1013.3)


def test_speed_is_raw_integer():
    response = parse_response(_frame(0x0D, b"\x00\xa9"))
    assert response == SpeedResponse(169)
    assert isinstance(response.value, int)


def test_incline_is_raw_integer():
    assert parse_response(_frame(0x0E, b"\x00\x1e")) == InclineResponse(30)


def test_large_values_use_both_bytes():
    assert parse_response(_frame(0x0D, b"\xff\xff")).value == 65535
    assert parse_response(_frame(0x0B, b"\xff\xff")).value == 6553.5


def test_extra_payload_bytes_are_ignored():
    assert parse_response(_frame(0x0B, b"\x01\x45\x99")) == TemperatureResponse(32.5)


@pytest.mark.parametrize("response_id", [0x01, 0x09, 0x0F, 0x42])
def test_unknown_response_id(response_id):
    frame = _frame(response_id, b"\x00\x01")
    with pytest.raises(UnknownResponseError) as exc_info:
        parse_response(frame)
    assert exc_info.value.response_id == response_id
    assert exc_info.value.frame == frame
    assert f"0x{response_id:02X}" in str(exc_info.value)


@pytest.mark.parametrize("payload", [b"", b"\x01"])
def test_truncated_payload(payload):
    with pytest.raises(TruncatedFrameError):
        parse_response(_frame(0x0B, payload))


def test_decode_errors_share_a_base():
    with pytest.raises(DecodeError):
        parse_response(_frame(0x0C, b""))
    with pytest.raises(DecodeError):
        parse_response(_frame(0x50, b""))
