"""Response parsing for frames received from the controller board."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from ..errors import TruncatedFrameError, UnknownResponseError
from .commands import ResponseId, bytes_to_value, int_to_pressure, int_to_temperature
from .framing import Frame

RESPONSE_PAYLOAD_SIZE = 2


@dataclass(frozen=True)
class TemperatureResponse:
    """Current temperature in degrees Celsius."""

    value: float


@dataclass(frozen=True)
class PressureResponse:
    """Current pressure."""

    value: float


@dataclass(frozen=True)
class SpeedResponse:
    """Current treadmill speed index."""

    value: int


@dataclass(frozen=True)
class InclineResponse:
    """Current treadmill incline index."""

    value: int


Response = Union[TemperatureResponse, PressureResponse, SpeedResponse, InclineResponse]


def _raw_value(frame: Frame) -> int:
    payload = frame.payload
    if len(payload) < RESPONSE_PAYLOAD_SIZE:
        raise TruncatedFrameError(
            f"Response 0x{frame.command:02X} needs a {RESPONSE_PAYLOAD_SIZE}-byte "
            f"payload, got {len(payload)}",
            frame,
        )
    return bytes_to_value(payload[0], payload[1])


def parse_temperature(frame: Frame) -> TemperatureResponse:
    return TemperatureResponse(value=int_to_temperature(_raw_value(frame)))


def parse_pressure(frame: Frame) -> PressureResponse:
    return PressureResponse(value=int_to_pressure(_raw_value(frame)))


def parse_speed(frame: Frame) -> SpeedResponse:
    return SpeedResponse(value=_raw_value(frame))


def parse_incline(frame: Frame) -> InclineResponse:
    return InclineResponse(value=_raw_value(frame))


PARSERS: dict[int, Callable[[Frame], Response]] = {
    ResponseId.TEMPERATURE: parse_temperature,
    ResponseId.PRESSURE: parse_pressure,
    ResponseId.SPEED: parse_speed,
    ResponseId.INCLINE: parse_incline,
}


def parse_response(frame: Frame) -> Response:
    """Dispatch a frame to the parser for its response id.

    Raises:
        UnknownResponseError: If the id is not a known response.
        TruncatedFrameError: If the payload is shorter than two bytes.
    """
    parser = PARSERS.get(frame.command)
    if parser is None:
        raise UnknownResponseError(frame.command, frame)
    return parser(frame)
