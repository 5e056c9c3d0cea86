"""Command identifiers, command variants and the outbound command codec.

Each command is a single-byte id followed by a payload whose size is fixed
per command. Every variant validates its value against a closed range
before a frame is built, so an out-of-range value never reaches the port.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar

from ..errors import RangeError, WireRangeError
from .framing import build_frame

WIRE_MAX = 0xFFFF
SETPOINT_RANGE = (0.0, 6553.5)


class Command(IntEnum):
    """Host-to-device command identifiers."""

    SPEED = 0x01
    PRESSURE = 0x04
    INCLINE = 0x05
    TEMPERATURE = 0x06
    REQUEST_TEMPERATURE = 0x09
    REQUEST_PRESSURE = 0x0A
    OPERATION_MODE = 0x0F
    HEATER_POWER = 0x10
    PUMP_POWER = 0x11
    LAMP = 0x12
    RGB_COLOR = 0x13
    LEDS = 0x15
    NEON = 0x16
    AROMA = 0x17


class ResponseId(IntEnum):
    """Device-to-host response identifiers. All carry a 2-byte payload."""

    TEMPERATURE = 0x0B
    PRESSURE = 0x0C
    SPEED = 0x0D
    INCLINE = 0x0E


def build_command(command: Command, payload: bytes = b"") -> bytes:
    """Build a host frame for a command id and an already encoded payload."""
    return build_frame(command.value, payload)


# ─── VALUE CONVERSION ────────────────────────────────────────────────

def value_to_bytes(value: int) -> bytes:
    """Encode a 16-bit value high byte first."""
    return bytes([(value >> 8) & 0xFF, value & 0xFF])


def bytes_to_value(high: int, low: int) -> int:
    return (high << 8) | low


def _to_tenths(value: float) -> int:
    """Scale to tenths, truncating toward zero.

    The product is rounded to 6 decimals before truncation, because binary
    floats put many one-decimal inputs just below their tenth
    (``6553.3 * 10 == 65532.99999999999``). Truncating that directly would
    encode 65532 and break ``int_to_*(x_to_int(v)) == v``. As a result, inputs
    within 5e-7 below a tenth round up to it: ``0.99999999`` encodes as 10.
    """
    return math.trunc(round(value * 10, 6))


def temperature_to_int(temperature: float) -> int:
    """Scale a temperature to tenths of a degree, truncating toward zero."""
    return _to_tenths(temperature)


def int_to_temperature(value: int) -> float:
    return value / 10.0


def pressure_to_int(pressure: float) -> int:
    """Scale a pressure to tenths, truncating toward zero."""
    return _to_tenths(pressure)


def int_to_pressure(value: int) -> float:
    return value / 10.0


def _check_int(name: str, value, allowed_range: tuple[int, int]) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise TypeError(f"{name} value must be an integer, got {value!r}")
    low, high = allowed_range
    if not low <= value <= high:
        raise RangeError(name, value, allowed_range)
    return int(value)


# ─── COMMAND VARIANTS ────────────────────────────────────────────────

@dataclass(frozen=True)
class DeviceCommand:
    """Base class for outbound commands."""

    COMMAND: ClassVar[Command]
    NAME: ClassVar[str] = "Command"

    def payload(self) -> bytes:
        return b""

    def encode(self) -> bytes:
        """Validate the value and build the outbound frame.

        Raises:
            RangeError: If the value is outside the command's range.
        """
        return build_command(self.COMMAND, self.payload())


@dataclass(frozen=True)
class _ByteCommand(DeviceCommand):
    """A command with a single unsigned byte payload."""

    RANGE: ClassVar[tuple[int, int]] = (0, 255)
    value: int = 0

    def payload(self) -> bytes:
        return bytes([_check_int(self.NAME, self.value, self.RANGE)])


@dataclass(frozen=True)
class _SwitchCommand(DeviceCommand):
    """An on/off command, encoded as 0 or 1."""

    on: bool = False

    def payload(self) -> bytes:
        if isinstance(self.on, bool):
            return bytes([int(self.on)])
        return bytes([_check_int(self.NAME, self.on, (0, 1))])


@dataclass(frozen=True)
class _SetpointCommand(DeviceCommand):
    """A one-decimal setpoint sent as a 16-bit value in tenths.

    The value is checked twice: against the user-facing range first, then
    the scaled integer against the 16-bit wire field.
    """

    value: float = 0.0

    def payload(self) -> bytes:
        if isinstance(self.value, bool) or not isinstance(self.value, numbers.Real):
            raise TypeError(f"{self.NAME} value must be a number, got {self.value!r}")
        low, high = SETPOINT_RANGE
        if not low <= self.value <= high:
            raise RangeError(self.NAME, self.value, SETPOINT_RANGE)
        scaled = _to_tenths(self.value)
        if not 0 <= scaled <= WIRE_MAX:
            raise WireRangeError(self.NAME, scaled, (0, WIRE_MAX))
        return value_to_bytes(scaled)


@dataclass(frozen=True)
class SetSpeed(_ByteCommand):
    """Treadmill speed index."""

    COMMAND: ClassVar[Command] = Command.SPEED
    NAME: ClassVar[str] = "Speed"
    RANGE: ClassVar[tuple[int, int]] = (0, 169)


@dataclass(frozen=True)
class SetIncline(_ByteCommand):
    """Treadmill incline index."""

    COMMAND: ClassVar[Command] = Command.INCLINE
    NAME: ClassVar[str] = "Incline"
    RANGE: ClassVar[tuple[int, int]] = (0, 30)


@dataclass(frozen=True)
class SetPressure(_SetpointCommand):
    COMMAND: ClassVar[Command] = Command.PRESSURE
    NAME: ClassVar[str] = "PressureSetpoint"


@dataclass(frozen=True)
class SetTemperature(_SetpointCommand):
    COMMAND: ClassVar[Command] = Command.TEMPERATURE
    NAME: ClassVar[str] = "TemperatureSetpoint"


@dataclass(frozen=True)
class RequestTemperature(DeviceCommand):
    COMMAND: ClassVar[Command] = Command.REQUEST_TEMPERATURE
    NAME: ClassVar[str] = "RequestTemperature"


@dataclass(frozen=True)
class RequestPressure(DeviceCommand):
    COMMAND: ClassVar[Command] = Command.REQUEST_PRESSURE
    NAME: ClassVar[str] = "RequestPressure"


@dataclass(frozen=True)
class SetOperationMode(_ByteCommand):
    """0 = manual, 1 = automatic (see :class:`~biotriage_serial.models.OperationMode`)."""

    COMMAND: ClassVar[Command] = Command.OPERATION_MODE
    NAME: ClassVar[str] = "OperationMode"
    RANGE: ClassVar[tuple[int, int]] = (0, 1)


@dataclass(frozen=True)
class SetHeaterPower(_ByteCommand):
    """Heater power in percent, used in manual mode."""

    COMMAND: ClassVar[Command] = Command.HEATER_POWER
    NAME: ClassVar[str] = "HeaterPower"
    RANGE: ClassVar[tuple[int, int]] = (0, 100)


@dataclass(frozen=True)
class SetPumpPower(_ByteCommand):
    """Vacuum pump power in percent, used in manual mode."""

    COMMAND: ClassVar[Command] = Command.PUMP_POWER
    NAME: ClassVar[str] = "PumpPower"
    RANGE: ClassVar[tuple[int, int]] = (0, 100)


@dataclass(frozen=True)
class SetLamp(_SwitchCommand):
    COMMAND: ClassVar[Command] = Command.LAMP
    NAME: ClassVar[str] = "Lamp"


@dataclass(frozen=True)
class SetLeds(_SwitchCommand):
    COMMAND: ClassVar[Command] = Command.LEDS
    NAME: ClassVar[str] = "Leds"


@dataclass(frozen=True)
class SetNeon(_SwitchCommand):
    COMMAND: ClassVar[Command] = Command.NEON
    NAME: ClassVar[str] = "Neon"


@dataclass(frozen=True)
class SetRgbColor(DeviceCommand):
    """External and internal LED strip colours.

    Payload order is fixed: external R, G, B then internal R, G, B.
    """

    COMMAND: ClassVar[Command] = Command.RGB_COLOR
    NAME: ClassVar[str] = "RgbColor"

    r_ext: int = 0
    g_ext: int = 0
    b_ext: int = 0
    r_int: int = 0
    g_int: int = 0
    b_int: int = 0

    def payload(self) -> bytes:
        channels = (
            self.r_ext, self.g_ext, self.b_ext,
            self.r_int, self.g_int, self.b_int,
        )
        return bytes(_check_int(self.NAME, c, (0, 255)) for c in channels)


@dataclass(frozen=True)
class ActivateAroma(DeviceCommand):
    """Fire one pulse of the aroma diffuser."""

    COMMAND: ClassVar[Command] = Command.AROMA
    NAME: ClassVar[str] = "Aroma"

    def payload(self) -> bytes:
        return b"\x01"


def encode(command: DeviceCommand) -> bytes:
    """Encode a command variant into an outbound frame.

    Raises:
        RangeError: If the command's value is outside its allowed range.
        TypeError: If the value has the wrong type.
    """
    return command.encode()
