"""Exception hierarchy for the protocol engine and serial session."""

from __future__ import annotations

from typing import Any


class BiotriageError(Exception):
    """Base class for every error raised by this package."""


class RangeError(BiotriageError, ValueError):
    """A command value lies outside the range the command accepts.

    Raised before anything is written to the port.
    """

    def __init__(self, command: str, value: Any, allowed_range: tuple) -> None:
        self.command = command
        self.value = value
        self.allowed_range = allowed_range
        low, high = allowed_range
        super().__init__(
            f"{command} value {value!r} out of range ({low}-{high})"
        )


class WireRangeError(RangeError):
    """A fixed-point setpoint does not fit the 16-bit wire field."""


class NotOpenError(BiotriageError, ConnectionError):
    """A write was attempted while the serial session is closed."""

    def __init__(self, message: str = "Serial port is not open") -> None:
        super().__init__(message)


class PortError(BiotriageError, IOError):
    """The serial port could not be opened, written or closed.

    The message is the transport's own message, unchanged.
    """


class DecodeError(BiotriageError, ValueError):
    """An inbound frame could not be turned into a response."""

    def __init__(self, message: str, frame=None) -> None:
        self.frame = frame
        super().__init__(message)


class UnknownResponseError(DecodeError):
    """The frame carries a response id this host does not know."""

    def __init__(self, response_id: int, frame=None) -> None:
        self.response_id = response_id
        super().__init__(f"Unknown response id 0x{response_id:02X}", frame)


class TruncatedFrameError(DecodeError):
    """The frame is too short for the payload its response id requires."""
