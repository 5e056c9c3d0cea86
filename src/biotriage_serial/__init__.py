"""Serial protocol engine for the biotriage heater, pump, treadmill and lighting board."""

from .device import DeviceController
from .errors import (
    BiotriageError,
    DecodeError,
    NotOpenError,
    PortError,
    RangeError,
)
from .events import Event, EventKind, EventRouter, Subscription

__version__ = "0.1.0"
