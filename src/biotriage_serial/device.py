"""High-level controller for the heater, pump, treadmill and lighting board.

This is the API a user interface talks to. It ties together the command
codec, the serial session, the frame parser and the event router::

    device = DeviceController()
    device.subscribe(EventKind.TEMPERATURE_RECEIVED, lambda e: print(e.value))
    device.open("/dev/ttyUSB0", 115200)
    device.set_temperature(37.5)
    ...
    device.close()

While the session is open, temperature and pressure are requested every
``poll_interval`` seconds. Readings and errors arrive as :class:`Event`
objects on the subscribed listeners.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from .errors import BiotriageError, DecodeError, PortError
from .events import POLL_INTERVAL_S, Event, EventKind, EventRouter, Poller, Subscription
from .models.controls import OperationMode, RGBColor
from .protocol.commands import (
    ActivateAroma,
    DeviceCommand,
    RequestPressure,
    RequestTemperature,
    SetHeaterPower,
    SetIncline,
    SetLamp,
    SetLeds,
    SetNeon,
    SetOperationMode,
    SetPressure,
    SetPumpPower,
    SetRgbColor,
    SetSpeed,
    SetTemperature,
    encode,
)
from .protocol.framing import Frame, FrameParser
from .protocol.parser import (
    InclineResponse,
    PressureResponse,
    Response,
    SpeedResponse,
    TemperatureResponse,
    parse_response,
)
from .transport.serial_connection import DEFAULT_BAUDRATE, SerialConnection

logger = logging.getLogger(__name__)

RESPONSE_EVENTS: dict[type, EventKind] = {
    TemperatureResponse: EventKind.TEMPERATURE_RECEIVED,
    PressureResponse: EventKind.PRESSURE_RECEIVED,
    SpeedResponse: EventKind.SPEED_RECEIVED,
    InclineResponse: EventKind.INCLINE_RECEIVED,
}


class DeviceController:
    """Owns one serial session and exposes one method per device command.

    Command methods raise :class:`~biotriage_serial.errors.RangeError`,
    :class:`~biotriage_serial.errors.NotOpenError` or
    :class:`~biotriage_serial.errors.PortError`; the same failure is also
    published as a ``SERIAL_ERROR`` event. Problems with inbound frames are
    only published.

    Args:
        connection: Serial session to use. A new one is created if omitted.
        router: Event router to publish on. A new one is created if omitted.
        poll_interval: Seconds between temperature/pressure requests.
        poll_on_open: Request temperature and pressure right after opening.
    """

    def __init__(
        self,
        connection: Optional[SerialConnection] = None,
        router: Optional[EventRouter] = None,
        poll_interval: float = POLL_INTERVAL_S,
        poll_on_open: bool = True,
    ) -> None:
        self._connection = connection if connection is not None else SerialConnection()
        self._router = router if router is not None else EventRouter()
        self._parser = FrameParser()
        self._poller = Poller(self.poll, poll_interval)
        self._poll_on_open = poll_on_open

    @property
    def router(self) -> EventRouter:
        return self._router

    @property
    def connection(self) -> SerialConnection:
        return self._connection

    @property
    def is_open(self) -> bool:
        return self._connection.is_open

    @property
    def polling(self) -> bool:
        return self._poller.running

    def __enter__(self) -> DeviceController:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ─── SESSION ─────────────────────────────────────────────────────

    def open(self, port: str, baudrate: int = DEFAULT_BAUDRATE) -> None:
        """Open the serial port and start polling.

        A session that is already open is closed first. If that close fails
        the error is published and the new port is opened anyway.

        Raises:
            PortError: If the port cannot be opened.
        """
        try:
            self.close()
        except PortError as e:
            logger.warning("Closing previous session failed: %s", e)
        self._parser.reset()
        try:
            self._connection.open(
                port,
                baudrate,
                on_data=self._on_data,
                on_error=self._on_read_error,
            )
        except PortError as e:
            self._router.publish_error(str(e))
            raise
        self._poller.start()
        if self._poll_on_open:
            self.poll()

    def close(self) -> None:
        """Stop polling and close the port. Does nothing if already closed.

        No event is published once this returns.

        Raises:
            PortError: If the port fails to close.
        """
        self._poller.stop()
        try:
            self._connection.close()
        except PortError as e:
            self._router.publish_error(str(e))
            raise

    # ─── EVENTS ──────────────────────────────────────────────────────

    def subscribe(
        self, kind: Union[EventKind, str], listener: Callable[[Event], None]
    ) -> Subscription:
        """Register a listener for one kind of event. Keep the handle to remove it."""
        return self._router.subscribe(kind, listener)

    def remove_listeners(self, kind: Union[EventKind, str, None] = None) -> None:
        self._router.remove_listeners(kind)

    # ─── COMMANDS ────────────────────────────────────────────────────

    def send(self, command: DeviceCommand) -> None:
        """Encode a command and write it to the port."""
        try:
            self._connection.write(encode(command))
        except BiotriageError as e:
            self._router.publish_error(str(e))
            raise

    def write(self, data: bytes) -> None:
        """Write raw bytes to the port, bypassing the command codec."""
        try:
            self._connection.write(bytes(data))
        except BiotriageError as e:
            self._router.publish_error(str(e))
            raise

    def set_speed(self, speed: int) -> None:
        """Set the treadmill speed index (0-169)."""
        self.send(SetSpeed(speed))

    def set_incline(self, incline: int) -> None:
        """Set the treadmill incline index (0-30)."""
        self.send(SetIncline(incline))

    def set_temperature(self, temperature: float) -> None:
        """Set the temperature setpoint, one decimal place."""
        self.send(SetTemperature(temperature))

    def set_pressure(self, pressure: float) -> None:
        """Set the pressure setpoint, one decimal place."""
        self.send(SetPressure(pressure))

    def request_temperature(self) -> None:
        self.send(RequestTemperature())

    def request_pressure(self) -> None:
        self.send(RequestPressure())

    def set_operation_mode(self, mode: Union[OperationMode, int]) -> None:
        self.send(SetOperationMode(mode))

    def set_heater_power(self, power: int) -> None:
        """Heater power in percent (0-100). Only effective in manual mode."""
        self.send(SetHeaterPower(power))

    def set_pump_power(self, power: int) -> None:
        """Vacuum pump power in percent (0-100). Only effective in manual mode."""
        self.send(SetPumpPower(power))

    def set_lamp(self, on: bool) -> None:
        self.send(SetLamp(on))

    def set_leds(self, on: bool) -> None:
        self.send(SetLeds(on))

    def set_neon(self, on: bool) -> None:
        self.send(SetNeon(on))

    def set_rgb_color(
        self,
        r_ext: int, g_ext: int, b_ext: int,
        r_int: int, g_int: int, b_int: int,
    ) -> None:
        """Set the external and internal LED strip colours."""
        self.send(SetRgbColor(r_ext, g_ext, b_ext, r_int, g_int, b_int))

    def set_colors(self, external: RGBColor, internal: RGBColor) -> None:
        self.set_rgb_color(
            external.r, external.g, external.b,
            internal.r, internal.g, internal.b,
        )

    def activate_aroma(self) -> None:
        """Fire one pulse of the aroma diffuser."""
        self.send(ActivateAroma())

    def poll(self) -> bool:
        """Request temperature, then pressure.

        Failures are published as error events rather than raised.

        Returns:
            True if both requests were written.
        """
        if not self.is_open:
            return False
        try:
            self.request_temperature()
            self.request_pressure()
        except BiotriageError as e:
            logger.debug("Poll failed: %s", e)
            return False
        return True

    # ─── INBOUND ─────────────────────────────────────────────────────

    def _on_data(self, data: bytes) -> None:
        for frame in self._parser.feed_bytes(data):
            self._dispatch(frame)

    def _on_read_error(self, error: Exception) -> None:
        self._router.publish_error(str(error))

    def _dispatch(self, frame: Frame) -> None:
        try:
            response: Response = parse_response(frame)
        except DecodeError as e:
            logger.warning("Dropped %r: %s", frame, e)
            self._router.publish_error(str(e))
            return
        logger.debug("Received %r", response)
        self._router.publish(Event(RESPONSE_EVENTS[type(response)], value=response.value))
