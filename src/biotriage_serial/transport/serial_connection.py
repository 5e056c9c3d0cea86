"""Serial port session for the controller board.

The session owns the ``serial.Serial`` handle while it is open. Inbound
bytes are pushed to a callback from a background reader thread, in arrival
order. Outbound frames are written with a single ``write`` call under a
lock, so frames from different threads never interleave.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

import serial
import serial.tools.list_ports

from ..errors import NotOpenError, PortError
from ..protocol.framing import bytes_to_hex

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115200
READ_TIMEOUT_S = 0.1
WRITE_TIMEOUT_S = 1.0
JOIN_TIMEOUT_S = 1.0

DataCallback = Callable[[bytes], None]
ErrorCallback = Callable[[Exception], None]


def enumerate_ports() -> list[tuple[str, str]]:
    """List available serial ports as ``(device, description)`` tuples."""
    ports = [(p.device, p.description) for p in serial.tools.list_ports.comports()]
    ports.sort(key=lambda p: p[0])
    return ports


class SessionState(Enum):
    CLOSED = "closed"
    OPEN = "open"


class SerialConnection:
    """Manages one serial port and its reader thread.

    Usage::

        conn = SerialConnection()
        conn.open("/dev/ttyUSB0", 115200, on_data=parser_feed)
        conn.write(frame_bytes)
        conn.close()

    Args:
        serial_factory: Callable returning an open ``serial.Serial``-like
            object. Defaults to ``serial.Serial``.
        read_timeout: Read timeout of the port, which bounds how long
            ``close()`` waits for the reader thread.
        write_timeout: Write timeout of the port. A stalled write fails
            with ``PortError`` instead of holding the write lock.
    """

    def __init__(
        self,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
        read_timeout: float = READ_TIMEOUT_S,
        write_timeout: float = WRITE_TIMEOUT_S,
    ) -> None:
        self._serial_factory = serial_factory
        self._read_timeout = read_timeout
        self._write_timeout = write_timeout
        self._port: Optional[serial.Serial] = None
        self._port_name = ""
        self._baudrate = 0
        self._state = SessionState.CLOSED
        self._reader: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._write_lock = threading.Lock()
        # Held while a data callback runs, so close() can wait it out
        self._rx_lock = threading.RLock()
        self._on_data: Optional[DataCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN

    @property
    def port_name(self) -> str:
        return self._port_name

    @property
    def baudrate(self) -> int:
        return self._baudrate

    def open(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        on_data: Optional[DataCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Open the serial port and start the reader thread.

        An already open session is closed first.

        Args:
            port: Device name (e.g. ``/dev/ttyUSB0`` or ``COM3``).
            baudrate: Line speed.
            on_data: Called from the reader thread with each received chunk.
            on_error: Called from the reader thread if reading fails.

        Raises:
            PortError: If the port cannot be opened.
        """
        if self.is_open:
            logger.info("Closing %s before opening %s", self._port_name, port)
            self.close()

        try:
            handle = self._serial_factory(
                port=port,
                baudrate=baudrate,
                timeout=self._read_timeout,
                write_timeout=self._write_timeout,
            )
        except (serial.SerialException, OSError, ValueError) as e:
            raise PortError(str(e)) from e

        stop = threading.Event()
        with self._rx_lock:
            self._on_data = on_data
            self._on_error = on_error
        with self._write_lock:
            self._port = handle
            self._port_name = port
            self._baudrate = baudrate
            self._stop = stop
            self._state = SessionState.OPEN

        self._reader = threading.Thread(
            target=self._read_loop,
            args=(handle, stop),
            name=f"serial-reader-{port}",
            daemon=True,
        )
        self._reader.start()
        logger.info("Opened %s at %d baud", port, baudrate)

    def close(self) -> None:
        """Detach the callbacks, stop the reader thread and release the port.

        Closing a closed session does nothing. Once this returns, the data
        callback is not running and will not be called again.

        Raises:
            PortError: If the port fails to close. The session is closed anyway.
        """
        if not self.is_open:
            return

        self._stop.set()
        with self._rx_lock:
            self._on_data = None
            self._on_error = None

        with self._write_lock:
            # A data callback may have closed the session while we waited
            if self._state is SessionState.CLOSED or self._port is None:
                return
            handle = self._port
            self._port = None
            self._state = SessionState.CLOSED

        reader = self._reader
        self._reader = None
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=max(JOIN_TIMEOUT_S, self._read_timeout * 10))

        try:
            handle.close()
        except (serial.SerialException, OSError) as e:
            raise PortError(str(e)) from e
        finally:
            logger.info("Closed %s", self._port_name)

    def write(self, data: bytes) -> int:
        """Write a complete frame to the port in one call.

        Returns:
            Number of bytes written, as reported by the port.

        Raises:
            NotOpenError: If the session is closed. Nothing is written.
            PortError: If the write fails. It is not retried.
        """
        with self._write_lock:
            if self._state is not SessionState.OPEN or self._port is None:
                raise NotOpenError()
            logger.debug("TX %s", bytes_to_hex(data))
            try:
                return self._port.write(data)
            except (serial.SerialException, OSError) as e:
                raise PortError(str(e)) from e

    def _read_loop(self, handle: serial.Serial, stop: threading.Event) -> None:
        """Background thread pushing received bytes to the data callback."""
        while not stop.is_set():
            try:
                data = handle.read(handle.in_waiting or 1)
            except (serial.SerialException, OSError) as e:
                if stop.is_set():
                    break
                logger.warning("Read failed on %s: %s", self._port_name, e)
                self._dispatch_error(PortError(str(e)), stop)
                break
            if data:
                self._dispatch_data(bytes(data), stop)

    def _dispatch_data(self, data: bytes, stop: threading.Event) -> None:
        with self._rx_lock:
            if stop.is_set() or self._on_data is None:
                return
            logger.debug("RX %s", bytes_to_hex(data))
            try:
                self._on_data(data)
            except Exception:
                logger.exception("Data callback failed on %s", self._port_name)

    def _dispatch_error(self, error: Exception, stop: threading.Event) -> None:
        with self._rx_lock:
            if stop.is_set() or self._on_error is None:
                return
            self._on_error(error)
