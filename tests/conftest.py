"""Shared fixtures: an in-memory stand-in for ``serial.Serial``."""

from __future__ import annotations

import queue
import threading

import pytest
import serial


class FakeSerial:
    """Minimal ``serial.Serial`` replacement driven from the test.

    ``feed()`` queues bytes for the reader thread; ``written`` records
    every ``write`` call as one entry.
    """

    def __init__(self, port=None, baudrate=9600, timeout=None, write_timeout=None):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout if timeout is not None else 0.05
        self.write_timeout = write_timeout
        self.is_open = True
        self.written: list[bytes] = []
        self.write_error: Exception | None = None
        self.read_error: Exception | None = None
        self.close_calls = 0
        self._rx: queue.Queue[bytes] = queue.Queue()
        self._lock = threading.Lock()

    @property
    def in_waiting(self) -> int:
        return self._rx.qsize()

    def read(self, size=1) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        try:
            return self._rx.get(timeout=self.timeout)
        except queue.Empty:
            return b""

    def write(self, data) -> int:
        if self.write_error is not None:
            raise self.write_error
        with self._lock:
            self.written.append(bytes(data))
        return len(data)

    def close(self) -> None:
        self.close_calls += 1
        self.is_open = False

    def feed(self, data: bytes) -> None:
        self._rx.put(bytes(data))


class FakePortFactory:
    """Callable used as ``serial_factory``; remembers every port it opened."""

    def __init__(self):
        self.created: list[FakeSerial] = []
        self.open_error: Exception | None = None

    def __call__(self, **kwargs) -> FakeSerial:
        if self.open_error is not None:
            raise self.open_error
        port = FakeSerial(**kwargs)
        self.created.append(port)
        return port

    @property
    def last(self) -> FakeSerial:
        return self.created[-1]


@pytest.fixture
def port_factory() -> FakePortFactory:
    return FakePortFactory()


@pytest.fixture
def serial_error():
    def make(message: str = "device reports readiness to read but returned no data"):
        return serial.SerialException(message)
    return make
