"""Serial transport."""

from .serial_connection import SerialConnection, SessionState, enumerate_ports
