"""Tests for the MCP tool layer."""

from __future__ import annotations

import json
import sys
import time
from unittest.mock import MagicMock, patch

import pytest

from biotriage_serial.config import Settings
from biotriage_serial.device import DeviceController
from biotriage_serial.events import Event, EventKind
from biotriage_serial.models.controls import OperationMode
from biotriage_serial.transport.serial_connection import SerialConnection


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_instance.prompt.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch.dict(sys.modules, {}):
        with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
            # Remove cached server module so it re-imports with our mock
            sys.modules.pop("biotriage_serial.server", None)
            import biotriage_serial.server as server_mod

    return server_mod


@pytest.fixture
def server():
    return _get_server_module()


@pytest.fixture
def connected(server, port_factory):
    """Server module connected to a fake port."""

    def create_device():
        device = DeviceController(
            connection=SerialConnection(serial_factory=port_factory, read_timeout=0.02),
            poll_interval=60.0,
        )
        for kind in EventKind:
            device.subscribe(kind, server._record)
        return device

    with patch.object(server, "_create_device", side_effect=create_device):
        result = server.connect("COM5", 115200)
    assert result == {"connected": True, "port": "COM5", "baudrate": 115200}
    yield server
    server.disconnect()


def test_connect_requires_a_port(server):
    with patch.object(server, "_settings", Settings()):
        result = server.connect()
    assert "error" in result


def test_connect_uses_configured_defaults(server, port_factory):
    device = MagicMock()
    with patch.object(server, "_settings", Settings(serial_port="/dev/ttyUSB3", baudrate=57600)), \
            patch.object(server, "_create_device", return_value=device):
        result = server.connect()
    assert result["port"] == "/dev/ttyUSB3"
    device.open.assert_called_once_with("/dev/ttyUSB3", 57600)


def test_tools_require_connection(server):
    with pytest.raises(RuntimeError, match="connect"):
        server.set_speed(10)
    with pytest.raises(RuntimeError):
        server.activate_aroma()


def test_disconnect_without_connection(server):
    assert server.disconnect() == {"disconnected": True}
    assert server.get_status() == {"connected": False}


def test_connect_polls_and_reports_status(connected, port_factory):
    port = port_factory.last
    assert port.written == [bytes([0x02, 0x08, 0x09, 0x03]), bytes([0x02, 0x08, 0x0A, 0x03])]
    status = connected.get_status()
    assert status["connected"] is True
    assert status["port"] == "COM5"
    assert status["polling"] is True


def test_readings_are_cached(connected, port_factory):
    port_factory.last.feed(bytes([0x02, 0x07, 0x0B, 0x01, 0x45, 0x03]))
    deadline = time.monotonic() + 2.0
    while "temperatureReceived" not in connected.get_readings()["readings"]:
        assert time.monotonic() < deadline
        time.sleep(0.005)
    reading = connected.get_readings()["readings"]["temperatureReceived"]
    assert reading["value"] == 32.5
    assert "at" in reading


def test_set_speed(connected, port_factory):
    assert connected.set_speed(42) == {"sent": True, "speed": 42}
    assert port_factory.last.written[-1] == bytes([0x02, 0x08, 0x01, 42, 0x03])


def test_out_of_range_returns_error(connected, port_factory):
    written = list(port_factory.last.written)
    result = connected.set_speed(170)
    assert "error" in result
    assert port_factory.last.written == written
    assert "serialError" in connected.get_readings()["readings"]


def test_operation_mode_by_name(server):
    device = MagicMock()
    with patch.object(server, "_get_device", return_value=device):
        assert server.set_operation_mode("Automatic") == {"sent": True, "mode": "automatic"}
        assert "error" in server.set_operation_mode("eco")
    device.set_operation_mode.assert_called_once_with(OperationMode.AUTOMATIC)


def test_rgb_preset(server):
    device = MagicMock()
    with patch.object(server, "_get_device", return_value=device):
        result = server.set_rgb_preset("red", "BLUE")
        assert result == {"sent": True, "external": "red", "internal": "blue"}
        assert "error" in server.set_rgb_preset("red", "teal")
    assert device.set_colors.call_count == 1


def test_request_readings(server):
    device = MagicMock()
    device.poll.return_value = True
    with patch.object(server, "_get_device", return_value=device):
        assert server.request_readings() == {"requested": True}


def test_record_error_event(server):
    server._record(Event(EventKind.SERIAL_ERROR, message="Unknown response id 0x42"))
    entry = server.get_readings()["readings"]["serialError"]
    assert entry["message"] == "Unknown response id 0x42"


def test_colors_resource(server):
    colors = json.loads(server.resource_colors())
    assert colors["orange"] == {"r": 255, "g": 165, "b": 0}


def test_status_resource(server):
    status = json.loads(server.resource_status())
    assert status["connected"] is False
    assert status["readings"] == {}


def test_warm_up_prompt(server):
    text = server.warm_up_session(38.0, minutes=15)
    assert "38.0" in text
    assert "set_temperature" in text
