"""MCP server entry point for the biotriage control board.

Exposes the device controller as tools, resources, and prompts via the
Model Context Protocol using the official Python MCP SDK with stdio
transport.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import Settings
from .device import DeviceController
from .errors import BiotriageError, RangeError
from .events import Event, EventKind
from .models.controls import OperationMode, RGB_PRESETS, get_color
from .transport.serial_connection import SerialConnection, enumerate_ports

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "biotriage-serial",
    instructions="MCP server for the biotriage heater, pump, treadmill and lighting board",
)

_settings = Settings.from_env()
_device: DeviceController | None = None
_readings: dict[str, Any] = {}


def _record(event: Event) -> None:
    """Keep the latest value of each event kind for get_readings."""
    entry: dict[str, Any] = {"at": time.time()}
    if event.kind is EventKind.SERIAL_ERROR:
        entry["message"] = event.message
    else:
        entry["value"] = event.value
    _readings[event.kind.value] = entry


def _create_device() -> DeviceController:
    device = DeviceController(
        connection=SerialConnection(read_timeout=_settings.read_timeout),
        poll_interval=_settings.poll_interval,
    )
    for kind in EventKind:
        device.subscribe(kind, _record)
    return device


def _get_device() -> DeviceController:
    """Get the open device controller, raising if not connected."""
    if _device is None or not _device.is_open:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _device


def _run(action, **result: Any) -> dict[str, Any]:
    """Run a device command, turning range errors into an error result."""
    try:
        action()
    except RangeError as e:
        return {"error": str(e)}
    return {"sent": True, **result}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def list_serial_ports() -> dict[str, Any]:
    """List the serial ports available on this machine."""
    return {
        "ports": [
            {"device": device, "description": description}
            for device, description in enumerate_ports()
        ]
    }


@mcp.tool()
def connect(port: str | None = None, baudrate: int | None = None) -> dict[str, Any]:
    """Open the serial link to the control board.

    Temperature and pressure are requested immediately and then polled
    periodically while connected.

    Args:
        port: Serial device (e.g. /dev/ttyUSB0 or COM3). Defaults to
              BIOTRIAGE_SERIAL_PORT.
        baudrate: Line speed. Defaults to BIOTRIAGE_BAUDRATE (115200).
    """
    global _device
    port = port or _settings.serial_port
    if not port:
        return {"error": "No port given and BIOTRIAGE_SERIAL_PORT is not set"}
    baudrate = baudrate or _settings.baudrate

    if _device is None:
        _device = _create_device()
    _readings.clear()
    _device.open(port, baudrate)
    return {"connected": True, "port": port, "baudrate": baudrate}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial link and stop polling."""
    if _device is not None:
        _device.close()
    return {"disconnected": True}


@mcp.tool()
def get_status() -> dict[str, Any]:
    """Report whether the link is open, on which port, and whether polling runs."""
    if _device is None:
        return {"connected": False}
    conn = _device.connection
    return {
        "connected": _device.is_open,
        "port": conn.port_name,
        "baudrate": conn.baudrate,
        "polling": _device.polling,
        "poll_interval": _settings.poll_interval,
    }


@mcp.tool()
def get_readings() -> dict[str, Any]:
    """Return the latest temperature, pressure, speed and incline received,
    plus the last error, each with its receive time (Unix seconds)."""
    return {"readings": dict(_readings)}


@mcp.tool()
def request_readings() -> dict[str, Any]:
    """Ask the board for current temperature and pressure right away.

    Values arrive asynchronously; call get_readings afterwards.
    """
    device = _get_device()
    return {"requested": device.poll()}


# ─── TREADMILL TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def set_speed(speed: int) -> dict[str, Any]:
    """Set the treadmill speed index.

    Args:
        speed: Speed index 0-169.
    """
    device = _get_device()
    return _run(lambda: device.set_speed(speed), speed=speed)


@mcp.tool()
def set_incline(incline: int) -> dict[str, Any]:
    """Set the treadmill incline index.

    Args:
        incline: Incline index 0-30.
    """
    device = _get_device()
    return _run(lambda: device.set_incline(incline), incline=incline)


# ─── CLIMATE TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def set_temperature(temperature: float) -> dict[str, Any]:
    """Set the temperature setpoint (one decimal place, 0.0-6553.5)."""
    device = _get_device()
    return _run(lambda: device.set_temperature(temperature), temperature=temperature)


@mcp.tool()
def set_pressure(pressure: float) -> dict[str, Any]:
    """Set the pressure setpoint (one decimal place, 0.0-6553.5)."""
    device = _get_device()
    return _run(lambda: device.set_pressure(pressure), pressure=pressure)


@mcp.tool()
def set_operation_mode(mode: str) -> dict[str, Any]:
    """Switch between automatic regulation and manual power control.

    Args:
        mode: "manual" or "automatic".
    """
    try:
        op_mode = OperationMode.from_name(mode)
    except ValueError as e:
        return {"error": str(e)}
    device = _get_device()
    return _run(lambda: device.set_operation_mode(op_mode), mode=op_mode.name.lower())


@mcp.tool()
def set_heater_power(power: int) -> dict[str, Any]:
    """Set heater power in percent (0-100). Takes effect in manual mode."""
    device = _get_device()
    return _run(lambda: device.set_heater_power(power), heater_power=power)


@mcp.tool()
def set_pump_power(power: int) -> dict[str, Any]:
    """Set vacuum pump power in percent (0-100). Takes effect in manual mode."""
    device = _get_device()
    return _run(lambda: device.set_pump_power(power), pump_power=power)


# ─── LIGHTING & AROMA TOOLS ──────────────────────────────────────────

@mcp.tool()
def set_lamp(on: bool) -> dict[str, Any]:
    """Switch the lamp on or off."""
    device = _get_device()
    return _run(lambda: device.set_lamp(on), lamp=on)


@mcp.tool()
def set_leds(on: bool) -> dict[str, Any]:
    """Switch the LED strips on or off."""
    device = _get_device()
    return _run(lambda: device.set_leds(on), leds=on)


@mcp.tool()
def set_neon(on: bool) -> dict[str, Any]:
    """Switch the neon light on or off."""
    device = _get_device()
    return _run(lambda: device.set_neon(on), neon=on)


@mcp.tool()
def set_rgb_color(
    r_ext: int, g_ext: int, b_ext: int,
    r_int: int, g_int: int, b_int: int,
) -> dict[str, Any]:
    """Set the external and internal LED strip colours, each channel 0-255."""
    device = _get_device()
    return _run(
        lambda: device.set_rgb_color(r_ext, g_ext, b_ext, r_int, g_int, b_int),
        external=[r_ext, g_ext, b_ext],
        internal=[r_int, g_int, b_int],
    )


@mcp.tool()
def set_rgb_preset(external: str, internal: str) -> dict[str, Any]:
    """Set both LED strips from named colours.

    Args:
        external: Colour name for the external strip (see biotriage://colors).
        internal: Colour name for the internal strip.
    """
    try:
        ext = get_color(external)
        inner = get_color(internal)
    except ValueError as e:
        return {"error": str(e)}
    device = _get_device()
    return _run(
        lambda: device.set_colors(ext, inner),
        external=external.lower(),
        internal=internal.lower(),
    )


@mcp.tool()
def activate_aroma() -> dict[str, Any]:
    """Fire one pulse of the aroma diffuser."""
    device = _get_device()
    return _run(device.activate_aroma, aroma=True)


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("biotriage://status")
def resource_status() -> str:
    """Connection status and latest readings."""
    return json.dumps({**get_status(), "readings": dict(_readings)})


@mcp.resource("biotriage://colors")
def resource_colors() -> str:
    """Named RGB colour presets."""
    return json.dumps({name: color.to_dict() for name, color in RGB_PRESETS.items()})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def warm_up_session(target_temperature: float, minutes: int = 10) -> str:
    """Guide the AI through a gradual warm-up.

    Args:
        target_temperature: Temperature setpoint to reach.
        minutes: Duration of the treadmill warm-up.
    """
    return f"""Prepare a session that warms up to {target_temperature} °C over {minutes} minutes.
Steps:
- Connect, then check get_status and get_readings
- Switch to automatic mode with set_operation_mode
- Set the temperature setpoint with set_temperature
- Start the treadmill slowly (set_speed with a low index, set_incline 0)
  and raise the speed in small steps
- Turn on lighting (set_lamp, set_rgb_preset) as wanted
- Watch get_readings until the temperature settles near the setpoint

Stop and report if get_readings shows a serialError."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=_settings.log_level)
    try:
        mcp.run(transport="stdio")
    finally:
        if _device is not None:
            try:
                _device.close()
            except BiotriageError as e:
                logger.warning("Error closing device: %s", e)


if __name__ == "__main__":
    main()
