"""Operation modes and LED colours."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import IntEnum


class OperationMode(IntEnum):
    """Controller operation mode.

    In automatic mode the board regulates heater and pump from the
    setpoints; in manual mode the power commands drive them directly.
    """

    MANUAL = 0
    AUTOMATIC = 1

    @classmethod
    def from_name(cls, name: str) -> OperationMode:
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(
                f"Unknown operation mode '{name}'. Valid: "
                f"{[m.name.lower() for m in cls]}"
            ) from None


@dataclass(frozen=True)
class RGBColor:
    """A single LED strip colour, one byte per channel."""

    r: int = 0
    g: int = 0
    b: int = 0

    def __post_init__(self) -> None:
        for channel, value in (("r", self.r), ("g", self.g), ("b", self.b)):
            if not 0 <= value <= 255:
                raise ValueError(f"RGB channel {channel} must be 0-255, got {value}")

    def to_bytes(self) -> bytes:
        return bytes([self.r, self.g, self.b])

    def to_dict(self) -> dict:
        return asdict(self)


RGB_PRESETS: dict[str, RGBColor] = {
    "red": RGBColor(255, 0, 0),
    "green": RGBColor(0, 255, 0),
    "blue": RGBColor(0, 0, 255),
    "white": RGBColor(255, 255, 255),
    "black": RGBColor(0, 0, 0),
    "yellow": RGBColor(255, 255, 0),
    "cyan": RGBColor(0, 255, 255),
    "magenta": RGBColor(255, 0, 255),
    "orange": RGBColor(255, 165, 0),
    "purple": RGBColor(128, 0, 128),
}


def get_color(name: str) -> RGBColor:
    """Look up a named colour preset (case-insensitive)."""
    key = name.strip().lower()
    if key not in RGB_PRESETS:
        raise ValueError(f"Unknown colour '{name}'. Valid: {list(RGB_PRESETS)}")
    return RGB_PRESETS[key]
