"""Data models for operation modes and lighting."""

from .controls import OperationMode, RGBColor, RGB_PRESETS, get_color
