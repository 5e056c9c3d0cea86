"""Tests for operation modes and colour presets."""

import pytest

from biotriage_serial.models.controls import OperationMode, RGBColor, RGB_PRESETS, get_color


def test_operation_mode_values():
    assert OperationMode.MANUAL == 0
    assert OperationMode.AUTOMATIC == 1


def test_operation_mode_from_name():
    assert OperationMode.from_name("manual") is OperationMode.MANUAL
    assert OperationMode.from_name(" Automatic ") is OperationMode.AUTOMATIC
    with pytest.raises(ValueError):
        OperationMode.from_name("turbo")


def test_rgb_color_bytes():
    assert RGBColor(255, 165, 0).to_bytes() == b"\xff\xa5\x00"
    assert RGBColor(1, 2, 3).to_dict() == {"r": 1, "g": 2, "b": 3}


@pytest.mark.parametrize("channels", [(256, 0, 0), (0, -1, 0), (0, 0, 300)])
def test_rgb_color_validation(channels):
    with pytest.raises(ValueError):
        RGBColor(*channels)


def test_presets():
    assert len(RGB_PRESETS) == 10
    assert RGB_PRESETS["purple"] == RGBColor(128, 0, 128)
    assert get_color("RED") == RGBColor(255, 0, 0)
    with pytest.raises(ValueError):
        get_color("teal")
