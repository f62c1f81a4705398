import numpy as np
import pytest

from riso_proxy.processing.color import absorption, hex_to_rgb, luminance, multiply_blend, rgb_to_hex


@pytest.mark.parametrize(
    "value, expected",
    [
        ("#000000", (0, 0, 0)),
        ("#FF48B0", (255, 72, 176)),
        ("5ec8e5", (94, 200, 229)),
    ],
)
def test_hex_to_rgb(value, expected):
    assert hex_to_rgb(value) == expected


@pytest.mark.parametrize("value", ["#fff", "#12345g", "", "#1234567"])
def test_hex_to_rgb_rejects_malformed_input(value):
    with pytest.raises(ValueError):
        hex_to_rgb(value)


def test_rgb_to_hex_rounds_and_clamps():
    assert rgb_to_hex(255, 72, 176) == "#ff48b0"
    assert rgb_to_hex(-4, 300, 127.6) == "#00ff80"


def test_luminance_of_neutrals_is_the_gray_level():
    assert luminance(255, 255, 255) == pytest.approx(255)
    assert luminance(100, 100, 100) == pytest.approx(100)
    assert luminance(0, 255, 0) == pytest.approx(0.7152 * 255)


def test_luminance_accepts_arrays():
    channel = np.array([0.0, 128.0, 255.0])
    np.testing.assert_allclose(luminance(channel, channel, channel), channel)


def test_multiply_blend():
    assert multiply_blend((255, 255, 255), (10, 20, 30)) == pytest.approx((10, 20, 30))
    assert multiply_blend((0, 128, 255), (255, 255, 0)) == pytest.approx((0, 128, 0))


def test_absorption_against_white():
    assert absorption((0, 255, 51), (255, 255, 255)) == pytest.approx((1.0, 0.0, 0.8))
