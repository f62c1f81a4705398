from __future__ import annotations

from typing import Tuple, Union

import numpy as np

RGB = Tuple[int, int, int]
Channel = Union[float, np.ndarray]


def hex_to_rgb(value: str) -> RGB:
    cleaned = value.strip().lstrip("#")
    if len(cleaned) != 6:
        raise ValueError(f"Expected a #RRGGBB color, got {value!r}")
    try:
        return (int(cleaned[0:2], 16), int(cleaned[2:4], 16), int(cleaned[4:6], 16))
    except ValueError as exc:
        raise ValueError(f"Expected a #RRGGBB color, got {value!r}") from exc


def rgb_to_hex(r: float, g: float, b: float) -> str:
    def to_hex(channel: float) -> str:
        return f"{max(0, min(255, int(round(channel)))):02x}"

    return f"#{to_hex(r)}{to_hex(g)}{to_hex(b)}"


def luminance(r: Channel, g: Channel, b: Channel) -> Channel:
    """ITU-R BT.709 luma on 0-255 channels.

    Works on plain numbers as well as numpy arrays of matching shape.
    """

    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def multiply_blend(a: RGB, b: RGB) -> Tuple[float, float, float]:
    return (a[0] * b[0] / 255.0, a[1] * b[1] / 255.0, a[2] * b[2] / 255.0)


def absorption(rgb: RGB, basis: RGB) -> Tuple[float, float, float]:
    """Per-channel light an ink removes from ``basis``, scaled to 0-1."""

    return (
        (basis[0] - rgb[0]) / 255.0,
        (basis[1] - rgb[1]) / 255.0,
        (basis[2] - rgb[2]) / 255.0,
    )
