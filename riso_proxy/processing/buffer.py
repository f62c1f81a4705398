from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from PIL import Image


@dataclass
class PixelBuffer:
    """Packed 8-bit RGBA pixels, row-major, ``width * height * 4`` bytes."""

    data: np.ndarray
    width: int
    height: int

    def __post_init__(self) -> None:
        self.data = np.ascontiguousarray(self.data, dtype=np.uint8).reshape(-1)
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Invalid buffer size {self.width}x{self.height}")
        expected = self.width * self.height * 4
        if self.data.size != expected:
            raise ValueError(
                f"Buffer holds {self.data.size} bytes, expected {expected} for {self.width}x{self.height}"
            )

    @classmethod
    def blank(cls, width: int, height: int, rgba: Tuple[int, int, int, int] = (0, 0, 0, 0)) -> "PixelBuffer":
        data = np.empty((width * height, 4), dtype=np.uint8)
        data[:] = rgba
        return cls(data, width, height)

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        rgba = img.convert("RGBA")
        width, height = rgba.size
        return cls(np.asarray(rgba, dtype=np.uint8), width, height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def pixels(self) -> np.ndarray:
        """View of the data as ``(pixel_count, 4)``."""

        return self.data.reshape(-1, 4)

    def rgb(self) -> np.ndarray:
        return self.pixels()[:, :3].astype(np.float64)

    def alpha(self) -> np.ndarray:
        return self.pixels()[:, 3].astype(np.float64) / 255.0

    def inverted(self) -> "PixelBuffer":
        out = self.pixels().copy()
        out[:, :3] = 255 - out[:, :3]
        return PixelBuffer(out, self.width, self.height)

    def to_image(self, mode: str = "RGBA") -> Image.Image:
        img = Image.fromarray(self.data.reshape(self.height, self.width, 4))
        return img if mode == "RGBA" else img.convert(mode)
