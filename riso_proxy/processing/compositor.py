"""Subtractive compositing of halftoned ink layers.

Layers are multiplied into a light-transmission buffer that starts out white.
Because each layer only scales the buffer, the final color does not depend on
layer order. A separate coverage accumulator tracks how much of each pixel is
under ink so the white-basis result can be put on colored paper or turned
back into straight color with alpha.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from ..config import WHITE
from .buffer import PixelBuffer
from .color import RGB

log = logging.getLogger(__name__)

MIN_VISIBLE_OPACITY = 0.004
COVERAGE_EPSILON = 0.004


class CompositionMode(enum.Enum):
    # Inks multiplied straight onto the paper color.
    MULTIPLY = "multiply"
    # Inks multiplied on white, then uncovered areas blended toward paper.
    PAPER = "paper"
    # Inks multiplied on white, then unmultiplied into color plus alpha.
    TRANSPARENT = "transparent"


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def registration_offset(misregistration: float, rng: np.random.Generator) -> Tuple[int, int]:
    """Whole-pixel plate offset drawn uniformly from ``[-m, m]`` on each axis."""

    if misregistration <= 0:
        return 0, 0
    dx, dy = rng.uniform(-misregistration, misregistration, size=2)
    return int(_round_half_up(dx)), int(_round_half_up(dy))


def shift_layer(layer: np.ndarray, width: int, height: int, dx: int, dy: int) -> np.ndarray:
    """Move a layer by ``(dx, dy)``; uncovered pixels get zero opacity."""

    src = np.asarray(layer).reshape(height, width)
    if dx == 0 and dy == 0:
        return src.reshape(-1)
    out = np.zeros_like(src)
    if abs(dx) >= width or abs(dy) >= height:
        return out.reshape(-1)
    out[max(0, dy):height - max(0, -dy), max(0, dx):width - max(0, -dx)] = src[
        max(0, -dy):height - max(0, dy), max(0, -dx):width - max(0, dx)
    ]
    return out.reshape(-1)


def _finish_multiply(buffer: np.ndarray, coverage: np.ndarray, paper: RGB) -> Tuple[np.ndarray, np.ndarray]:
    return buffer, np.full(coverage.shape, 255.0)


def _finish_paper(buffer: np.ndarray, coverage: np.ndarray, paper: RGB) -> Tuple[np.ndarray, np.ndarray]:
    uncovered = 1.0 - coverage
    tint = np.asarray(paper, dtype=np.float64) - 255.0
    blended = buffer + tint[None, :] * uncovered[:, None]
    rgb = np.where((uncovered >= COVERAGE_EPSILON)[:, None], blended, buffer)
    return rgb, np.full(coverage.shape, 255.0)


def _finish_transparent(buffer: np.ndarray, coverage: np.ndarray, paper: RGB) -> Tuple[np.ndarray, np.ndarray]:
    inked = coverage >= COVERAGE_EPSILON
    safe = np.where(inked, coverage, 1.0)
    straight = (buffer - 255.0 * (1.0 - safe)[:, None]) / safe[:, None]
    rgb = np.where(inked[:, None], np.maximum(straight, 0.0), 0.0)
    alpha = np.where(inked, coverage * 255.0, 0.0)
    return rgb, alpha


Finisher = Callable[[np.ndarray, np.ndarray, RGB], Tuple[np.ndarray, np.ndarray]]

_FINISHERS: Dict[CompositionMode, Finisher] = {
    CompositionMode.MULTIPLY: _finish_multiply,
    CompositionMode.PAPER: _finish_paper,
    CompositionMode.TRANSPARENT: _finish_transparent,
}


def composite(
    layers: Sequence[np.ndarray],
    ink_rgbs: Sequence[RGB],
    width: int,
    height: int,
    *,
    misregistration: float = 0.0,
    ink_opacity: float = 0.85,
    paper: RGB = WHITE,
    mode: CompositionMode = CompositionMode.PAPER,
    rng: Optional[np.random.Generator] = None,
) -> PixelBuffer:
    if len(layers) != len(ink_rgbs):
        raise ValueError(f"Got {len(layers)} layers for {len(ink_rgbs)} inks")
    rng = rng if rng is not None else np.random.default_rng()

    pixel_count = width * height
    start = paper if mode is CompositionMode.MULTIPLY else WHITE
    buffer = np.empty((pixel_count, 3), dtype=np.float64)
    buffer[:] = start
    coverage = np.zeros(pixel_count, dtype=np.float64)

    for index, (layer, ink) in enumerate(zip(layers, ink_rgbs)):
        dx, dy = registration_offset(misregistration, rng)
        opacity = np.clip(shift_layer(layer, width, height, dx, dy).astype(np.float64), 0.0, 1.0)
        coverage_step = np.where(opacity >= MIN_VISIBLE_OPACITY, opacity * ink_opacity, 0.0)

        absorbed = 1.0 - np.asarray(ink, dtype=np.float64) / 255.0
        buffer *= 1.0 - coverage_step[:, None] * absorbed[None, :]
        coverage = 1.0 - (1.0 - coverage) * (1.0 - coverage_step)
        log.debug("Layer %d ink=%s offset=(%d, %d)", index, ink, dx, dy)

    rgb, alpha = _FINISHERS[mode](buffer, coverage, paper)
    out = np.empty((pixel_count, 4), dtype=np.uint8)
    out[:, :3] = np.clip(_round_half_up(rgb), 0, 255)
    out[:, 3] = np.clip(_round_half_up(alpha), 0, 255)
    return PixelBuffer(out, width, height)
