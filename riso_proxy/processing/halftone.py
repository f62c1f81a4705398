"""Halftone screens turning a density map into per-pixel ink opacity.

AM screens keep a regular grid and grow each dot with the density sampled at
its centre. FM screens keep the dot size fixed and decide per grid cell
whether a dot is printed at all, using a deterministic cell hash as the
threshold. Both operate on the whole frame at once, one candidate cell offset
at a time.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import numpy as np

_MASK32 = 0xFFFFFFFF
AA_EDGE = 0.5
MIN_AM_DENSITY = 0.001


class HalftoneMode(enum.Enum):
    AM = "am"
    FM = "fm"


@dataclass(frozen=True)
class HalftoneOptions:
    dot_size: float
    angle: float
    density: float = 1.0
    mode: HalftoneMode = HalftoneMode.AM


def cell_hash(x, y, seed: int = 0) -> np.ndarray:
    """Deterministic 32-bit integer hash of grid coordinates mapped to [0, 1)."""

    x = np.asarray(x, dtype=np.int64)
    y = np.asarray(y, dtype=np.int64)
    h = (x * 374761393 + y * 668265263 + seed * 1013904223) & _MASK32
    h ^= h >> 13
    h = (h * 1274126177) & _MASK32
    h ^= h >> 16
    return h / 4294967296.0


class _ScreenFrame:
    """Pixel coordinates of one image expressed in a rotated screen grid."""

    def __init__(self, width: int, height: int, angle: float, cell: float) -> None:
        theta = math.radians(angle)
        self.width = width
        self.height = height
        self.cell = cell
        self.cos = math.cos(theta)
        self.sin = math.sin(theta)
        ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
        self.rx = xs * self.cos + ys * self.sin
        self.ry = -xs * self.sin + ys * self.cos
        self.gx = np.floor(self.rx / cell).astype(np.int64)
        self.gy = np.floor(self.ry / cell).astype(np.int64)

    def candidate(self, dx: int, dy: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Cell indices of the neighbour at ``(dx, dy)`` and its dot centre."""

        cx = self.gx + dx
        cy = self.gy + dy
        dot_rx = (cx + 0.5) * self.cell
        dot_ry = (cy + 0.5) * self.cell
        return cx, cy, dot_rx, dot_ry

    def distance(self, dot_rx: np.ndarray, dot_ry: np.ndarray) -> np.ndarray:
        return np.hypot(self.rx - dot_rx, self.ry - dot_ry)

    def sample(self, density: np.ndarray, dot_rx: np.ndarray, dot_ry: np.ndarray, scale: float) -> np.ndarray:
        # Round half up to the nearest source pixel.
        img_x = np.floor(dot_rx * self.cos - dot_ry * self.sin + 0.5).astype(np.int64)
        img_y = np.floor(dot_rx * self.sin + dot_ry * self.cos + 0.5).astype(np.int64)
        inside = (img_x >= 0) & (img_x < self.width) & (img_y >= 0) & (img_y < self.height)
        flat = np.where(inside, img_y * self.width + img_x, 0)
        values = np.where(inside, density[flat], 0.0)
        return np.minimum(values * scale, 1.0)


def _edge_opacity(dist: np.ndarray, radius, edge: float) -> np.ndarray:
    inner = radius - edge
    ramp = 1.0 - (dist - inner) / (2.0 * edge)
    opacity = np.where(dist < inner, 1.0, ramp)
    return np.where(dist > radius + edge, 0.0, np.clip(opacity, 0.0, 1.0))


def _flat_density(density_map: np.ndarray, width: int, height: int) -> np.ndarray:
    flat = np.asarray(density_map, dtype=np.float64).reshape(-1)
    if flat.size != width * height:
        raise ValueError(f"Density map has {flat.size} values, expected {width * height}")
    return flat


def am_halftone(density_map: np.ndarray, width: int, height: int, options: HalftoneOptions) -> np.ndarray:
    density = _flat_density(density_map, width, height)
    cell = options.dot_size + 2
    frame = _ScreenFrame(width, height, options.angle, cell)
    result = np.zeros((height, width), dtype=np.float64)

    # The largest dot spans one cell, so the 3x3 neighbourhood is enough.
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            _, _, dot_rx, dot_ry = frame.candidate(dx, dy)
            d = frame.sample(density, dot_rx, dot_ry, options.density)
            root = np.sqrt(d)
            radius = root * 0.5 * cell
            opacity = _edge_opacity(frame.distance(dot_rx, dot_ry), radius, AA_EDGE)

            # Dots cannot shrink below a pixel, fade them instead.
            small = radius < 1.0
            fade = 1.0 - (1.0 - radius) * (1.0 - root)
            opacity = np.where(small, opacity * fade, opacity)
            opacity[d < MIN_AM_DENSITY] = 0.0
            np.maximum(result, opacity, out=result)

    return result.reshape(-1).astype(np.float32)


def fm_halftone(density_map: np.ndarray, width: int, height: int, options: HalftoneOptions) -> np.ndarray:
    density = _flat_density(density_map, width, height)
    cell = options.dot_size
    radius = options.dot_size * 0.5
    edge = max(AA_EDGE, 0.5 / options.dot_size)
    sub_pixel_blend = max(0.0, 1.0 - radius)
    frame = _ScreenFrame(width, height, options.angle, cell)
    result = np.zeros((height, width), dtype=np.float64)

    # Sub-pixel dots spill their anti-aliased rim over several cells.
    reach = int(math.ceil((radius + edge) / cell))
    for dy in range(-reach, reach + 1):
        for dx in range(-reach, reach + 1):
            cx, cy, dot_rx, dot_ry = frame.candidate(dx, dy)
            dist = frame.distance(dot_rx, dot_ry)
            d = frame.sample(density, dot_rx, dot_ry, options.density)
            present = d > cell_hash(cx, cy)

            opacity = _edge_opacity(dist, radius, edge)
            if sub_pixel_blend > 0:
                opacity = opacity * (1.0 - sub_pixel_blend * (1.0 - np.sqrt(d)))
            opacity[~present] = 0.0
            np.maximum(result, opacity, out=result)

    return result.reshape(-1).astype(np.float32)


HalftoneStrategy = Callable[[np.ndarray, int, int, HalftoneOptions], np.ndarray]

_STRATEGIES: Dict[HalftoneMode, HalftoneStrategy] = {
    HalftoneMode.AM: am_halftone,
    HalftoneMode.FM: fm_halftone,
}


def apply_halftone(density_map: np.ndarray, width: int, height: int, options: HalftoneOptions) -> np.ndarray:
    if options.dot_size <= 0:
        raise ValueError(f"dot_size must be positive, got {options.dot_size}")
    return _STRATEGIES[options.mode](density_map, width, height, options)
