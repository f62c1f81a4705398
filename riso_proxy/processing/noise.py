from __future__ import annotations

from typing import Tuple

import numpy as np

from .halftone import cell_hash

OCTAVE_WEIGHTS: Tuple[float, float, float] = (0.3, 0.4, 0.3)
OCTAVE_SEED_OFFSETS: Tuple[int, int, int] = (0, 997, 2003)
MIN_VISIBLE_OPACITY = 0.004


def scuff_seed(ink_index: int) -> int:
    return ink_index * 7919 + 31


def value_noise(xs: np.ndarray, ys: np.ndarray, cell_size: float, seed: int) -> np.ndarray:
    """Smoothstep-interpolated value noise in [0, 1) over hashed grid corners."""

    fx_total = xs / cell_size
    fy_total = ys / cell_size
    gx = np.floor(fx_total).astype(np.int64)
    gy = np.floor(fy_total).astype(np.int64)
    fx = fx_total - gx
    fy = fy_total - gy

    n00 = cell_hash(gx, gy, seed)
    n10 = cell_hash(gx + 1, gy, seed)
    n01 = cell_hash(gx, gy + 1, seed)
    n11 = cell_hash(gx + 1, gy + 1, seed)

    sx = fx * fx * (3.0 - 2.0 * fx)
    sy = fy * fy * (3.0 - 2.0 * fy)
    return (n00 * (1.0 - sx) + n10 * sx) * (1.0 - sy) + (n01 * (1.0 - sx) + n11 * sx) * sy


def scuff_cell_sizes(dot_size: float, noise: float) -> Tuple[float, float, float]:
    base = max(dot_size * 4.0, 8.0) * (1.0 + noise * 8.0)
    return base, base * 3.0, base * 9.0


def apply_scuff(
    opacity: np.ndarray,
    width: int,
    height: int,
    *,
    dot_size: float,
    noise: float,
    ink_index: int,
) -> np.ndarray:
    """Fade ink where low-frequency noise dips, simulating patchy ink transfer.

    The effect is one-sided: noise above the mean never adds ink. Returns a
    new map; ``opacity`` is left untouched.
    """

    if noise <= 0:
        return opacity

    seed = scuff_seed(ink_index)
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    combined = np.zeros((height, width), dtype=np.float64)
    for size, weight, offset in zip(scuff_cell_sizes(dot_size, noise), OCTAVE_WEIGHTS, OCTAVE_SEED_OFFSETS):
        combined += weight * value_noise(xs, ys, size, seed + offset)

    deviation = ((0.5 - combined) * 2.0).reshape(-1)
    attenuation = np.where(deviation > 0, np.maximum(0.0, 1.0 - deviation * noise * 2.0), 1.0)

    result = np.asarray(opacity, dtype=np.float32).reshape(-1).copy()
    visible = result >= MIN_VISIBLE_OPACITY
    result[visible] = (result[visible] * attenuation[visible]).astype(np.float32)
    return result


def apply_grain(opacity: np.ndarray, grain: float, rng: np.random.Generator) -> np.ndarray:
    """Add uniform jitter in ``[-grain/2, grain/2]`` and clamp to [0, 1]."""

    if grain <= 0:
        return opacity
    flat = np.asarray(opacity, dtype=np.float64).reshape(-1)
    jitter = rng.uniform(-grain / 2.0, grain / 2.0, size=flat.shape)
    return np.clip(flat + jitter, 0.0, 1.0).astype(np.float32)
