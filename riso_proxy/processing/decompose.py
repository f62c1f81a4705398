"""Color separation of an RGBA buffer into per-ink density maps.

Each pixel is treated as the light an ink stack has to remove from a basis
color (white paper) and approximated by a non-negative combination of the ink
absorption vectors::

    target ~= sum(d_i * delta_i),  d_i in [0, 1]

The least-squares problem is solved with a fixed number of coordinate descent
sweeps, so any number of inks works without special casing. All pixels are
solved at once on flat ``(ink, pixel)`` arrays.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from ..config import WHITE
from .buffer import PixelBuffer
from .color import RGB, absorption, luminance

log = logging.getLogger(__name__)

SWEEPS = 12
MIN_ALPHA = 0.01
SELF_DOT_EPSILON = 1e-10
# Inks closer to white than this cannot be separated against a white basis.
LOW_ABSORPTION_THRESHOLD = 0.05


def decompose(buffer: PixelBuffer, ink_rgbs: Sequence[RGB], basis: RGB = WHITE) -> List[np.ndarray]:
    count = len(ink_rgbs)
    if count == 0:
        return []

    deltas = np.array([absorption(rgb, basis) for rgb in ink_rgbs], dtype=np.float64)
    gram = deltas @ deltas.T
    self_dot = np.diag(gram).copy()
    usable = self_dot > SELF_DOT_EPSILON
    divisor = np.where(usable, self_dot, 1.0)

    alpha = buffer.alpha()
    target = (np.asarray(basis, dtype=np.float64) - buffer.rgb()) / 255.0 * alpha[:, None]
    dots = deltas @ target.T

    densities = np.clip(dots / divisor[:, None], 0.0, 1.0)
    densities[~usable] = 0.0

    for _ in range(SWEEPS):
        for i in range(count):
            if not usable[i]:
                continue
            others = gram[i] @ densities - gram[i, i] * densities[i]
            densities[i] = np.clip((dots[i] - others) / divisor[i], 0.0, 1.0)

    densities[:, alpha < MIN_ALPHA] = 0.0
    return [densities[i].astype(np.float32) for i in range(count)]


def absorption_magnitude(rgb: RGB, basis: RGB = WHITE) -> float:
    return float(np.linalg.norm(absorption(rgb, basis)))


def luminance_density(buffer: PixelBuffer) -> np.ndarray:
    """Darker source pixels get denser ink, weighted by source alpha."""

    rgb = buffer.rgb()
    lum = luminance(rgb[:, 0], rgb[:, 1], rgb[:, 2]) / 255.0
    return np.clip((1.0 - lum) * buffer.alpha(), 0.0, 1.0).astype(np.float32)


def separate_inks(buffer: PixelBuffer, ink_rgbs: Sequence[RGB]) -> List[np.ndarray]:
    """Density maps for ``ink_rgbs`` against a white basis.

    Near-white inks are left out of the least-squares solve and receive a
    luminance density instead.
    """

    low_absorption = [absorption_magnitude(rgb) < LOW_ABSORPTION_THRESHOLD for rgb in ink_rgbs]
    solved_indices = [index for index, low in enumerate(low_absorption) if not low]
    solved = decompose(buffer, [ink_rgbs[index] for index in solved_indices], WHITE)

    maps: List[np.ndarray] = [np.zeros(buffer.pixel_count, dtype=np.float32) for _ in ink_rgbs]
    for index, density in zip(solved_indices, solved):
        maps[index] = density

    fallback = [index for index, low in enumerate(low_absorption) if low]
    if fallback:
        log.debug("Luminance density for near-white inks at %s", fallback)
        lum_map = luminance_density(buffer)
        for index in fallback:
            maps[index] = lum_map.copy()
    return maps
