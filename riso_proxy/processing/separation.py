from __future__ import annotations

import enum
import math
from typing import Callable, Dict, List, Sequence

import numpy as np

SUPPRESSION_POWER = 2.0
SIGMOID_GAIN = 6.0
SIGMOID_MID = 0.35
VISIBLE_THRESHOLD = 0.01
SNAP_THRESHOLD = 0.001


class SeparationMode(enum.Enum):
    NATURAL = "natural"
    BOLD = "bold"


def _logistic(x):
    return 1.0 / (1.0 + np.exp(-SIGMOID_GAIN * (x - SIGMOID_MID)))


def keep_natural(maps: Sequence[np.ndarray]) -> List[np.ndarray]:
    return list(maps)


def apply_bold(maps: Sequence[np.ndarray]) -> List[np.ndarray]:
    """Push densities toward a winner-take-most, high contrast separation.

    Weaker inks are suppressed relative to the dominant ink at each pixel,
    then every density is run through a logistic curve rescaled so that 0 and
    1 stay fixed.
    """

    if not maps:
        return []

    stack = np.stack([np.asarray(m, dtype=np.float64) for m in maps])
    max_density = stack.max(axis=0)
    active = max_density >= VISIBLE_THRESHOLD

    ratio = np.divide(stack, max_density, out=np.zeros_like(stack), where=active)
    suppressed = stack * np.power(ratio, SUPPRESSION_POWER)

    low = 1.0 / (1.0 + math.exp(SIGMOID_GAIN * SIGMOID_MID))
    high = 1.0 / (1.0 + math.exp(-SIGMOID_GAIN * (1.0 - SIGMOID_MID)))
    contrasted = np.clip((_logistic(suppressed) - low) / (high - low), 0.0, 1.0)
    contrasted[suppressed < SNAP_THRESHOLD] = 0.0

    result = np.where(active, contrasted, stack)
    return [result[i].astype(np.float32) for i in range(len(maps))]


SeparationStrategy = Callable[[Sequence[np.ndarray]], List[np.ndarray]]

_STRATEGIES: Dict[SeparationMode, SeparationStrategy] = {
    SeparationMode.NATURAL: keep_natural,
    SeparationMode.BOLD: apply_bold,
}


def separate(maps: Sequence[np.ndarray], mode: SeparationMode = SeparationMode.NATURAL) -> List[np.ndarray]:
    return _STRATEGIES[mode](maps)
