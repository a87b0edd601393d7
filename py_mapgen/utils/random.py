"""
Seeded random number streams.

Mesh sampling needs long sequences of uniform numbers that depend only on a
seed string. Python's random and NumPy's global random state are never used
here: every stream is a Mulberry32 generator seeded from the FNV hash of its
seed string, so the same seed produces the same sequence on every platform.
"""

import numpy as np

from ..core.noise import fold_seed

MULBERRY_INCREMENT = 0x6D2B79F5
_MASK32 = 0xFFFFFFFF
_UINT32_RANGE = 4294967296.0


def _mix(states: np.ndarray) -> np.ndarray:
    """Mulberry32 output function applied to an array of uint32 states."""
    with np.errstate(over="ignore"):
        t = (states ^ (states >> np.uint32(15))) * (states | np.uint32(1))
        t = t ^ (t + (t ^ (t >> np.uint32(7))) * (t | np.uint32(61)))
        t = t ^ (t >> np.uint32(14))
    return t.astype(np.float64) / _UINT32_RANGE


class SeededRandom:
    """
    Mulberry32 stream keyed by a seed string.

    The state advances by a fixed increment per draw, so any block of
    upcoming values can be produced at once with ``take`` and matches the
    same number of successive ``random`` calls exactly.
    """

    def __init__(self, seed: str):
        self.seed = seed
        self._state = fold_seed(seed) or 1
        self.call_count = 0

    def take(self, count: int) -> np.ndarray:
        """Return the next ``count`` values in [0, 1) as an array."""
        count = max(0, int(count))
        steps = np.arange(1, count + 1, dtype=np.uint64)
        states = ((steps * MULBERRY_INCREMENT + self._state) & _MASK32).astype(
            np.uint32
        )
        self._state = (self._state + count * MULBERRY_INCREMENT) & _MASK32
        self.call_count += count
        return _mix(states)

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        return float(self.take(1)[0])

    def uniform(self, low: float, high: float) -> float:
        """Random float in [low, high)."""
        return low + (high - low) * self.random()
