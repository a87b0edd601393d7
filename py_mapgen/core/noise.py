"""
Deterministic hashing and lattice noise.

This module implements:
- Seed folding (FNV-1a) and 32-bit avalanche hashing of lattice points
- Smoothstep-eased bilinear value noise
- Fractal Brownian motion (fBm) built from value noise octaves

All integer mixing is done on unsigned 32-bit values so results are
bit-reproducible across platforms. Every function accepts Python scalars
or numpy arrays and broadcasts like a numpy ufunc; scalar input gives a
plain float back.
"""

from functools import lru_cache
from typing import Union

import numpy as np

ArrayLike = Union[float, np.ndarray]

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
X_MIX = 0x9E3779B9
Y_MIX = 0x85EBCA6B
X_MULTIPLIER = 2246822507
Y_MULTIPLIER = 3266489909
HASH_RESOLUTION = 1_000_000

# Salt offset between successive fBm octaves
OCTAVE_SALT_STEP = 131

_MASK32 = 0xFFFFFFFF


@lru_cache(maxsize=512)
def fold_seed(seed: str, salt: int = 0) -> int:
    """
    Fold a seed string into an unsigned 32-bit value.

    FNV-1a over the seed's characters, starting from the offset basis
    xor-ed with the salt.

    Args:
        seed: Seed string
        salt: Integer salt mixed into the offset basis

    Returns:
        Unsigned 32-bit hash
    """
    h = (FNV_OFFSET_BASIS ^ salt) & _MASK32
    for char in seed:
        h ^= ord(char)
        h = (h * FNV_PRIME) & _MASK32
    return h


def _to_uint32(values: np.ndarray) -> np.ndarray:
    """Wrap signed 64-bit lattice values into unsigned 32-bit words."""
    return (values & _MASK32).astype(np.uint32)


def hash01(seed: str, x, y, salt: int = 0) -> ArrayLike:
    """
    Hash a lattice coordinate into [0, 1).

    Args:
        seed: Seed string
        x, y: Integer lattice coordinates (scalars or arrays)
        salt: Integer salt selecting an independent hash stream

    Returns:
        Float (or array of floats) in [0, 1)
    """
    scalar = np.ndim(x) == 0 and np.ndim(y) == 0
    xs, ys = np.broadcast_arrays(
        np.atleast_1d(np.asarray(x, dtype=np.int64)),
        np.atleast_1d(np.asarray(y, dtype=np.int64)),
    )

    with np.errstate(over="ignore"):
        h = np.full(xs.shape, fold_seed(seed, salt), dtype=np.uint32)
        h ^= _to_uint32(xs + X_MIX)
        h = (h ^ (h >> np.uint32(16))) * np.uint32(X_MULTIPLIER)
        h ^= _to_uint32(ys + Y_MIX)
        h = (h ^ (h >> np.uint32(13))) * np.uint32(Y_MULTIPLIER)

    result = (h % np.uint32(HASH_RESOLUTION)).astype(np.float64) / HASH_RESOLUTION
    if scalar:
        return float(result[0])
    return result


def smoothstep(edge0: float, edge1: float, x: ArrayLike) -> ArrayLike:
    """Hermite smoothstep between two edges, clamped to [0, 1]."""
    span = edge1 - edge0
    if span == 0:
        return np.where(np.asarray(x) < edge0, 0.0, 1.0)
    t = np.clip((np.asarray(x, dtype=np.float64) - edge0) / span, 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def _fade(t: np.ndarray) -> np.ndarray:
    return t * t * (3.0 - 2.0 * t)


def value_noise_2d(
    seed: str,
    x: ArrayLike,
    y: ArrayLike,
    frequency: float = 1.0,
    salt: int = 0,
) -> ArrayLike:
    """
    Bilinear value noise over a hashed integer lattice.

    The fractional lattice offsets are smoothstep-eased before
    interpolation, which removes the grid creases of plain bilinear noise.

    Args:
        seed: Seed string
        x, y: Sample coordinates
        frequency: Lattice cells per coordinate unit
        salt: Hash stream selector

    Returns:
        Noise value(s) in [0, 1)
    """
    scalar = np.ndim(x) == 0 and np.ndim(y) == 0
    fx, fy = np.broadcast_arrays(
        np.atleast_1d(np.asarray(x, dtype=np.float64)) * frequency,
        np.atleast_1d(np.asarray(y, dtype=np.float64)) * frequency,
    )

    x0 = np.floor(fx)
    y0 = np.floor(fy)
    tx = _fade(fx - x0)
    ty = _fade(fy - y0)
    ix = x0.astype(np.int64)
    iy = y0.astype(np.int64)

    n00 = hash01(seed, ix, iy, salt)
    n10 = hash01(seed, ix + 1, iy, salt)
    n01 = hash01(seed, ix, iy + 1, salt)
    n11 = hash01(seed, ix + 1, iy + 1, salt)

    top = n00 + (n10 - n00) * tx
    bottom = n01 + (n11 - n01) * tx
    result = top + (bottom - top) * ty
    if scalar:
        return float(result[0])
    return result


def fbm_2d(
    seed: str,
    x: ArrayLike,
    y: ArrayLike,
    frequency: float = 1.0,
    octaves: int = 4,
    lacunarity: float = 2.0,
    gain: float = 0.5,
    salt: int = 0,
) -> ArrayLike:
    """
    Fractal Brownian motion: a sum of value noise octaves.

    Each octave multiplies the frequency by ``lacunarity`` and the amplitude
    by ``gain``. The sum is divided by the amplitudes actually used, so the
    result stays in [0, 1] for any octave count.

    Args:
        seed: Seed string
        x, y: Sample coordinates
        frequency: Base frequency of the first octave
        octaves: Number of octaves (at least one is always summed)
        lacunarity: Frequency multiplier per octave
        gain: Amplitude multiplier per octave
        salt: Hash stream selector for the first octave

    Returns:
        fBm value(s) in [0, 1]
    """
    octaves = max(1, int(octaves))
    gain = max(0.0, float(gain))

    total = 0.0
    amplitude = 1.0
    amplitude_sum = 0.0
    current_frequency = frequency
    for octave in range(octaves):
        layer = value_noise_2d(
            seed, x, y, current_frequency, salt + octave * OCTAVE_SALT_STEP
        )
        total = total + amplitude * np.asarray(layer)
        amplitude_sum += amplitude
        amplitude *= gain
        current_frequency *= lacunarity

    result = np.clip(total / amplitude_sum, 0.0, 1.0)
    if np.ndim(result) == 0:
        return float(result)
    return result
