"""
Continental mask built from blended elliptical blobs.

Noise alone tends to scatter land into many small islands. The mask biases
terrain toward a handful of coherent continents: a few large "major" blobs
carry the landmasses and a scatter of "minor" blobs adds peninsulas and
islands. Every blob parameter comes from ``hash01`` so the layout is a pure
function of the seed.
"""

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import structlog

from .noise import ArrayLike, hash01

logger = structlog.get_logger()

COUNT_SALT = 1101
MAJOR_BLOB_SALT = 1201
MINOR_BLOB_SALT = 1301

SUM_WEIGHT = 0.42
MAX_WEIGHT = 0.58


@dataclass(frozen=True)
class Blob:
    """Rotated anisotropic Gaussian in normalized (u, v) map space."""

    center_u: float
    center_v: float
    radius_u: float
    radius_v: float
    rotation: float
    weight: float

    def influence(self, u: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Gaussian falloff of this blob at the given coordinates."""
        du = u - self.center_u
        dv = v - self.center_v
        cos_r = math.cos(self.rotation)
        sin_r = math.sin(self.rotation)
        ru = (du * cos_r + dv * sin_r) / self.radius_u
        rv = (-du * sin_r + dv * cos_r) / self.radius_v
        return self.weight * np.exp(-(ru * ru + rv * rv))


@dataclass(frozen=True)
class BlobProfile:
    """Parameter ranges for one family of blobs."""

    salt: int
    center_min: float
    center_max: float
    radius_min: float
    radius_max: float
    weight_min: float
    weight_max: float


MAJOR_PROFILE = BlobProfile(
    salt=MAJOR_BLOB_SALT,
    center_min=0.22,
    center_max=0.78,
    radius_min=0.1,
    radius_max=0.2,
    weight_min=0.72,
    weight_max=1.0,
)

MINOR_PROFILE = BlobProfile(
    salt=MINOR_BLOB_SALT,
    center_min=0.1,
    center_max=0.9,
    radius_min=0.035,
    radius_max=0.09,
    weight_min=0.35,
    weight_max=0.7,
)


def _lerp(low: float, high: float, t: float) -> float:
    return low + (high - low) * t


def _make_blob(seed: str, index: int, profile: BlobProfile) -> Blob:
    def pick(channel: int) -> float:
        return hash01(seed, index, channel, profile.salt)

    radius = _lerp(profile.radius_min, profile.radius_max, pick(2))
    return Blob(
        center_u=_lerp(profile.center_min, profile.center_max, pick(0)),
        center_v=_lerp(profile.center_min, profile.center_max, pick(1)),
        radius_u=radius * _lerp(0.7, 1.45, pick(3)),
        radius_v=radius * _lerp(0.55, 1.1, pick(4)),
        rotation=pick(5) * math.pi,
        weight=_lerp(profile.weight_min, profile.weight_max, pick(6)),
    )


def blob_counts(seed: str) -> Tuple[int, int]:
    """Number of major (4-7) and minor (8-13) blobs for a seed."""
    major = 4 + int(hash01(seed, 0, 0, COUNT_SALT) * 4)
    minor = 8 + int(hash01(seed, 1, 0, COUNT_SALT) * 6)
    return major, minor


@dataclass(frozen=True)
class ContinentalMask:
    """Seed-derived set of blobs evaluated as a continental mask."""

    major: Tuple[Blob, ...]
    minor: Tuple[Blob, ...]

    @classmethod
    def from_seed(cls, seed: str) -> "ContinentalMask":
        major_count, minor_count = blob_counts(seed)
        major = tuple(_make_blob(seed, i, MAJOR_PROFILE) for i in range(major_count))
        minor = tuple(_make_blob(seed, i, MINOR_PROFILE) for i in range(minor_count))
        logger.debug("Built continental mask", seed=seed, major=major_count, minor=minor_count)
        return cls(major=major, minor=minor)

    @property
    def blobs(self) -> Tuple[Blob, ...]:
        return self.major + self.minor

    def sample(self, u: ArrayLike, v: ArrayLike) -> ArrayLike:
        """
        Evaluate the mask at normalized coordinates.

        ``0.42 * sum(influence) + 0.58 * max(influence)``, clamped to [0, 1].
        The max term keeps each continent's core solid while the sum lets
        neighbouring blobs merge into larger shapes.
        """
        scalar = np.ndim(u) == 0 and np.ndim(v) == 0
        uu, vv = np.broadcast_arrays(
            np.atleast_1d(np.asarray(u, dtype=np.float64)),
            np.atleast_1d(np.asarray(v, dtype=np.float64)),
        )
        total = np.zeros(uu.shape)
        strongest = np.zeros(uu.shape)
        for blob in self.blobs:
            influence = blob.influence(uu, vv)
            total += influence
            np.maximum(strongest, influence, out=strongest)

        result = np.clip(SUM_WEIGHT * total + MAX_WEIGHT * strongest, 0.0, 1.0)
        if scalar:
            return float(result[0])
        return result


def build_blobs(seed: str) -> Tuple[Blob, ...]:
    """All blobs (major first, then minor) for a seed."""
    return ContinentalMask.from_seed(seed).blobs


def continental_mask(blobs: Sequence[Blob], u: ArrayLike, v: ArrayLike) -> ArrayLike:
    """Evaluate the mask of an explicit blob list at normalized coordinates."""
    return ContinentalMask(major=tuple(blobs), minor=()).sample(u, v)
