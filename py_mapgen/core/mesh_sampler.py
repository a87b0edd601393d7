"""
Adaptive point sampling for the render mesh.

Dart throwing with variable radii: candidates are drawn from a seeded
stream, accepted with a probability that grows with local feature density
(coasts, relief, biome borders), and placed only when no existing point is
closer than ``min(r_candidate, r_existing) * 0.92``. Dense features get small
radii and so more points.
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

import numpy as np
import structlog

from ..utils.random import SeededRandom
from .grid import NEIGHBOR_OFFSETS, altitude_above_sea, neighbor_values, sample_bilinear
from .options import Fidelity, MeshQuality, clamp

logger = structlog.get_logger()

BORDER_RADIUS = 24.0
REFERENCE_AREA = 720 * 360
ATTEMPTS_PER_POINT = 38
SEPARATION_FACTOR = 0.92
MIN_TARGET_FRACTION = 0.65
MAX_TARGET_FRACTION = 1.65

# (du, dv, weight) taps of the preview land density
LAND_DENSITY_TAPS = (
    (0.0, 0.0, 0.3),
    (-0.025, 0.0, 0.1),
    (0.025, 0.0, 0.1),
    (0.0, -0.025, 0.1),
    (0.0, 0.025, 0.1),
    (-0.04, -0.02, 0.075),
    (0.04, -0.02, 0.075),
    (-0.04, 0.02, 0.075),
    (0.04, 0.02, 0.075),
)

# (du, dv) taps of the simulation slope estimate
SLOPE_TAPS = (
    (-0.012, 0.0),
    (0.012, 0.0),
    (0.0, -0.012),
    (0.0, 0.012),
    (-0.018, -0.011),
    (0.018, -0.011),
    (-0.018, 0.011),
    (0.018, 0.011),
)
SLOPE_GAIN = 9.5

PREVIEW_COAST_BAND = 0.08
# Lower bound of preview detail; sets the coarsest open-sea radius
PREVIEW_DETAIL_FLOOR = 0.5
SIMULATION_COAST_BAND = 0.055


@dataclass(frozen=True)
class MeshPoint:
    """A placed sample; ``radius`` is its local minimum separation."""

    x: float
    y: float
    radius: float


@dataclass(frozen=True)
class SamplerProfile:
    """Point budget and spacing for one quality tier."""

    target_points: int
    min_radius: float
    max_radius: float
    hash_cell_size: float
    border_stride: float
    stream_suffix: str

    @property
    def radius_span(self) -> float:
        return self.max_radius - self.min_radius


PREVIEW_PROFILES: Dict[MeshQuality, SamplerProfile] = {
    MeshQuality.LOW: SamplerProfile(1800, 4.9, 20.0, 7, 56, "mesh"),
    MeshQuality.MEDIUM: SamplerProfile(3200, 3.9, 15.5, 6, 46, "mesh"),
    MeshQuality.HIGH: SamplerProfile(5000, 2.95, 12.5, 5, 36, "mesh"),
}

SIMULATION_PROFILES: Dict[MeshQuality, SamplerProfile] = {
    MeshQuality.LOW: SamplerProfile(3600, 3.25, 12.8, 5, 38, "sim-mesh"),
    MeshQuality.MEDIUM: SamplerProfile(6400, 2.45, 9.8, 4, 30, "sim-mesh"),
    MeshQuality.HIGH: SamplerProfile(10000, 1.78, 7.2, 3, 24, "sim-mesh"),
}


def sampler_profile(quality: MeshQuality, fidelity: Fidelity) -> SamplerProfile:
    profiles = SIMULATION_PROFILES if fidelity == Fidelity.SIMULATION else PREVIEW_PROFILES
    return profiles[quality]


def target_point_count(profile: SamplerProfile, width: float, height: float) -> int:
    """Point budget scaled by viewport area, bounded to [0.65, 1.65] of the tier target."""
    area_factor = (width * height) / REFERENCE_AREA
    return int(
        clamp(
            math.floor(profile.target_points * area_factor),
            math.floor(profile.target_points * MIN_TARGET_FRACTION),
            math.floor(profile.target_points * MAX_TARGET_FRACTION),
        )
    )


class SpatialHashGrid:
    """
    Uniform bucket grid over the viewport for separation queries.

    Points outside the viewport are clamped onto its edge before they are
    stored.
    """

    def __init__(self, width: float, height: float, cell_size: float):
        self.width = width
        self.height = height
        self.cell_size = cell_size
        self.cols = int(math.ceil(width / cell_size)) + 2
        self.rows = int(math.ceil(height / cell_size)) + 2
        self.buckets: Dict[Tuple[int, int], List[int]] = defaultdict(list)
        self.points: List[MeshPoint] = []

    def __len__(self) -> int:
        return len(self.points)

    def _bucket(self, x: float, y: float) -> Tuple[int, int]:
        gx = int(clamp(math.floor(x / self.cell_size), 0, self.cols - 1))
        gy = int(clamp(math.floor(y / self.cell_size), 0, self.rows - 1))
        return gx, gy

    def can_place(self, x: float, y: float, radius: float) -> bool:
        """True when no stored point is within the pairwise separation of (x, y)."""
        gx, gy = self._bucket(x, y)
        # min(radius, other.radius) never exceeds radius
        reach = int(math.ceil(radius * SEPARATION_FACTOR / self.cell_size)) + 1
        for by in range(max(0, gy - reach), min(self.rows, gy + reach + 1)):
            for bx in range(max(0, gx - reach), min(self.cols, gx + reach + 1)):
                bucket = self.buckets.get((bx, by))
                if not bucket:
                    continue
                for index in bucket:
                    other = self.points[index]
                    min_distance = min(radius, other.radius) * SEPARATION_FACTOR
                    dx = x - other.x
                    dy = y - other.y
                    if dx * dx + dy * dy < min_distance * min_distance:
                        return False
        return True

    def try_insert(self, x: float, y: float, radius: float) -> bool:
        """Place a point if it respects the separation rule."""
        x = clamp(x, 0.0, self.width)
        y = clamp(y, 0.0, self.height)
        if not self.can_place(x, y, radius):
            return False
        self.buckets[self._bucket(x, y)].append(len(self.points))
        self.points.append(MeshPoint(x, y, radius))
        return True


def _border_positions(width: float, height: float, stride: float) -> Iterator[Tuple[float, float]]:
    x = 0.0
    while x <= width:
        yield x, 0.0
        yield x, height
        x += stride
    y = 0.0
    while y <= height:
        yield 0.0, y
        yield width, y
        y += stride
    yield 0.0, 0.0
    yield width, 0.0
    yield 0.0, height
    yield width, height


def land_density(height: np.ndarray, sea_level: float, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Weighted share of the nine surrounding taps that lie on land."""
    total = np.zeros(np.shape(u))
    for du, dv, weight in LAND_DENSITY_TAPS:
        total += weight * (sample_bilinear(height, u + du, v + dv) > sea_level)
    return np.clip(total, 0.0, 1.0)


def height_variation(height: np.ndarray, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Mean absolute height difference to eight nearby taps, scaled to [0, 1]."""
    center = sample_bilinear(height, u, v)
    total = np.zeros(np.shape(u))
    for du, dv in SLOPE_TAPS:
        total += np.abs(sample_bilinear(height, u + du, v + dv) - center)
    return np.clip(total / len(SLOPE_TAPS) * SLOPE_GAIN, 0.0, 1.0)


def biome_edge_grid(biome: np.ndarray) -> np.ndarray:
    """Per cell: fraction of in-bounds 8-neighbours with a different biome."""
    codes = biome.astype(np.int16)
    differing = np.zeros(codes.shape)
    in_bounds = np.zeros(codes.shape)
    for dx, dy in NEIGHBOR_OFFSETS:
        neighbor = neighbor_values(codes, dx, dy, -1)
        present = neighbor >= 0
        in_bounds += present
        differing += present & (neighbor != codes)
    return np.divide(differing, in_bounds, out=np.zeros(codes.shape), where=in_bounds > 0)


def biome_edge_density(edges: np.ndarray, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Nearest-cell lookup into a ``biome_edge_grid``."""
    rows, cols = edges.shape
    cx = np.clip(np.floor(np.asarray(u) * (cols - 1) + 0.5), 0, cols - 1).astype(np.int64)
    cy = np.clip(np.floor(np.asarray(v) * (rows - 1) + 0.5), 0, rows - 1).astype(np.int64)
    return edges[cy, cx]


def preview_acceptance(
    profile: SamplerProfile, height: np.ndarray, sea_level: float, u: np.ndarray, v: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Acceptance probability and radius of preview candidates."""
    altitude = sample_bilinear(height, u, v)
    relief = altitude_above_sea(altitude, sea_level)
    coast = 1.0 - np.clip(np.abs(altitude - sea_level) / PREVIEW_COAST_BAND, 0.0, 1.0)
    detail = np.clip(land_density(height, sea_level, u, v) * 0.55 + relief * 0.3 + coast * 0.35, 0.0, 1.0)
    detail = np.maximum(detail, PREVIEW_DETAIL_FLOOR)

    accept = 0.08 + detail * 0.92
    radius = np.clip(profile.max_radius - detail * profile.radius_span, profile.min_radius, profile.max_radius)
    return accept, radius


def simulation_acceptance(
    profile: SamplerProfile,
    height: np.ndarray,
    biome: np.ndarray,
    sea_level: float,
    u: np.ndarray,
    v: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Acceptance probability and radius of simulation candidates.

    Homogeneous areas (no biome border, flat, far from the coast) are both
    less likely to accept a candidate and get a wider radius.
    """
    altitude = sample_bilinear(height, u, v)
    slope = height_variation(height, u, v)
    edge = biome_edge_density(biome_edge_grid(biome), u, v)
    coast = 1.0 - np.clip(np.abs(altitude - sea_level) / SIMULATION_COAST_BAND, 0.0, 1.0)

    density = np.clip(edge * 0.68 + slope * 0.57 + coast * 0.24, 0.0, 1.0)
    homogeneous = np.clip(1.0 - np.maximum.reduce([edge * 1.2, slope * 1.1, coast * 0.85]), 0.0, 1.0)

    accept = np.clip(0.05 + density * 0.9 - homogeneous * 0.24, 0.025, 0.98)
    span = profile.radius_span
    radius = np.clip(
        profile.max_radius - density * span + homogeneous * span * 0.32,
        profile.min_radius,
        profile.max_radius,
    )
    return accept, radius


def sample_adaptive_points(
    layers,
    seed: str,
    width: float,
    height: float,
    sea_level: float,
    quality: MeshQuality,
    fidelity: Fidelity = Fidelity.PREVIEW,
) -> List[MeshPoint]:
    """
    Sample mesh sites over a ``width x height`` viewport.

    Args:
        layers: TerrainLayers to read height (and biome) from
        seed: Seed string; the stream is keyed by ``seed|mesh`` or ``seed|sim-mesh``
        width: Viewport width
        height: Viewport height
        sea_level: Sea level used for the coast and land terms
        quality: Quality tier
        fidelity: Selects the preview or simulation profile

    Returns:
        Placed points, perimeter points first
    """
    profile = sampler_profile(quality, fidelity)
    grid = SpatialHashGrid(width, height, profile.hash_cell_size)

    for x, y in _border_positions(width, height, profile.border_stride):
        grid.try_insert(x, y, BORDER_RADIUS)
    border_count = len(grid)

    target = target_point_count(profile, width, height)
    attempt_limit = target * ATTEMPTS_PER_POINT

    # Three draws per attempt: x, y, acceptance
    draws = SeededRandom(f"{seed}|{profile.stream_suffix}").take(attempt_limit * 3).reshape(-1, 3)
    xs = draws[:, 0] * width
    ys = draws[:, 1] * height
    u = xs / max(1.0, width - 1)
    v = ys / max(1.0, height - 1)

    if fidelity == Fidelity.SIMULATION:
        accept, radius = simulation_acceptance(profile, layers.height, layers.biome, sea_level, u, v)
    else:
        accept, radius = preview_acceptance(profile, layers.height, sea_level, u, v)

    attempts = 0
    for index in range(attempt_limit):
        if len(grid) >= target:
            break
        attempts += 1
        if draws[index, 2] > accept[index]:
            continue
        grid.try_insert(float(xs[index]), float(ys[index]), float(radius[index]))

    logger.debug(
        "Sampled mesh points",
        quality=quality.value,
        fidelity=fidelity.value,
        border=border_count,
        points=len(grid),
        target=target,
        attempts=attempts,
    )
    return grid.points


def points_to_array(points: List[MeshPoint]) -> np.ndarray:
    """(N, 2) float array of point coordinates."""
    if not points:
        return np.zeros((0, 2))
    return np.array([(p.x, p.y) for p in points], dtype=np.float64)
