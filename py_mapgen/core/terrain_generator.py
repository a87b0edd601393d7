"""
Terrain layer generation.

This module implements:
- Domain-warped fBm altitude combined with the continental mask
- Moisture and temperature fields with climate preset shifts
- Ocean rim enforcement, coastline smoothing and mountain clipping
- River tracing (preview) or the erosion/flow pipeline (simulation)

All fields are computed on whole numpy grids of shape (cells_y, cells_x).
The finished layers are sealed into read-only arrays.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
import structlog
from scipy import ndimage

from .biomes import BiomeType, classify_biome_grid
from .continental_mask import ContinentalMask
from .erosion import apply_thermal_erosion
from .grid import altitude_above_sea, border_distance
from .hydrology import (
    RiverPath,
    accumulate_flow,
    carve_channels,
    flow_river_mask,
    trace_rivers,
)
from .noise import fbm_2d, smoothstep
from .options import ClimatePreset, Fidelity, GenerationOptions, clamp

logger = structlog.get_logger()

HYPSOMETRIC_EXPONENT = 1.16
WARP_STRENGTH = 0.22

RIM_FRACTION = 0.07
MIN_RIM_WIDTH = 3
RIM_SEA_MARGIN = 0.02
RIM_DEPTH = 0.08

COAST_BAND = 0.08
COAST_PULL = 0.5
COAST_NUDGE = 0.02
SMOOTHING_PASSES = 2
# Center 2, orthogonal 1, diagonal 0.7
SMOOTHING_KERNEL = np.array(
    [
        [0.7, 1.0, 0.7],
        [1.0, 2.0, 1.0],
        [0.7, 1.0, 0.7],
    ]
)
NEIGHBOR_KERNEL = np.array(
    [
        [1.0, 1.0, 1.0],
        [1.0, 0.0, 1.0],
        [1.0, 1.0, 1.0],
    ]
)

MOUNTAIN_CLIP_OFFSET = 0.22
MOUNTAIN_RETAIN = 0.38

# Simulation adjustments
SIM_MOISTURE_LOWLAND_BONUS = 0.035
SIM_TEMPERATURE_LAPSE = 0.07
SIM_RIVER_MOISTURE = 0.08
SIM_RIVER_COOLING = 0.02

CLIMATE_SHIFTS: Dict[ClimatePreset, Tuple[float, float]] = {
    # (moisture, temperature)
    ClimatePreset.TEMPERATE: (0.0, 0.0),
    ClimatePreset.ARID: (-0.2, 0.08),
    ClimatePreset.COLD: (-0.06, -0.16),
}


@dataclass(frozen=True)
class TerrainLayers:
    """
    Sealed per-cell terrain grids.

    Every array has shape (cells_y, cells_x) and is read-only.
    ``river_paths`` holds the traced paths of the preview pipeline; the
    simulation pipeline derives its river layer from the flow network and
    leaves it empty.
    """

    cells_x: int
    cells_y: int
    sea_level: float
    fidelity: Fidelity
    height: np.ndarray
    moisture: np.ndarray
    temperature: np.ndarray
    is_land: np.ndarray
    biome: np.ndarray
    river: np.ndarray
    river_paths: Tuple[RiverPath, ...] = ()

    @property
    def cell_count(self) -> int:
        return self.cells_x * self.cells_y

    @property
    def river_count(self) -> int:
        return len(self.river_paths)

    @property
    def land_fraction(self) -> float:
        return float(self.is_land.mean()) if self.is_land.size else 0.0

    def biome_at(self, x: int, y: int) -> BiomeType:
        return BiomeType(int(self.biome[y, x]))


def _sealed(array: np.ndarray, dtype) -> np.ndarray:
    sealed = np.array(array, dtype=dtype, copy=True)
    sealed.setflags(write=False)
    return sealed


def rim_width(cells_x: int, cells_y: int) -> int:
    """Width in cells of the border band that is forced to sea."""
    return max(MIN_RIM_WIDTH, int(round(min(cells_x, cells_y) * RIM_FRACTION)))


def apply_ocean_rim(height: np.ndarray, sea_level: float, rim: Optional[int] = None) -> np.ndarray:
    """
    Cap heights inside the border rim below sea level.

    The cap deepens toward the edge:
    ``sea_level - 0.02 - 0.08 * (rim - distance) / rim``, floored at 0.

    Returns:
        New height grid
    """
    cells_y, cells_x = height.shape
    rim = rim_width(cells_x, cells_y) if rim is None else rim
    distance = border_distance(cells_x, cells_y)
    ceiling = np.maximum(0.0, sea_level - RIM_SEA_MARGIN - RIM_DEPTH * (rim - distance) / rim)
    return np.where(distance < rim, np.minimum(height, ceiling), height)


def smooth_coastline(
    height: np.ndarray,
    sea_level: float,
    passes: int = SMOOTHING_PASSES,
    rim: Optional[int] = None,
) -> np.ndarray:
    """
    Soften the coastline.

    Cells near sea level or on the land/sea boundary are pulled halfway to a
    weighted 3x3 average. Lone land cells sink a little and enclosed sea
    cells rise a little, which removes single-cell islands and lakes. Each
    pass reads the previous pass only.

    Returns:
        New height grid
    """
    current = np.array(height, dtype=np.float64, copy=True)
    weights = ndimage.correlate(np.ones_like(current), SMOOTHING_KERNEL, mode="constant", cval=0.0)
    neighbor_slots = ndimage.correlate(np.ones_like(current), NEIGHBOR_KERNEL, mode="constant", cval=0.0)

    for _ in range(passes):
        land = current > sea_level
        average = ndimage.correlate(current, SMOOTHING_KERNEL, mode="constant", cval=0.0) / weights
        land_neighbors = ndimage.correlate(land.astype(np.float64), NEIGHBOR_KERNEL, mode="constant", cval=0.0)
        sea_neighbors = neighbor_slots - land_neighbors

        on_coast = np.where(land, sea_neighbors > 0, land_neighbors > 0)
        selected = on_coast | (np.abs(current - sea_level) < COAST_BAND)

        updated = np.where(selected, current + (average - current) * COAST_PULL, current)
        updated -= COAST_NUDGE * (selected & land & (land_neighbors <= 1))
        updated += COAST_NUDGE * (selected & ~land & (land_neighbors >= 7))
        current = apply_ocean_rim(np.clip(updated, 0.0, 1.0), sea_level, rim)

    return current


def clip_mountains(height: np.ndarray, sea_level: float) -> np.ndarray:
    """Compress altitude above ``sea_level + 0.22`` to 38% of its excess."""
    threshold = sea_level + MOUNTAIN_CLIP_OFFSET
    return np.where(height > threshold, threshold + (height - threshold) * MOUNTAIN_RETAIN, height)


class TerrainGenerator:
    """Generates the terrain layers for one set of options."""

    def __init__(self, options: GenerationOptions):
        """
        Initialize the generator.

        Args:
            options: Normalized generation options
        """
        self.options = options
        self.seed = options.seed
        self.cells_x = options.cells_x
        self.cells_y = options.cells_y
        self.sea_level = options.sea_level
        self.aspect = clamp(options.width / options.height, 0.25, 4.0)
        self.mask = ContinentalMask.from_seed(self.seed)

        self.u, self.v = np.meshgrid(
            np.arange(self.cells_x, dtype=np.float64) / (self.cells_x - 1),
            np.arange(self.cells_y, dtype=np.float64) / (self.cells_y - 1),
        )
        # Noise space keeps features round on non-square maps
        self.px = self.u * self.aspect
        self.py = self.v
        self.latitude = 1.0 - np.abs(self.v * 2.0 - 1.0)

    def generate(self) -> TerrainLayers:
        """Run the full pipeline for the configured fidelity."""
        logger.info(
            "Generating terrain layers",
            seed=self.seed,
            cells_x=self.cells_x,
            cells_y=self.cells_y,
            sea_level=self.sea_level,
            climate=self.options.climate_preset.value,
            fidelity=self.options.fidelity.value,
        )

        raw_height = self.generate_altitude()
        moisture = self.generate_moisture(raw_height)
        temperature = self.generate_temperature(raw_height)

        rim = rim_width(self.cells_x, self.cells_y)
        height = apply_ocean_rim(raw_height, self.sea_level, rim)
        height = smooth_coastline(height, self.sea_level, SMOOTHING_PASSES, rim)
        height = clip_mountains(height, self.sea_level)

        if self.options.fidelity == Fidelity.SIMULATION:
            layers = self._simulate(height, moisture, temperature, rim)
        else:
            is_land = height > self.sea_level
            biome = classify_biome_grid(is_land, height, self.sea_level, moisture, temperature)
            river, paths = trace_rivers(self.seed, height, moisture, is_land, self.sea_level)
            layers = self._seal(height, moisture, temperature, is_land, biome, river, paths)

        logger.info(
            "Terrain layers generated",
            seed=self.seed,
            land_fraction=round(layers.land_fraction, 4),
            river_cells=int(layers.river.sum()),
            rivers=layers.river_count,
        )
        return layers

    def generate_altitude(self) -> np.ndarray:
        """
        Raw altitude before coast post-processing.

        Warped fBm at four scales is blended with the continental mask; a
        radial falloff and an edge falloff push the map borders down, and
        the hypsometric exponent flattens lowlands.
        """
        seed = self.seed
        px, py = self.px, self.py

        warp_x = fbm_2d(seed, px, py, 2.1, 3, 2.0, 0.5, salt=11) - 0.5
        warp_y = fbm_2d(seed, px, py, 2.1, 3, 2.0, 0.5, salt=17) - 0.5
        wx = px + warp_x * WARP_STRENGTH
        wy = py + warp_y * WARP_STRENGTH

        continental = fbm_2d(seed, wx, wy, 1.7, 4, 2.0, 0.5, salt=101)
        regional = fbm_2d(seed, wx, wy, 3.6, 4, 2.1, 0.5, salt=202)
        detail = fbm_2d(seed, wx, wy, 8.0, 3, 2.2, 0.45, salt=303)
        ridge = 1.0 - np.abs(fbm_2d(seed, wx, wy, 5.2, 4, 2.0, 0.55, salt=505) * 2.0 - 1.0)

        mask = self.mask.sample(wx / self.aspect, wy)

        center_distance = np.hypot(self.u - 0.5, self.v - 0.5) / math.sqrt(0.5)
        edge_distance = np.minimum.reduce([self.u, 1.0 - self.u, self.v, 1.0 - self.v])
        edge_falloff = smoothstep(0.0, 0.14, edge_distance)

        raw = (
            mask * 0.56
            + continental * 0.18
            + regional * 0.1
            + detail * 0.05
            + ridge * 0.1 * (0.4 + mask * 0.6)
        )
        raw = (raw - center_distance * 0.16 + 0.14) * (0.35 + edge_falloff * 0.65)
        return np.clip(raw, 0.0, 1.0) ** HYPSOMETRIC_EXPONENT

    def generate_moisture(self, altitude: np.ndarray) -> np.ndarray:
        """Moisture from humidity noise, latitude, altitude and climate."""
        seed = self.seed
        px, py = self.px, self.py

        humidity = fbm_2d(seed, px, py, 2.4, 4, 2.0, 0.5, salt=707)
        humidity_detail = fbm_2d(seed, px, py, 6.0, 3, 2.0, 0.5, salt=717)
        pockets = fbm_2d(seed, px, py, 1.3, 2, 2.0, 0.5, salt=727)

        lowland = 1.0 - np.maximum(0.0, altitude - self.sea_level)
        banding = 0.5 + 0.5 * np.sin((self.v * 3.0 + (humidity_detail - 0.5) * 0.8) * 2.0 * math.pi)
        dry_pocket = smoothstep(0.62, 0.8, pockets) * 0.14
        wet_pocket = (1.0 - smoothstep(0.2, 0.38, pockets)) * 0.12

        moisture_shift, _ = CLIMATE_SHIFTS[self.options.climate_preset]
        moisture = (
            humidity * 0.46
            + humidity_detail * 0.12
            + self.latitude * 0.14
            + lowland * 0.16
            + banding * 0.08
            - dry_pocket
            + wet_pocket
            + 0.02
            + moisture_shift
        )
        return np.clip(moisture, 0.0, 1.0)

    def generate_temperature(self, altitude: np.ndarray) -> np.ndarray:
        """Temperature from latitude, heat noise, altitude lapse and climate."""
        heat = fbm_2d(self.seed, self.px, self.py, 1.9, 3, 2.0, 0.5, salt=809)
        _, temperature_shift = CLIMATE_SHIFTS[self.options.climate_preset]
        temperature = (
            self.latitude * 0.7
            + heat * 0.3
            - np.maximum(0.0, altitude - self.sea_level) * 0.45
            + temperature_shift
        )
        return np.clip(temperature, 0.0, 1.0)

    def _simulate(
        self,
        height: np.ndarray,
        moisture: np.ndarray,
        temperature: np.ndarray,
        rim: int,
    ) -> TerrainLayers:
        """Erosion, flow routing and channel carving on top of the base terrain."""
        sea_level = self.sea_level

        height = apply_thermal_erosion(height, sea_level)
        height = apply_ocean_rim(height, sea_level, rim)

        relief = altitude_above_sea(height, sea_level)
        moisture = np.clip(moisture + (1.0 - relief) * SIM_MOISTURE_LOWLAND_BONUS, 0.0, 1.0)
        temperature = np.clip(temperature - relief * SIM_TEMPERATURE_LAPSE, 0.0, 1.0)

        is_land = height > sea_level
        network = accumulate_flow(height, moisture, is_land)
        channels = flow_river_mask(network, height, moisture, is_land, sea_level)
        height = carve_channels(height, network, channels, is_land, sea_level)

        relief = altitude_above_sea(height, sea_level)
        moisture = np.clip(moisture + channels * SIM_RIVER_MOISTURE, 0.0, 1.0)
        temperature = np.clip(temperature - relief * SIM_RIVER_COOLING, 0.0, 1.0)

        is_land = height > sea_level
        biome = classify_biome_grid(is_land, height, sea_level, moisture, temperature)
        final_network = accumulate_flow(height, moisture, is_land)
        river = flow_river_mask(final_network, height, moisture, is_land, sea_level)

        logger.debug(
            "Simulation pipeline finished",
            carved_cells=int(channels.sum()),
            river_cells=int(river.sum()),
            max_flow=round(final_network.max_flow, 3),
        )
        return self._seal(height, moisture, temperature, is_land, biome, river, ())

    def _seal(self, height, moisture, temperature, is_land, biome, river, paths) -> TerrainLayers:
        return TerrainLayers(
            cells_x=self.cells_x,
            cells_y=self.cells_y,
            sea_level=self.sea_level,
            fidelity=self.options.fidelity,
            height=_sealed(height, np.float64),
            moisture=_sealed(moisture, np.float64),
            temperature=_sealed(temperature, np.float64),
            is_land=_sealed(is_land, bool),
            biome=_sealed(biome, np.uint8),
            river=_sealed(river, bool),
            river_paths=tuple(paths),
        )


def generate(options: GenerationOptions) -> TerrainLayers:
    """Generate terrain layers for the options' fidelity."""
    return TerrainGenerator(options).generate()


def generate_with_erosion(options: GenerationOptions) -> TerrainLayers:
    """Generate simulation-fidelity layers regardless of the options' fidelity."""
    return TerrainGenerator(options.with_fidelity(Fidelity.SIMULATION)).generate()
