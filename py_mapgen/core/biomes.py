"""
Biome classification from altitude, moisture and temperature.

The classifier is a strict decision table. Its ordering and threshold
constants are tuned by eye against rendered maps; keep them exactly as they
are; changing any of them changes every generated map.
"""

from enum import IntEnum
from typing import Dict

import numpy as np


class BiomeType(IntEnum):
    """Biome kinds stored in the ``biome`` layer."""

    OCEAN = 0
    BEACH = 1
    SNOW = 2
    TUNDRA = 3
    TAIGA = 4
    GRASSLAND = 5
    FOREST = 6
    RAINFOREST = 7
    DESERT = 8
    SAVANNA = 9
    ROCK = 10


# Biome names for display and serialization
BIOME_NAMES = {biome: biome.name.lower() for biome in BiomeType}

BEACH_BAND = 0.018
PEAK_ALTITUDE = 0.9
PEAK_SNOW_TEMPERATURE = 0.28
SNOW_TEMPERATURE = 0.16
BOREAL_TEMPERATURE = 0.3
TAIGA_MOISTURE = 0.42
DESERT_MOISTURE = 0.17
GRASSLAND_MOISTURE = 0.34
FOREST_MOISTURE = 0.66
SAVANNA_TEMPERATURE = 0.58
RAINFOREST_TEMPERATURE = 0.45


def classify_biome(
    is_land: bool,
    altitude: float,
    sea_level: float,
    moisture: float,
    temperature: float,
) -> BiomeType:
    """
    Classify a single cell.

    Args:
        is_land: Whether the cell is above sea level
        altitude: Height in [0, 1]
        sea_level: Sea level in [0, 1]
        moisture: Moisture in [0, 1]
        temperature: Temperature in [0, 1]

    Returns:
        BiomeType of the cell
    """
    if not is_land:
        return BiomeType.OCEAN
    if altitude <= sea_level + BEACH_BAND:
        return BiomeType.BEACH
    if altitude > PEAK_ALTITUDE:
        return BiomeType.SNOW if temperature < PEAK_SNOW_TEMPERATURE else BiomeType.ROCK
    if temperature < SNOW_TEMPERATURE:
        return BiomeType.SNOW
    if temperature < BOREAL_TEMPERATURE:
        return BiomeType.TAIGA if moisture > TAIGA_MOISTURE else BiomeType.TUNDRA
    if moisture < DESERT_MOISTURE:
        return BiomeType.DESERT
    if moisture < GRASSLAND_MOISTURE:
        return BiomeType.SAVANNA if temperature > SAVANNA_TEMPERATURE else BiomeType.GRASSLAND
    if moisture < FOREST_MOISTURE:
        return BiomeType.FOREST
    return BiomeType.RAINFOREST if temperature > RAINFOREST_TEMPERATURE else BiomeType.FOREST


def classify_biome_grid(
    is_land: np.ndarray,
    altitude: np.ndarray,
    sea_level: float,
    moisture: np.ndarray,
    temperature: np.ndarray,
) -> np.ndarray:
    """
    Classify whole grids with the same decision table.

    ``numpy.select`` picks the first matching condition, which reproduces the
    if-chain of ``classify_biome`` cell for cell.

    Returns:
        uint8 array of BiomeType values
    """
    peak = altitude > PEAK_ALTITUDE
    conditions = [
        ~is_land,
        altitude <= sea_level + BEACH_BAND,
        peak & (temperature < PEAK_SNOW_TEMPERATURE),
        peak,
        temperature < SNOW_TEMPERATURE,
        (temperature < BOREAL_TEMPERATURE) & (moisture > TAIGA_MOISTURE),
        temperature < BOREAL_TEMPERATURE,
        moisture < DESERT_MOISTURE,
        (moisture < GRASSLAND_MOISTURE) & (temperature > SAVANNA_TEMPERATURE),
        moisture < GRASSLAND_MOISTURE,
        moisture < FOREST_MOISTURE,
        temperature > RAINFOREST_TEMPERATURE,
    ]
    choices = [
        BiomeType.OCEAN,
        BiomeType.BEACH,
        BiomeType.SNOW,
        BiomeType.ROCK,
        BiomeType.SNOW,
        BiomeType.TAIGA,
        BiomeType.TUNDRA,
        BiomeType.DESERT,
        BiomeType.SAVANNA,
        BiomeType.GRASSLAND,
        BiomeType.FOREST,
        BiomeType.RAINFOREST,
    ]
    return np.select(conditions, [int(c) for c in choices], default=int(BiomeType.FOREST)).astype(
        np.uint8
    )


def biome_distribution(biome: np.ndarray) -> Dict[str, int]:
    """Cell count per biome name (biomes with no cells are omitted)."""
    counts = np.bincount(np.asarray(biome, dtype=np.int64).ravel(), minlength=len(BiomeType))
    return {
        BIOME_NAMES[BiomeType(index)]: int(count)
        for index, count in enumerate(counts)
        if count > 0
    }
