"""
Thermal erosion.

Material slides from a cell to its lower neighbours wherever the height
difference exceeds a talus threshold. Every iteration computes all transfers
from the same snapshot and applies them at once, evaluated over the eight
neighbour directions as whole-grid numpy operations.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from .grid import NEIGHBOR_OFFSETS, add_to_neighbors, neighbor_values

logger = structlog.get_logger()


@dataclass
class ErosionOptions:
    """Thermal erosion parameters."""

    iterations: int = 14
    talus_land: float = 0.023  # Stable slope on land
    talus_sea: float = 0.01  # Stable slope below sea level
    transfer_factor: float = 0.22  # Fraction of the steepest excess moved per pass
    max_transfer_land: float = 0.052
    max_transfer_sea: float = 0.024


def erosion_step(height: np.ndarray, sea_level: float, options: ErosionOptions) -> np.ndarray:
    """
    One simultaneous erosion pass.

    Each cell moves ``clamp((max_diff - talus) * transfer_factor, 0, cap)``
    in total, split across its over-steep lower neighbours in proportion to
    how far each drop exceeds the talus.

    Returns:
        New height grid clamped to [0, 1]
    """
    land = height > sea_level
    talus = np.where(land, options.talus_land, options.talus_sea)
    cap = np.where(land, options.max_transfer_land, options.max_transfer_sea)

    excesses = []
    total_excess = np.zeros_like(height)
    max_diff = np.zeros_like(height)
    for dx, dy in NEIGHBOR_OFFSETS:
        # Off-grid neighbours read as +inf so they never receive material
        diff = height - neighbor_values(height, dx, dy, np.inf)
        steep = diff > talus
        excess = np.where(steep, diff - talus, 0.0)
        total_excess += excess
        max_diff = np.where(steep, np.maximum(max_diff, diff), max_diff)
        excesses.append(excess)

    moved = np.where(
        total_excess > 0,
        np.clip((max_diff - talus) * options.transfer_factor, 0.0, cap),
        0.0,
    )
    share = np.divide(moved, total_excess, out=np.zeros_like(height), where=total_excess > 0)

    delta = -moved
    for (dx, dy), excess in zip(NEIGHBOR_OFFSETS, excesses):
        add_to_neighbors(delta, share * excess, dx, dy)

    return np.clip(height + delta, 0.0, 1.0)


def apply_thermal_erosion(
    height: np.ndarray,
    sea_level: float,
    iterations: Optional[int] = None,
    options: Optional[ErosionOptions] = None,
) -> np.ndarray:
    """
    Run thermal erosion on a copy of the height grid.

    Args:
        height: Height grid in [0, 1]
        sea_level: Sea level selecting land or sea talus per cell
        iterations: Number of passes (defaults to ``options.iterations``)
        options: Erosion parameters

    Returns:
        Eroded height grid
    """
    options = options or ErosionOptions()
    passes = options.iterations if iterations is None else max(0, int(iterations))

    current = np.array(height, dtype=np.float64, copy=True)
    for _ in range(passes):
        current = erosion_step(current, sea_level, options)

    logger.debug(
        "Applied thermal erosion",
        iterations=passes,
        mean_change=float(np.abs(current - height).mean()) if current.size else 0.0,
    )
    return current
