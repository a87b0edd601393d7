"""
Hydrology for the terrain grid.

This module implements:
- River source selection and steepest-descent path tracing (preview terrain)
- Receiver-based flow accumulation (simulation terrain)
- Flow thresholding into a river layer
- Channel incision along high-flow cells

There is no depression filling: a path that reaches a pit simply ends there.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import structlog

from .grid import iter_neighbors
from .noise import hash01

logger = structlog.get_logger()

SOURCE_SALT = 909
SOURCE_ALTITUDE_OFFSET = 0.16
SOURCE_MOISTURE = 0.5
CELLS_PER_SOURCE = 900
MIN_SOURCES = 8
MAX_SOURCES = 40
MAX_PATH_STEPS = 240
MOUTH_OFFSET = 0.008

TERMINATION_SEA = "sea"
TERMINATION_MINIMUM = "minimum"
TERMINATION_REVISIT = "revisit"
TERMINATION_STEP_LIMIT = "step_limit"

# Flow network parameters
DESCENT_EPSILON = 1e-6
FLAT_TOLERANCE = 0.018
FLOW_RETENTION = 0.985
RIVER_MIN_FLOW = 0.48
RIVER_FLOW_FRACTION = 0.028
RIVER_MIN_ELEVATION = 0.004
CARVE_FLOW_OFFSET = 0.018
CARVE_SCALE = 0.078
CARVE_MIN = 0.002
CARVE_MAX = 0.05
RECEIVER_CARVE_SHARE = 0.38
NEIGHBOR_CARVE_SHARE = 0.18
CARVE_FLOOR_OFFSET = 0.01


@dataclass(frozen=True)
class RiverPath:
    """One traced river: its cells from source to mouth and why it stopped."""

    cells: Tuple[Tuple[int, int], ...]  # (x, y) grid coordinates
    termination: str

    @property
    def source(self) -> Tuple[int, int]:
        return self.cells[0]

    @property
    def mouth(self) -> Tuple[int, int]:
        return self.cells[-1]

    def __len__(self) -> int:
        return len(self.cells)


@dataclass(frozen=True)
class FlowNetwork:
    """Receiver of every cell (flat index, -1 for none) and accumulated flow."""

    receiver: np.ndarray
    flow: np.ndarray

    @property
    def max_flow(self) -> float:
        return float(self.flow.max()) if self.flow.size else 0.0


def source_count(cells_x: int, cells_y: int) -> int:
    """Number of river sources to trace for a grid size."""
    return int(np.clip((cells_x * cells_y) // CELLS_PER_SOURCE, MIN_SOURCES, MAX_SOURCES))


def find_river_sources(
    seed: str,
    height: np.ndarray,
    moisture: np.ndarray,
    is_land: np.ndarray,
    sea_level: float,
) -> List[Tuple[int, int]]:
    """
    Candidate river sources ordered by score, best first.

    Candidates are high, wet land cells. The hash jitter breaks ties between
    neighbouring cells of similar altitude so sources do not cluster.
    """
    candidates = is_land & (height > sea_level + SOURCE_ALTITUDE_OFFSET) & (moisture > SOURCE_MOISTURE)
    ys, xs = np.nonzero(candidates)
    if xs.size == 0:
        return []

    jitter = hash01(seed, xs, ys, SOURCE_SALT)
    scores = height[ys, xs] * 0.7 + moisture[ys, xs] * 0.3 + jitter * 0.05
    order = np.argsort(-scores, kind="stable")
    return [(int(xs[i]), int(ys[i])) for i in order]


def trace_river_path(
    height: np.ndarray,
    is_land: np.ndarray,
    sea_level: float,
    start: Tuple[int, int],
    max_steps: int = MAX_PATH_STEPS,
) -> RiverPath:
    """
    Follow strict steepest descent from a source cell.

    The path ends on a revisited cell, on reaching sea (or the mouth band
    just above it), at a cell with no strictly lower neighbour, or after
    ``max_steps`` cells.
    """
    cells_y, cells_x = height.shape
    x, y = start
    visited = set()
    cells: List[Tuple[int, int]] = []
    termination = TERMINATION_STEP_LIMIT

    for _ in range(max_steps):
        if (x, y) in visited:
            termination = TERMINATION_REVISIT
            break
        visited.add((x, y))
        cells.append((x, y))

        if not is_land[y, x] or height[y, x] <= sea_level + MOUTH_OFFSET:
            termination = TERMINATION_SEA
            break

        lowest: Optional[Tuple[int, int]] = None
        lowest_height = height[y, x]
        for nx, ny in iter_neighbors(x, y, cells_x, cells_y):
            if height[ny, nx] < lowest_height:
                lowest_height = height[ny, nx]
                lowest = (nx, ny)

        if lowest is None:
            termination = TERMINATION_MINIMUM
            break
        x, y = lowest

    return RiverPath(cells=tuple(cells), termination=termination)


def trace_rivers(
    seed: str,
    height: np.ndarray,
    moisture: np.ndarray,
    is_land: np.ndarray,
    sea_level: float,
    max_steps: int = MAX_PATH_STEPS,
) -> Tuple[np.ndarray, Tuple[RiverPath, ...]]:
    """
    Trace rivers from the best-scoring sources.

    Args:
        seed: Seed string
        height: Height grid
        moisture: Moisture grid
        is_land: Land mask
        sea_level: Sea level in [0, 1]
        max_steps: Maximum cells per path

    Returns:
        Tuple of (boolean river mask, traced paths)
    """
    cells_y, cells_x = height.shape
    river = np.zeros((cells_y, cells_x), dtype=bool)
    limit = source_count(cells_x, cells_y)
    sources = find_river_sources(seed, height, moisture, is_land, sea_level)[:limit]

    paths = []
    for start in sources:
        path = trace_river_path(height, is_land, sea_level, start, max_steps)
        for x, y in path.cells:
            river[y, x] = True
        paths.append(path)

    logger.debug(
        "Traced rivers",
        sources=len(sources),
        river_cells=int(river.sum()),
        longest=max((len(p) for p in paths), default=0),
    )
    return river, tuple(paths)


def accumulate_flow(
    height: np.ndarray,
    moisture: np.ndarray,
    is_land: np.ndarray,
    flat_tolerance: float = FLAT_TOLERANCE,
    retention: float = FLOW_RETENTION,
) -> FlowNetwork:
    """
    Route flow from every land cell to a single receiver and accumulate it.

    The receiver is the lowest strictly lower neighbour; on flats the lowest
    neighbour within ``flat_tolerance`` above the cell is used instead, which
    lets water cross small plateaus. Sea cells have no receiver.

    Flow starts at a moisture-weighted base value and is pushed downstream in
    descending height order, losing ``1 - retention`` per hop.
    """
    cells_y, cells_x = height.shape
    flat_height = height.ravel()
    receiver = np.full(cells_x * cells_y, -1, dtype=np.int64)

    for y, x in zip(*np.nonzero(is_land)):
        here = height[y, x]
        lower = -1
        lower_height = np.inf
        nearby = -1
        nearby_height = np.inf
        for nx, ny in iter_neighbors(x, y, cells_x, cells_y):
            neighbor_height = height[ny, nx]
            index = ny * cells_x + nx
            if neighbor_height < here - DESCENT_EPSILON and neighbor_height < lower_height:
                lower = index
                lower_height = neighbor_height
            if neighbor_height < nearby_height:
                nearby = index
                nearby_height = neighbor_height
        if lower >= 0:
            receiver[y * cells_x + x] = lower
        elif nearby >= 0 and nearby_height <= here + flat_tolerance:
            receiver[y * cells_x + x] = nearby

    flow = np.where(is_land, 0.18 + moisture * 0.78, 0.06 + moisture * 0.2).ravel()
    for index in np.argsort(-flat_height, kind="stable"):
        target = receiver[index]
        if target >= 0:
            flow[target] += flow[index] * retention

    return FlowNetwork(receiver=receiver.reshape(cells_y, cells_x), flow=flow.reshape(cells_y, cells_x))


def flow_river_mask(
    network: FlowNetwork,
    height: np.ndarray,
    moisture: np.ndarray,
    is_land: np.ndarray,
    sea_level: float,
) -> np.ndarray:
    """Cells whose accumulated flow exceeds the moisture-scaled river threshold."""
    land_flow = network.flow[is_land]
    max_flow = float(land_flow.max()) if land_flow.size else 0.0
    base_threshold = max(RIVER_MIN_FLOW, max_flow * RIVER_FLOW_FRACTION)
    threshold = base_threshold * np.clip(1.16 - moisture * 0.34, 0.8, 1.22)
    return (
        is_land
        & (height > sea_level + RIVER_MIN_ELEVATION)
        & (network.receiver >= 0)
        & (network.flow >= threshold)
    )


def carve_channels(
    height: np.ndarray,
    network: FlowNetwork,
    river: np.ndarray,
    is_land: np.ndarray,
    sea_level: float,
) -> np.ndarray:
    """
    Lower river cells by an incision proportional to their normalized flow.

    Each river cell also lowers its receiver and its land neighbours by a
    share of its own incision. Land never drops more than
    ``CARVE_FLOOR_OFFSET`` below sea level.

    Returns:
        New height grid
    """
    cells_y, cells_x = height.shape
    max_flow = network.max_flow
    if max_flow <= 0:
        return height.copy()

    incision = np.clip(
        (network.flow / max_flow - CARVE_FLOW_OFFSET) * CARVE_SCALE, CARVE_MIN, CARVE_MAX
    )
    delta = np.zeros_like(height, dtype=np.float64)
    for y, x in zip(*np.nonzero(river & is_land)):
        amount = incision[y, x]
        delta[y, x] -= amount
        target = network.receiver[y, x]
        if target >= 0:
            delta[target // cells_x, target % cells_x] -= amount * RECEIVER_CARVE_SHARE
        for nx, ny in iter_neighbors(x, y, cells_x, cells_y):
            if is_land[ny, nx]:
                delta[ny, nx] -= amount * NEIGHBOR_CARVE_SHARE

    floor = np.where(is_land, max(0.0, sea_level - CARVE_FLOOR_OFFSET), 0.0)
    return np.clip(np.maximum(floor, height + delta), 0.0, 1.0)
