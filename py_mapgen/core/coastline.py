"""
Coastline extraction with marching squares.

The height grid is resampled onto a finer lattice, shifted by the sea level,
and every lattice square whose corners straddle zero contributes one or two
line segments. Segments are returned in viewport coordinates, ready to be
stroked.
"""

from typing import Dict, List, Tuple

import numpy as np

from .grid import sample_bilinear
from .options import MeshQuality

Point = Tuple[float, float]
Segment = Tuple[Point, Point]

COAST_RESOLUTION: Dict[MeshQuality, Tuple[int, int]] = {
    MeshQuality.LOW: (92, 46),
    MeshQuality.MEDIUM: (132, 66),
    MeshQuality.HIGH: (186, 93),
}

# Square edges: 0 top, 1 right, 2 bottom, 3 left.
# Case bits: 1 top-left, 2 top-right, 4 bottom-right, 8 bottom-left above zero.
SEGMENTS_BY_CASE: Dict[int, Tuple[Tuple[int, int], ...]] = {
    0: (),
    1: ((3, 0),),
    2: ((0, 1),),
    3: ((3, 1),),
    4: ((1, 2),),
    5: ((3, 2), (0, 1)),
    6: ((0, 2),),
    7: ((3, 2),),
    8: ((2, 3),),
    9: ((0, 2),),
    10: ((0, 1), (2, 3)),
    11: ((1, 2),),
    12: ((3, 1),),
    13: ((0, 1),),
    14: ((3, 0),),
    15: (),
}


def _zero_crossing(p1: Point, v1: float, p2: Point, v2: float) -> Point:
    denom = v1 - v2
    if abs(denom) < 1e-9:
        return (p1[0] + p2[0]) * 0.5, (p1[1] + p2[1]) * 0.5
    t = min(1.0, max(0.0, v1 / denom))
    return p1[0] + (p2[0] - p1[0]) * t, p1[1] + (p2[1] - p1[1]) * t


def _edge_point(edge: int, i: int, j: int, a: float, b: float, c: float, d: float) -> Point:
    top_left = (i, j)
    top_right = (i + 1, j)
    bottom_right = (i + 1, j + 1)
    bottom_left = (i, j + 1)
    if edge == 0:
        return _zero_crossing(top_left, a, top_right, b)
    if edge == 1:
        return _zero_crossing(top_right, b, bottom_right, c)
    if edge == 2:
        return _zero_crossing(bottom_left, d, bottom_right, c)
    return _zero_crossing(top_left, a, bottom_left, d)


def sea_level_field(height: np.ndarray, sea_level: float, cols: int, rows: int) -> np.ndarray:
    """``height - sea_level`` resampled bilinearly onto a rows x cols lattice."""
    u = np.arange(cols, dtype=np.float64) / max(1, cols - 1)
    v = np.arange(rows, dtype=np.float64) / max(1, rows - 1)
    uu, vv = np.meshgrid(u, v)
    return sample_bilinear(height, uu, vv) - sea_level


def extract_coastline(
    height: np.ndarray,
    sea_level: float,
    width: float,
    height_px: float,
    cols: int,
    rows: int,
) -> List[Segment]:
    """
    Trace the sea-level contour of a height grid.

    Args:
        height: Height grid
        sea_level: Contour level
        width: Viewport width the segments are scaled to
        height_px: Viewport height the segments are scaled to
        cols: Lattice columns
        rows: Lattice rows

    Returns:
        List of ((x1, y1), (x2, y2)) segments in viewport coordinates
    """
    field = sea_level_field(height, sea_level, cols, rows)
    above = field > 0
    # Case index of every lattice square at once
    cases = (
        above[:-1, :-1] * 1
        | above[:-1, 1:] * 2
        | above[1:, 1:] * 4
        | above[1:, :-1] * 8
    )

    sx = width / max(1, cols - 1)
    sy = height_px / max(1, rows - 1)
    segments: List[Segment] = []
    for j, i in zip(*np.nonzero((cases > 0) & (cases < 15))):
        a = field[j, i]
        b = field[j, i + 1]
        c = field[j + 1, i + 1]
        d = field[j + 1, i]
        for e1, e2 in SEGMENTS_BY_CASE[int(cases[j, i])]:
            x1, y1 = _edge_point(e1, i, j, a, b, c, d)
            x2, y2 = _edge_point(e2, i, j, a, b, c, d)
            segments.append(((float(x1 * sx), float(y1 * sy)), (float(x2 * sx), float(y2 * sy))))
    return segments


def coastline_for_quality(
    height: np.ndarray,
    sea_level: float,
    width: float,
    height_px: float,
    quality: MeshQuality,
) -> List[Segment]:
    """``extract_coastline`` at the lattice resolution of a quality tier."""
    cols, rows = COAST_RESOLUTION[quality]
    return extract_coastline(height, sea_level, width, height_px, cols, rows)
