"""Helpers for row-major (cells_y, cells_x) grids."""

from typing import Iterator, Tuple

import numpy as np

# 8-connected neighbourhood as (dx, dy), rows scanned top to bottom
NEIGHBOR_OFFSETS: Tuple[Tuple[int, int], ...] = tuple(
    (dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dx, dy) != (0, 0)
)


def iter_neighbors(x: int, y: int, cells_x: int, cells_y: int) -> Iterator[Tuple[int, int]]:
    """Yield in-bounds 8-connected neighbours of (x, y)."""
    for dx, dy in NEIGHBOR_OFFSETS:
        nx = x + dx
        ny = y + dy
        if 0 <= nx < cells_x and 0 <= ny < cells_y:
            yield nx, ny


def border_distance(cells_x: int, cells_y: int) -> np.ndarray:
    """Distance in cells from each cell to the nearest grid edge."""
    ys, xs = np.indices((cells_y, cells_x))
    return np.minimum.reduce([xs, cells_x - 1 - xs, ys, cells_y - 1 - ys])


def neighbor_values(array: np.ndarray, dx: int, dy: int, fill: float) -> np.ndarray:
    """
    Value of the (dx, dy) neighbour for every cell.

    Cells whose neighbour falls outside the grid get ``fill``.
    """
    rows, cols = array.shape
    padded = np.pad(array, 1, mode="constant", constant_values=fill)
    return padded[1 + dy : 1 + dy + rows, 1 + dx : 1 + dx + cols]


def add_to_neighbors(target: np.ndarray, values: np.ndarray, dx: int, dy: int) -> None:
    """In place: ``target[y + dy, x + dx] += values[y, x]`` for in-bounds targets."""
    rows, cols = values.shape
    src_y = slice(max(0, -dy), rows - max(0, dy))
    dst_y = slice(max(0, dy), rows - max(0, -dy))
    src_x = slice(max(0, -dx), cols - max(0, dx))
    dst_x = slice(max(0, dx), cols - max(0, -dx))
    target[dst_y, dst_x] += values[src_y, src_x]


def sample_bilinear(matrix: np.ndarray, u, v):
    """
    Bilinear lookup at normalized coordinates.

    ``u`` and ``v`` are clamped to [0, 1] and mapped onto the grid corners, so
    (0, 0) is the top-left cell and (1, 1) the bottom-right one. Accepts
    scalars or arrays.
    """
    rows, cols = matrix.shape
    if rows == 0 or cols == 0:
        return np.zeros(np.shape(u)) if np.ndim(u) else 0.0

    x = np.clip(np.asarray(u, dtype=np.float64), 0.0, 1.0) * (cols - 1)
    y = np.clip(np.asarray(v, dtype=np.float64), 0.0, 1.0) * (rows - 1)
    x0 = np.floor(x).astype(np.int64)
    y0 = np.floor(y).astype(np.int64)
    x1 = np.minimum(cols - 1, x0 + 1)
    y1 = np.minimum(rows - 1, y0 + 1)
    tx = x - x0
    ty = y - y0

    v00 = matrix[y0, x0]
    v10 = matrix[y0, x1]
    v01 = matrix[y1, x0]
    v11 = matrix[y1, x1]

    top = v00 + (v10 - v00) * tx
    bottom = v01 + (v11 - v01) * tx
    result = top + (bottom - top) * ty
    if np.ndim(result) == 0:
        return float(result)
    return result


def altitude_above_sea(height: np.ndarray, sea_level: float) -> np.ndarray:
    """Land altitude normalized to [0, 1] between sea level and the top."""
    return np.clip((height - sea_level) / max(0.001, 1.0 - sea_level), 0.0, 1.0)
