"""
Incremental Bowyer-Watson Delaunay triangulation.

Points are inserted one at a time into a triangulation seeded with a large
super-triangle. Every live triangle keeps its circumcircle in parallel numpy
arrays so the "which triangles does this point invalidate" query is a single
vectorised comparison per insertion.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

logger = structlog.get_logger()

COLLINEAR_EPSILON = 1e-9
SUPER_TRIANGLE_MARGIN = 6.0


@dataclass(frozen=True)
class MeshFace:
    """One Delaunay triangle as indices into the point list."""

    a: int
    b: int
    c: int

    @property
    def vertices(self) -> Tuple[int, int, int]:
        return self.a, self.b, self.c

    @property
    def edges(self) -> Tuple[Tuple[int, int], ...]:
        return (self.a, self.b), (self.b, self.c), (self.c, self.a)


@dataclass(frozen=True)
class Circumcircle:
    cx: float
    cy: float
    r2: float  # squared radius


def circumcircle(
    points: np.ndarray, a: int, b: int, c: int, epsilon: float = COLLINEAR_EPSILON
) -> Optional[Circumcircle]:
    """
    Circumcircle of the triangle (a, b, c).

    Returns None when the points are (nearly) collinear, i.e. when twice the
    signed area determinant is below ``epsilon`` in magnitude.
    """
    x1, y1 = points[a]
    x2, y2 = points[b]
    x3, y3 = points[c]

    d = 2.0 * (x1 * (y2 - y3) + x2 * (y3 - y1) + x3 * (y1 - y2))
    if abs(d) < epsilon:
        return None

    s1 = x1 * x1 + y1 * y1
    s2 = x2 * x2 + y2 * y2
    s3 = x3 * x3 + y3 * y3
    cx = (s1 * (y2 - y3) + s2 * (y3 - y1) + s3 * (y1 - y2)) / d
    cy = (s1 * (x3 - x2) + s2 * (x1 - x3) + s3 * (x2 - x1)) / d
    return Circumcircle(float(cx), float(cy), float((x1 - cx) ** 2 + (y1 - cy) ** 2))


class _TriangleStore:
    """Growable arrays of triangles and their circumcircles."""

    def __init__(self, points: np.ndarray, epsilon: float, capacity: int = 64):
        self.points = points
        self.epsilon = epsilon
        self.vertices = np.zeros((capacity, 3), dtype=np.int64)
        self.circles = np.zeros((capacity, 3), dtype=np.float64)  # cx, cy, r2
        self.alive = np.zeros(capacity, dtype=bool)
        self.count = 0
        self.live = 0

    def add(self, a: int, b: int, c: int) -> bool:
        circle = circumcircle(self.points, a, b, c, self.epsilon)
        if circle is None:
            return False
        if self.count == len(self.alive):
            self._grow()
        self.vertices[self.count] = (a, b, c)
        self.circles[self.count] = (circle.cx, circle.cy, circle.r2)
        self.alive[self.count] = True
        self.count += 1
        self.live += 1
        return True

    def containing(self, x: float, y: float) -> np.ndarray:
        """Indices of live triangles whose circumcircle contains (x, y), boundary included."""
        circles = self.circles[: self.count]
        dx = circles[:, 0] - x
        dy = circles[:, 1] - y
        inside = self.alive[: self.count] & (dx * dx + dy * dy <= circles[:, 2])
        return np.nonzero(inside)[0]

    def remove(self, indices: np.ndarray) -> None:
        self.alive[indices] = False
        self.live -= len(indices)
        if self.count > 64 and self.live * 2 < self.count:
            self._compact()

    def _grow(self) -> None:
        capacity = len(self.alive) * 2
        self.vertices = np.resize(self.vertices, (capacity, 3))
        self.circles = np.resize(self.circles, (capacity, 3))
        alive = np.zeros(capacity, dtype=bool)
        alive[: self.count] = self.alive[: self.count]
        self.alive = alive

    def _compact(self) -> None:
        keep = np.nonzero(self.alive[: self.count])[0]
        kept = len(keep)
        self.vertices[:kept] = self.vertices[keep]
        self.circles[:kept] = self.circles[keep]
        self.alive[:] = False
        self.alive[:kept] = True
        self.count = kept

    def live_triangles(self) -> np.ndarray:
        return self.vertices[: self.count][self.alive[: self.count]]


def triangulate(
    points: Sequence[Sequence[float]],
    width: float,
    height: float,
    epsilon: float = COLLINEAR_EPSILON,
) -> List[MeshFace]:
    """
    Delaunay-triangulate points lying in a ``width x height`` viewport.

    Args:
        points: (N, 2) coordinates
        width: Viewport width, sizes the super-triangle
        height: Viewport height, sizes the super-triangle
        epsilon: Collinearity threshold; degenerate triangles are skipped

    Returns:
        Faces in creation order; none touches a super-triangle vertex
    """
    coords = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    count = len(coords)
    if count < 3:
        return []

    margin = max(width, height) * SUPER_TRIANGLE_MARGIN
    super_vertices = np.array(
        [
            [-margin, -margin],
            [width + margin, -margin],
            [width * 0.5, height + margin],
        ]
    )
    everything = np.vstack([coords, super_vertices])

    store = _TriangleStore(everything, epsilon, capacity=max(64, count * 4))
    if not store.add(count, count + 1, count + 2):
        return []

    for index in range(count):
        x, y = everything[index]
        bad = store.containing(x, y)
        if len(bad) == 0:
            continue

        # Undirected edge -> (first seen orientation, usage count)
        edges: Dict[Tuple[int, int], List] = {}
        for a, b, c in store.vertices[bad]:
            for p, q in ((a, b), (b, c), (c, a)):
                key = (p, q) if p < q else (q, p)
                if key in edges:
                    edges[key][1] += 1
                else:
                    edges[key] = [(int(p), int(q)), 1]

        store.remove(bad)
        for (p, q), uses in edges.values():
            if uses == 1:
                store.add(p, q, index)

    faces = [
        MeshFace(int(a), int(b), int(c))
        for a, b, c in store.live_triangles()
        if a < count and b < count and c < count
    ]
    logger.debug("Triangulated points", points=count, faces=len(faces))
    return faces
