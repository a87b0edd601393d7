"""
Voronoi cells and boundaries as the dual of a Delaunay triangulation.

Each site's cell is the polygon through the circumcenters of its incident
triangles, ordered by angle around the site. Degenerate geometry is dropped
using the thresholds in ``VoronoiOptions``.
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
import structlog

from .delaunay import MeshFace

logger = structlog.get_logger()

Vertex = Tuple[float, float]


@dataclass(frozen=True)
class VoronoiOptions:
    """Degenerate-geometry thresholds."""

    collinear_epsilon: float = 1e-9  # |2 * det| below this means no circumcenter
    vertex_merge_distance: float = 0.35  # Consecutive vertices closer than this merge
    min_cell_area: float = 2.5  # Smallest |shoelace sum| (twice the area) kept


@dataclass(frozen=True)
class MeshCell:
    """Voronoi polygon of one site, vertices in angular order."""

    site: int
    vertices: Tuple[Vertex, ...]

    @property
    def area(self) -> float:
        return abs(signed_area(self.vertices))


@dataclass(frozen=True)
class MeshBoundary:
    """Voronoi edge separating two Delaunay-adjacent sites."""

    site_a: int
    site_b: int
    p1: Vertex
    p2: Vertex


def signed_area(vertices: Sequence[Vertex]) -> float:
    """Shoelace area; positive for counter-clockwise order in a y-up frame."""
    total = 0.0
    count = len(vertices)
    for i in range(count):
        x1, y1 = vertices[i]
        x2, y2 = vertices[(i + 1) % count]
        total += x1 * y2 - x2 * y1
    return total * 0.5


def face_centers(
    points: np.ndarray,
    faces: Sequence[MeshFace],
    width: float,
    height: float,
    epsilon: float = 1e-9,
) -> np.ndarray:
    """
    Circumcenter of every face clamped to the viewport.

    Faces too flat to have a stable circumcenter use their centroid instead.

    Returns:
        (F, 2) array of centers
    """
    if not faces:
        return np.zeros((0, 2))

    coords = np.asarray(points, dtype=np.float64)
    index = np.array([face.vertices for face in faces], dtype=np.int64)
    p1 = coords[index[:, 0]]
    p2 = coords[index[:, 1]]
    p3 = coords[index[:, 2]]
    x1, y1 = p1[:, 0], p1[:, 1]
    x2, y2 = p2[:, 0], p2[:, 1]
    x3, y3 = p3[:, 0], p3[:, 1]

    d = 2.0 * (x1 * (y2 - y3) + x2 * (y3 - y1) + x3 * (y1 - y2))
    degenerate = np.abs(d) < epsilon
    safe_d = np.where(degenerate, 1.0, d)

    s1 = x1 * x1 + y1 * y1
    s2 = x2 * x2 + y2 * y2
    s3 = x3 * x3 + y3 * y3
    cx = (s1 * (y2 - y3) + s2 * (y3 - y1) + s3 * (y1 - y2)) / safe_d
    cy = (s1 * (x3 - x2) + s2 * (x1 - x3) + s3 * (x2 - x1)) / safe_d

    centroid = (p1 + p2 + p3) / 3.0
    centers = np.column_stack([np.clip(cx, 0.0, width), np.clip(cy, 0.0, height)])
    centers[degenerate] = centroid[degenerate]
    return centers


def _merge_close_vertices(vertices: List[Vertex], merge_distance: float) -> List[Vertex]:
    merged: List[Vertex] = []
    for vertex in vertices:
        if merged and math.dist(merged[-1], vertex) < merge_distance:
            continue
        merged.append(vertex)
    # The polygon is closed, so the last vertex also neighbours the first
    while len(merged) > 1 and math.dist(merged[-1], merged[0]) < merge_distance:
        merged.pop()
    return merged


def build_voronoi_cells(
    points: np.ndarray,
    faces: Sequence[MeshFace],
    centers: np.ndarray,
    width: float,
    height: float,
    options: VoronoiOptions = VoronoiOptions(),
) -> List[MeshCell]:
    """
    Build one polygon per site from the centers of its incident faces.

    Sites touching fewer than three faces, and polygons that end up with
    fewer than three vertices or a shoelace sum (twice the area) below
    ``min_cell_area``, are skipped.
    """
    coords = np.asarray(points, dtype=np.float64)
    incident: Dict[int, List[int]] = defaultdict(list)
    for face_id, face in enumerate(faces):
        for site in face.vertices:
            incident[site].append(face_id)

    cells = []
    for site in range(len(coords)):
        refs = incident.get(site)
        if not refs or len(refs) < 3:
            continue

        ox, oy = coords[site]
        around = centers[refs]
        angles = np.arctan2(around[:, 1] - oy, around[:, 0] - ox)
        ordered = around[np.argsort(angles, kind="stable")]

        vertices = _merge_close_vertices(
            [
                (float(np.clip(x, 0.0, width)), float(np.clip(y, 0.0, height)))
                for x, y in ordered
            ],
            options.vertex_merge_distance,
        )
        if len(vertices) < 3:
            continue
        if abs(2.0 * signed_area(vertices)) < options.min_cell_area:
            continue
        cells.append(MeshCell(site=site, vertices=tuple(vertices)))

    logger.debug("Built Voronoi cells", sites=len(coords), cells=len(cells))
    return cells


def build_boundaries(
    faces: Sequence[MeshFace],
    centers: np.ndarray,
    width: float,
    height: float,
) -> List[MeshBoundary]:
    """One boundary per Delaunay edge shared by exactly two faces."""
    edge_faces: Dict[Tuple[int, int], List[int]] = {}
    for face_id, face in enumerate(faces):
        for a, b in face.edges:
            key = (a, b) if a < b else (b, a)
            edge_faces.setdefault(key, []).append(face_id)

    boundaries = []
    for (site_a, site_b), face_ids in edge_faces.items():
        if len(face_ids) != 2:
            continue
        c1 = centers[face_ids[0]]
        c2 = centers[face_ids[1]]
        boundaries.append(
            MeshBoundary(
                site_a=site_a,
                site_b=site_b,
                p1=(float(np.clip(c1[0], 0.0, width)), float(np.clip(c1[1], 0.0, height))),
                p2=(float(np.clip(c2[0], 0.0, width)), float(np.clip(c2[1], 0.0, height))),
            )
        )
    return boundaries
