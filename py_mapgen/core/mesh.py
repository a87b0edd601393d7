"""Render mesh pipeline: adaptive sampling, triangulation and Voronoi cells."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np
import structlog

from .delaunay import MeshFace, triangulate
from .mesh_sampler import MeshPoint, points_to_array, sample_adaptive_points
from .options import Fidelity, normalize_fidelity, normalize_quality, normalize_sea_level
from .voronoi_mesh import (
    MeshBoundary,
    MeshCell,
    VoronoiOptions,
    build_boundaries,
    build_voronoi_cells,
    face_centers,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class MeshResult:
    """Sites, Delaunay faces, Voronoi cells and (simulation only) boundaries."""

    points: List[MeshPoint]
    faces: List[MeshFace]
    cells: List[MeshCell]
    boundaries: List[MeshBoundary] = field(default_factory=list)

    @property
    def point_array(self) -> np.ndarray:
        return points_to_array(self.points)


def build_mesh(
    layers,
    seed: str,
    viewport_width: float,
    viewport_height: float,
    sea_level: float,
    quality: Any,
    fidelity: Any = Fidelity.PREVIEW,
    voronoi_options: Optional[VoronoiOptions] = None,
) -> MeshResult:
    """
    Build the adaptive render mesh over a viewport.

    Inputs are clamped rather than rejected: the viewport is at least 1x1,
    the sea level is limited to [0, 1] and an unknown quality means medium.

    Args:
        layers: TerrainLayers to sample
        seed: Seed string of the map
        viewport_width: Viewport width in pixels
        viewport_height: Viewport height in pixels
        sea_level: Sea level used for density terms
        quality: Mesh quality tier (enum or string)
        fidelity: Preview or simulation sampling profile
        voronoi_options: Degenerate-geometry thresholds

    Returns:
        MeshResult; boundaries are only built for simulation fidelity
    """
    width = max(1.0, float(viewport_width))
    height = max(1.0, float(viewport_height))
    sea_level = normalize_sea_level(sea_level)
    quality = normalize_quality(quality)
    fidelity = normalize_fidelity(fidelity)
    options = voronoi_options or VoronoiOptions()

    points = sample_adaptive_points(layers, seed, width, height, sea_level, quality, fidelity)
    coords = points_to_array(points)
    faces = triangulate(coords, width, height, options.collinear_epsilon)
    centers = face_centers(coords, faces, width, height, options.collinear_epsilon)
    cells = build_voronoi_cells(coords, faces, centers, width, height, options)

    boundaries: List[MeshBoundary] = []
    if fidelity == Fidelity.SIMULATION:
        boundaries = build_boundaries(faces, centers, width, height)

    logger.info(
        "Built mesh",
        seed=seed,
        quality=quality.value,
        fidelity=fidelity.value,
        points=len(points),
        faces=len(faces),
        cells=len(cells),
        boundaries=len(boundaries),
    )
    return MeshResult(points=points, faces=faces, cells=cells, boundaries=boundaries)
