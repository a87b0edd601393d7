"""
Deterministic procedural terrain generation and adaptive Voronoi meshing.
"""

from .core import (
    ClimatePreset,
    Fidelity,
    GenerationOptions,
    MeshQuality,
    MeshResult,
    TerrainLayers,
    build_mesh,
    generate,
    generate_with_erosion,
)
from .workers import Dispatcher, GenerationWorker, LRUCache, cache_key

__version__ = "0.1.0"

__all__ = [
    "ClimatePreset",
    "Fidelity",
    "GenerationOptions",
    "MeshQuality",
    "MeshResult",
    "TerrainLayers",
    "build_mesh",
    "cache_key",
    "generate",
    "generate_with_erosion",
    "Dispatcher",
    "GenerationWorker",
    "LRUCache",
]
