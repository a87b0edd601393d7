"""
Core terrain and mesh generation functionality.
"""

from .options import ClimatePreset, Fidelity, GenerationOptions, MeshQuality
from .biomes import BIOME_NAMES, BiomeType, classify_biome, classify_biome_grid
from .terrain_generator import TerrainGenerator, TerrainLayers, generate, generate_with_erosion
from .mesh import MeshResult, build_mesh

__all__ = ['ClimatePreset', 'Fidelity', 'GenerationOptions', 'MeshQuality',
           'BIOME_NAMES', 'BiomeType', 'classify_biome', 'classify_biome_grid',
           'TerrainGenerator', 'TerrainLayers', 'generate', 'generate_with_erosion',
           'MeshResult', 'build_mesh']
