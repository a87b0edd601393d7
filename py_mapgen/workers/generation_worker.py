"""
Generation worker.

The worker owns the layer and mesh caches and answers requests
synchronously. The dispatcher decides which thread a request runs on;
requests are serialized by the worker's lock, so only one thread touches the
caches or generates at a time.
"""

import threading
from typing import Optional, Tuple, Union

import structlog

from ..config import settings as default_settings
from ..core.mesh import MeshResult, build_mesh
from ..core.options import GenerationOptions
from ..core.terrain_generator import TerrainLayers, generate
from ..core.voronoi_mesh import VoronoiOptions
from .cache import LRUCache, cache_key, mesh_cache_key
from .messages import GenerationRequest, MeshInput, MeshRequest, WorkerResponse

logger = structlog.get_logger()

Request = Union[GenerationRequest, MeshRequest]


class GenerationWorker:
    """Cached terrain and mesh generation."""

    def __init__(
        self,
        layer_cache: Optional[LRUCache] = None,
        mesh_cache: Optional[LRUCache] = None,
        voronoi_options: Optional[VoronoiOptions] = None,
    ):
        """
        Initialize the worker.

        Args:
            layer_cache: Cache for TerrainLayers keyed by ``cache_key``
            mesh_cache: Cache for MeshResult keyed by ``mesh_cache_key``
            voronoi_options: Geometry thresholds for mesh builds
        """
        self.layer_cache = layer_cache if layer_cache is not None else LRUCache()
        self.mesh_cache = mesh_cache if mesh_cache is not None else LRUCache()
        self.voronoi_options = voronoi_options or VoronoiOptions()
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings=None) -> "GenerationWorker":
        """Worker with cache sizes and thresholds taken from settings."""
        settings = settings or default_settings
        return cls(
            layer_cache=LRUCache(settings.layer_cache_capacity),
            mesh_cache=LRUCache(settings.mesh_cache_capacity),
            voronoi_options=settings.voronoi_options(),
        )

    def layers(self, options: GenerationOptions) -> Tuple[TerrainLayers, bool]:
        """Layers for the options and whether they came from the cache."""
        key = cache_key(options)
        with self._lock:
            cached = self.layer_cache.get(key)
            if cached is not None:
                logger.debug("Layer cache hit", cache_key=key)
                return cached, True

            layers = generate(options)
            self.layer_cache.put(key, layers)
            return layers, False

    def mesh(self, mesh_input: MeshInput) -> Tuple[MeshResult, bool]:
        """Mesh for the input and whether it came from the cache."""
        options = mesh_input.options
        key = self.mesh_key(mesh_input)
        with self._lock:
            cached = self.mesh_cache.get(key)
            if cached is not None:
                logger.debug("Mesh cache hit", cache_key=key)
                return cached, True

            layers, _ = self.layers(options)
            mesh = build_mesh(
                layers,
                options.seed,
                mesh_input.viewport_width,
                mesh_input.viewport_height,
                options.sea_level,
                options.mesh_quality,
                options.fidelity,
                self.voronoi_options,
            )
            self.mesh_cache.put(key, mesh)
            return mesh, False

    @staticmethod
    def mesh_key(mesh_input: MeshInput) -> str:
        options = mesh_input.options
        return mesh_cache_key(
            cache_key(options),
            options.mesh_quality,
            mesh_input.viewport_width,
            mesh_input.viewport_height,
            options.fidelity,
        )

    def handle(self, request: Request) -> WorkerResponse:
        """Answer a generation or mesh request."""
        with self._lock:
            if isinstance(request, MeshRequest):
                result, hit = self.mesh(request.mesh_input)
            elif isinstance(request, GenerationRequest):
                result, hit = self.layers(request.options)
            else:
                raise TypeError(f"Unsupported request type: {type(request).__name__}")

        return WorkerResponse(
            request_id=request.request_id,
            cache_key=request.cache_key,
            cache_hit=hit,
            result=result,
        )
