"""
Caching, worker and dispatch layer around the generators.
"""

from .cache import LRUCache, cache_key, mesh_cache_key
from .dispatcher import Dispatcher
from .generation_worker import GenerationWorker
from .messages import GenerationRequest, MeshInput, MeshRequest, WorkerResponse

__all__ = [
    "LRUCache",
    "cache_key",
    "mesh_cache_key",
    "Dispatcher",
    "GenerationWorker",
    "GenerationRequest",
    "MeshInput",
    "MeshRequest",
    "WorkerResponse",
]
