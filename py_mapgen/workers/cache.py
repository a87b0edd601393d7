"""
Versioned cache keys and a bounded LRU cache.
"""

import threading
from collections import OrderedDict
from typing import Any, Hashable, Iterator, Optional

from ..core.options import Fidelity, GenerationOptions, MeshQuality, normalize_fidelity, normalize_quality

# Bump when the terrain algorithm changes output for the same options
TERRAIN_VERSION = "terrain-v3"
MESH_VERSION = "mesh-polygons-v1"
DEFAULT_CAPACITY = 24


def cache_key(options: GenerationOptions) -> str:
    """
    Cache key of the terrain layers for a set of options.

    Every option takes part in the key, so changing any of them (even only
    the mesh quality) never returns stale layers.
    """
    return (
        f"{TERRAIN_VERSION}"
        f"|fidelity:{options.fidelity.value}"
        f"|seed:{options.seed}"
        f"|size:{options.width}x{options.height}"
        f"|sea:{options.sea_level:.4f}"
        f"|climate:{options.climate_preset.value}"
        f"|cells:{options.cells_x}x{options.cells_y}"
        f"|mesh:{options.mesh_quality.value}"
    )


def mesh_cache_key(
    layers_key: str,
    quality: MeshQuality,
    viewport_width: float,
    viewport_height: float,
    fidelity: Fidelity = Fidelity.PREVIEW,
) -> str:
    """Cache key of a mesh built from the layers stored under ``layers_key``."""
    return (
        f"{layers_key}|{MESH_VERSION}"
        f"|q:{normalize_quality(quality).value}"
        f"|f:{normalize_fidelity(fidelity).value}"
        f"|{int(round(viewport_width))}x{int(round(viewport_height))}"
    )


class LRUCache:
    """
    Bounded mapping that evicts the least recently touched entry.

    Both ``get`` hits and ``put`` count as a touch. Every operation holds
    the cache lock, so threads may share one instance.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = max(1, int(capacity))
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        with self._lock:
            if key not in self._entries:
                return default
            self._entries.move_to_end(key)
            return self._entries[key]

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> Iterator[Hashable]:
        """Keys from least to most recently touched."""
        with self._lock:
            return iter(list(self._entries))

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
