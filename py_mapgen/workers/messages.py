"""Request and response messages exchanged with the generation worker."""

from dataclasses import dataclass
from typing import Any

from ..core.options import GenerationOptions


@dataclass(frozen=True)
class GenerationRequest:
    """Ask for the terrain layers of a set of options."""

    request_id: int
    cache_key: str
    options: GenerationOptions


@dataclass(frozen=True)
class MeshInput:
    """Everything a mesh build depends on besides the layers themselves."""

    options: GenerationOptions
    viewport_width: float
    viewport_height: float


@dataclass(frozen=True)
class MeshRequest:
    """Ask for the render mesh of a map at a viewport size."""

    request_id: int
    cache_key: str
    mesh_input: MeshInput


@dataclass(frozen=True)
class WorkerResponse:
    """
    Result of one request.

    ``result`` is a TerrainLayers for generation requests and a MeshResult
    for mesh requests.
    """

    request_id: int
    cache_key: str
    cache_hit: bool
    result: Any
