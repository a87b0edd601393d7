from pathlib import Path
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

import os

from ..core.voronoi_mesh import VoronoiOptions

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k.startswith("MAPGEN_") and k not in os.environ}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Generator settings pulled from ``MAPGEN_*`` environment variables."""

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    # Cache Configuration
    layer_cache_capacity: int = Field(default=24, ge=1, description="Terrain layer cache entries per worker")
    mesh_cache_capacity: int = Field(default=24, ge=1, description="Mesh cache entries per worker")

    # Worker Configuration
    use_background_worker: bool = Field(
        default=True, description="Run generation on a background thread when possible"
    )

    # Geometry Thresholds
    collinear_epsilon: float = Field(default=1e-9, gt=0, description="Collinearity cutoff for circumcircles")
    vertex_merge_distance: float = Field(default=0.35, ge=0, description="Voronoi vertex merge distance")
    min_cell_area: float = Field(
        default=2.5, ge=0, description="Smallest Voronoi cell shoelace sum (twice the area) kept"
    )

    def voronoi_options(self) -> VoronoiOptions:
        """Geometry thresholds as mesh builder options."""
        return VoronoiOptions(
            collinear_epsilon=self.collinear_epsilon,
            vertex_merge_distance=self.vertex_merge_distance,
            min_cell_area=self.min_cell_area,
        )

    class Config:
        env_prefix = "MAPGEN_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instantiate singleton settings object
settings = Settings()
