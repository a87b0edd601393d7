"""Generation options shared by the terrain and mesh pipelines."""

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

MIN_DIMENSION = 64
MAX_DIMENSION = 4096
MIN_CELLS_X, MAX_CELLS_X = 48, 220
MIN_CELLS_Y, MAX_CELLS_Y = 32, 140
DEFAULT_CELLS_X = 120
DEFAULT_CELLS_Y = 60
DEFAULT_SEA_LEVEL = 0.5
DEFAULT_SEED = "default-seed"
DEFAULT_WIDTH = 2048
DEFAULT_HEIGHT = 1024


class ClimatePreset(str, Enum):
    """Global climate bias applied to moisture and temperature."""

    TEMPERATE = "temperate"
    ARID = "arid"
    COLD = "cold"


class MeshQuality(str, Enum):
    """Point budget tier of the adaptive mesh."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Fidelity(str, Enum):
    """Pipeline variant: cheap display preview or eroded simulation terrain."""

    PREVIEW = "preview"
    SIMULATION = "simulation"


def clamp(value: float, min_value: float, max_value: float) -> float:
    """Limit value to [min_value, max_value]."""
    return min(max_value, max(min_value, value))


def _coerce_enum(enum_type, value: Any, default):
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).strip().lower())
    except ValueError:
        return default


def normalize_quality(value: Any) -> MeshQuality:
    """Map any input onto a defined quality tier (medium when unknown)."""
    return _coerce_enum(MeshQuality, value, MeshQuality.MEDIUM)


def normalize_fidelity(value: Any) -> Fidelity:
    """Map any input onto a pipeline variant (preview when unknown)."""
    return _coerce_enum(Fidelity, value, Fidelity.PREVIEW)


def normalize_sea_level(value: Any) -> float:
    """Clamp a sea level into [0, 1]; non-numeric or non-finite input gives the default."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_SEA_LEVEL
    if not math.isfinite(number):
        return DEFAULT_SEA_LEVEL
    return clamp(number, 0.0, 1.0)


def _clamp_int(value: Any, min_value: int, max_value: int, default: int) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return int(clamp(int(number), min_value, max_value))


class GenerationOptions(BaseModel):
    """
    Immutable parameters that fully determine a generated map.

    Out-of-range values are clamped and unknown enum strings fall back to
    their defaults instead of raising, so any caller input yields a usable,
    deterministic result.
    """

    model_config = ConfigDict(frozen=True)

    seed: str = Field(DEFAULT_SEED, description="Seed string for all hashing")
    width: int = Field(DEFAULT_WIDTH, description="Map width in pixels")
    height: int = Field(DEFAULT_HEIGHT, description="Map height in pixels")
    sea_level: float = Field(DEFAULT_SEA_LEVEL, description="Sea level in [0, 1]")
    climate_preset: ClimatePreset = Field(
        ClimatePreset.TEMPERATE, description="Climate bias preset"
    )
    cells_x: int = Field(DEFAULT_CELLS_X, description="Grid columns")
    cells_y: int = Field(DEFAULT_CELLS_Y, description="Grid rows")
    mesh_quality: MeshQuality = Field(MeshQuality.MEDIUM, description="Mesh tier")
    fidelity: Fidelity = Field(Fidelity.PREVIEW, description="Pipeline variant")

    @field_validator("seed", mode="before")
    @classmethod
    def _normalize_seed(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip()
        return text or DEFAULT_SEED

    @field_validator("width", "height", mode="before")
    @classmethod
    def _clamp_dimension(cls, value: Any, info: ValidationInfo) -> int:
        default = DEFAULT_WIDTH if info.field_name == "width" else DEFAULT_HEIGHT
        return _clamp_int(value, MIN_DIMENSION, MAX_DIMENSION, default)

    @field_validator("sea_level", mode="before")
    @classmethod
    def _clamp_sea_level(cls, value: Any) -> float:
        return normalize_sea_level(value)

    @field_validator("climate_preset", mode="before")
    @classmethod
    def _normalize_climate(cls, value: Any) -> ClimatePreset:
        return _coerce_enum(ClimatePreset, value, ClimatePreset.TEMPERATE)

    @field_validator("cells_x", mode="before")
    @classmethod
    def _clamp_cells_x(cls, value: Any) -> int:
        if value is None:
            return DEFAULT_CELLS_X
        return _clamp_int(value, MIN_CELLS_X, MAX_CELLS_X, DEFAULT_CELLS_X)

    @field_validator("cells_y", mode="before")
    @classmethod
    def _clamp_cells_y(cls, value: Any) -> int:
        if value is None:
            return DEFAULT_CELLS_Y
        return _clamp_int(value, MIN_CELLS_Y, MAX_CELLS_Y, DEFAULT_CELLS_Y)

    @field_validator("mesh_quality", mode="before")
    @classmethod
    def _normalize_quality(cls, value: Any) -> MeshQuality:
        return normalize_quality(value)

    @field_validator("fidelity", mode="before")
    @classmethod
    def _normalize_fidelity(cls, value: Any) -> Fidelity:
        return normalize_fidelity(value)

    def with_fidelity(self, fidelity: Fidelity) -> "GenerationOptions":
        """Copy of these options running the given pipeline variant."""
        return self.model_copy(update={"fidelity": normalize_fidelity(fidelity)})
