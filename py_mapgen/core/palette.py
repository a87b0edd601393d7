"""Display colors for biomes and elevation bands."""

from typing import Dict, Tuple

from .biomes import BiomeType
from .options import clamp

BIOME_COLORS: Dict[BiomeType, str] = {
    BiomeType.OCEAN: "#3f78a4",
    BiomeType.BEACH: "#cbb989",
    BiomeType.SNOW: "#e8eff7",
    BiomeType.TUNDRA: "#b3bdc6",
    BiomeType.TAIGA: "#6d8f7a",
    BiomeType.GRASSLAND: "#8cb56f",
    BiomeType.FOREST: "#5e8f54",
    BiomeType.RAINFOREST: "#3c7d4f",
    BiomeType.DESERT: "#cfb177",
    BiomeType.SAVANNA: "#afab68",
    BiomeType.ROCK: "#7d7d7d",
}

RIVER_COLOR = "#4f8fc0"
RELIEF_SHADE = "#222831"
DEPTH_SHADE = "#10243a"


def height_color(altitude: float, sea_level: float) -> str:
    """Banded hypsometric color: three water depths and four land levels."""
    if altitude <= sea_level:
        depth = clamp((sea_level - altitude) / max(0.001, sea_level), 0.0, 1.0)
        if depth > 0.72:
            return "#1b3f63"
        if depth > 0.4:
            return "#2f6793"
        return "#63a7cf"

    land_level = clamp((altitude - sea_level) / max(0.001, 1.0 - sea_level), 0.0, 1.0)
    if land_level > 0.84:
        return "#95979d"
    if land_level > 0.58:
        return "#8aa36f"
    if land_level > 0.22:
        return "#75a765"
    return "#bfb680"


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """Parse ``#rrggbb`` or ``#rgb``."""
    digits = value.lstrip("#")
    if len(digits) == 3:
        digits = "".join(char * 2 for char in digits)
    parsed = int(digits, 16)
    return (parsed >> 16) & 255, (parsed >> 8) & 255, parsed & 255


def rgb_to_hex(r: float, g: float, b: float) -> str:
    channels = (int(clamp(round(channel), 0, 255)) for channel in (r, g, b))
    return "#" + "".join(f"{channel:02x}" for channel in channels)


def mix_color(base: str, overlay: str, ratio: float) -> str:
    """Blend ``overlay`` over ``base``; ratio is clamped to [0, 1]."""
    ratio = clamp(ratio, 0.0, 1.0)
    br, bg, bb = hex_to_rgb(base)
    orr, og, ob = hex_to_rgb(overlay)
    return rgb_to_hex(br + (orr - br) * ratio, bg + (og - bg) * ratio, bb + (ob - bb) * ratio)


def biome_color(biome: int) -> str:
    return BIOME_COLORS[BiomeType(int(biome))]
