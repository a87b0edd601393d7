"""
Example rendering terrain layers, coastline and the adaptive mesh.
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection, PolyCollection

from py_mapgen import Dispatcher, GenerationOptions, MeshQuality
from py_mapgen.config import configure_logging
from py_mapgen.core.biomes import BIOME_NAMES, BiomeType
from py_mapgen.core.coastline import coastline_for_quality
from py_mapgen.core.palette import BIOME_COLORS, RIVER_COLOR, biome_color, height_color


def main():
    configure_logging()

    viewport_width, viewport_height = 720, 360
    options = GenerationOptions(
        seed="world-seed-001",
        sea_level=0.56,
        climate_preset="temperate",
        cells_x=120,
        cells_y=60,
        mesh_quality=MeshQuality.LOW,
    )

    with Dispatcher() as dispatcher:
        print("Generating terrain...")
        layers = dispatcher.generate(options)
        mesh = dispatcher.build_mesh(options, viewport_width, viewport_height)

    print(f"Land fraction: {layers.land_fraction:.1%}")
    print(f"Rivers traced: {layers.river_count}")
    print(f"Mesh: {len(mesh.points)} points, {len(mesh.faces)} faces, {len(mesh.cells)} cells")

    extent = (0, viewport_width, viewport_height, 0)
    fig, axes = plt.subplots(2, 2, figsize=(14, 8))

    # Elevation bands
    ax = axes[0, 0]
    rgb = np.array(
        [
            [plt.matplotlib.colors.to_rgb(height_color(value, layers.sea_level)) for value in row]
            for row in layers.height
        ]
    )
    ax.imshow(rgb, extent=extent, interpolation="nearest")
    ax.set_title("Elevation")

    # Biomes with rivers
    ax = axes[0, 1]
    rgb = np.array([[plt.matplotlib.colors.to_rgb(biome_color(b)) for b in row] for row in layers.biome])
    ax.imshow(rgb, extent=extent, interpolation="nearest")
    sx = viewport_width / max(1, layers.cells_x - 1)
    sy = viewport_height / max(1, layers.cells_y - 1)
    for path in layers.river_paths:
        xs = [x * sx for x, _ in path.cells]
        ys = [y * sy for _, y in path.cells]
        ax.plot(xs, ys, color=RIVER_COLOR, linewidth=1)
    ax.set_title("Biomes and rivers")

    # Coastline
    ax = axes[1, 0]
    segments = coastline_for_quality(
        layers.height, layers.sea_level, viewport_width, viewport_height, MeshQuality.HIGH
    )
    ax.add_collection(LineCollection(segments, colors="black", linewidths=0.8))
    ax.set_xlim(0, viewport_width)
    ax.set_ylim(viewport_height, 0)
    ax.set_title(f"Coastline ({len(segments)} segments)")

    # Voronoi mesh colored by the biome under each site
    ax = axes[1, 1]
    polygons = [cell.vertices for cell in mesh.cells]
    colors = []
    for cell in mesh.cells:
        point = mesh.points[cell.site]
        x = int(round(point.x / viewport_width * (layers.cells_x - 1)))
        y = int(round(point.y / viewport_height * (layers.cells_y - 1)))
        colors.append(biome_color(layers.biome[y, x]))
    ax.add_collection(PolyCollection(polygons, facecolors=colors, edgecolors="#222831", linewidths=0.2))
    ax.set_xlim(0, viewport_width)
    ax.set_ylim(viewport_height, 0)
    ax.set_title("Adaptive mesh")

    for ax in axes.flat:
        ax.set_aspect("equal")

    plt.tight_layout()
    plt.savefig("terrain_demo.png", dpi=150)
    print("\nTerrain visualization saved to terrain_demo.png")

    print("\nBiome distribution:")
    for biome in BiomeType:
        count = np.sum(layers.biome == biome)
        if count:
            pct = count / layers.cell_count * 100
            print(f"  {BIOME_NAMES[biome]:<11} {pct:5.1f}%  {BIOME_COLORS[biome]}")


if __name__ == "__main__":
    main()
