"""Tests for Voronoi cells and boundaries."""

import numpy as np
import pytest

from py_mapgen.core.delaunay import MeshFace, triangulate
from py_mapgen.core.voronoi_mesh import (
    MeshCell,
    VoronoiOptions,
    _merge_close_vertices,
    build_boundaries,
    build_voronoi_cells,
    face_centers,
    signed_area,
)

WIDTH = 100.0
HEIGHT = 100.0


@pytest.fixture(scope="module")
def lattice():
    """Jittered 11x11 lattice with its faces and face centers."""
    rng = np.random.default_rng(7)
    xs, ys = np.meshgrid(np.linspace(0, WIDTH, 11), np.linspace(0, HEIGHT, 11))
    points = np.column_stack([xs.ravel(), ys.ravel()])
    interior = (points > 0).all(axis=1) & (points[:, 0] < WIDTH) & (points[:, 1] < HEIGHT)
    points[interior] += rng.uniform(-2.0, 2.0, (interior.sum(), 2))
    faces = triangulate(points, WIDTH, HEIGHT)
    centers = face_centers(points, faces, WIDTH, HEIGHT)
    return points, faces, centers


class TestSignedArea:
    """Test the shoelace formula."""

    def test_unit_square(self):
        assert signed_area([(0, 0), (1, 0), (1, 1), (0, 1)]) == pytest.approx(1.0)

    def test_orientation(self):
        assert signed_area([(0, 1), (1, 1), (1, 0), (0, 0)]) == pytest.approx(-1.0)

    def test_degenerate(self):
        assert signed_area([(0, 0), (1, 1), (2, 2)]) == 0.0


class TestFaceCenters:
    """Test circumcenters and their fallbacks."""

    def test_circumcenter(self):
        points = np.array([[0.0, 0.0], [4.0, 0.0], [0.0, 4.0]])
        centers = face_centers(points, [MeshFace(0, 1, 2)], 10, 10)
        np.testing.assert_allclose(centers, [[2.0, 2.0]])

    def test_clamped_to_viewport(self):
        """A far circumcenter of an obtuse face is pulled onto the viewport."""
        points = np.array([[0.0, 0.0], [10.0, 0.0], [5.0, 0.5]])
        centers = face_centers(points, [MeshFace(0, 1, 2)], 10, 10)
        assert centers[0, 0] == pytest.approx(5.0)
        assert centers[0, 1] == 0.0

    def test_centroid_fallback(self):
        """Collinear faces use their centroid."""
        points = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0]])
        centers = face_centers(points, [MeshFace(0, 1, 2)], 10, 10)
        np.testing.assert_allclose(centers, [[1.0, 1.0]])

    def test_no_faces(self):
        assert face_centers(np.zeros((0, 2)), [], 10, 10).shape == (0, 2)


class TestMergeCloseVertices:
    """Test consecutive vertex merging."""

    def test_merges_neighbours_and_closing_pair(self):
        vertices = [(0.0, 0.0), (0.1, 0.0), (5.0, 0.0), (5.0, 5.0), (0.1, 0.2)]
        assert _merge_close_vertices(vertices, 0.35) == [(0.0, 0.0), (5.0, 0.0), (5.0, 5.0)]

    def test_distance_is_euclidean(self):
        """Offsets of 0.3 on both axes are 0.42 apart and survive."""
        vertices = [(0.0, 0.0), (0.3, 0.3), (5.0, 0.0)]
        assert len(_merge_close_vertices(vertices, 0.35)) == 3


class TestVoronoiCells:
    """Test cell construction over a jittered lattice."""

    def test_interior_sites_have_cells(self, lattice):
        points, faces, centers = lattice
        cells = build_voronoi_cells(points, faces, centers, WIDTH, HEIGHT)
        sites = {cell.site for cell in cells}
        interior = [
            index
            for index, (x, y) in enumerate(points)
            if 0 < x < WIDTH and 0 < y < HEIGHT
        ]
        assert set(interior) <= sites

    def test_cells_cover_viewport(self, lattice):
        points, faces, centers = lattice
        cells = build_voronoi_cells(points, faces, centers, WIDTH, HEIGHT)
        assert sum(cell.area for cell in cells) >= 0.8 * WIDTH * HEIGHT

    def test_vertices_inside_viewport(self, lattice):
        points, faces, centers = lattice
        for cell in build_voronoi_cells(points, faces, centers, WIDTH, HEIGHT):
            assert len(cell.vertices) >= 3
            for x, y in cell.vertices:
                assert 0.0 <= x <= WIDTH and 0.0 <= y <= HEIGHT

    def test_min_area_threshold(self, lattice):
        """Raising the area threshold drops every cell."""
        points, faces, centers = lattice
        options = VoronoiOptions(min_cell_area=1e6)
        assert build_voronoi_cells(points, faces, centers, WIDTH, HEIGHT, options) == []

    def test_merge_distance_threshold(self, lattice):
        """A huge merge distance collapses every polygon."""
        points, faces, centers = lattice
        options = VoronoiOptions(vertex_merge_distance=1e6)
        assert build_voronoi_cells(points, faces, centers, WIDTH, HEIGHT, options) == []

    def test_no_faces(self):
        points = np.array([[0.0, 0.0], [1.0, 1.0]])
        assert build_voronoi_cells(points, [], np.zeros((0, 2)), 10, 10) == []


class TestCellAreaThreshold:
    """The area cutoff applies to the shoelace sum, twice the polygon area."""

    @pytest.fixture
    def small_cell(self):
        """Site 0 surrounded by three faces whose centers span a triangle of area 2."""
        points = np.array([[0.5, 0.5], [3.0, -1.0], [-1.0, 3.0], [-1.0, -1.0]])
        faces = [MeshFace(0, 1, 2), MeshFace(0, 2, 3), MeshFace(0, 3, 1)]
        centers = np.array([[2.0, 0.0], [0.0, 2.0], [0.0, 0.0]])
        return points, faces, centers

    def test_keeps_twice_area_above_cutoff(self, small_cell):
        points, faces, centers = small_cell
        cells = build_voronoi_cells(points, faces, centers, 10, 10, VoronoiOptions(min_cell_area=2.5))
        assert cells == [MeshCell(site=0, vertices=((0.0, 0.0), (2.0, 0.0), (0.0, 2.0)))]
        assert cells[0].area == pytest.approx(2.0)

    def test_drops_twice_area_below_cutoff(self, small_cell):
        points, faces, centers = small_cell
        assert build_voronoi_cells(points, faces, centers, 10, 10, VoronoiOptions(min_cell_area=4.5)) == []


class TestBoundaries:
    """Test boundary segments between adjacent sites."""

    def test_one_per_shared_edge(self, lattice):
        _, faces, centers = lattice
        counts = {}
        for face in faces:
            for a, b in face.edges:
                key = (min(a, b), max(a, b))
                counts[key] = counts.get(key, 0) + 1
        shared = {key for key, count in counts.items() if count == 2}

        boundaries = build_boundaries(faces, centers, WIDTH, HEIGHT)
        assert len(boundaries) == len(shared)
        assert {(b.site_a, b.site_b) for b in boundaries} == shared

    def test_endpoints_are_face_centers(self, lattice):
        _, faces, centers = lattice
        known = {tuple(center) for center in centers}
        for boundary in build_boundaries(faces, centers, WIDTH, HEIGHT):
            assert boundary.p1 in known
            assert boundary.p2 in known

    def test_hull_edges_skipped(self):
        """A single triangle has no shared edge."""
        points = np.array([[0.0, 0.0], [4.0, 0.0], [0.0, 4.0]])
        faces = [MeshFace(0, 1, 2)]
        assert build_boundaries(faces, face_centers(points, faces, 10, 10), 10, 10) == []
