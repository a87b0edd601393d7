"""Tests for adaptive point sampling."""

import numpy as np
import pytest

from py_mapgen.core.mesh_sampler import (
    BORDER_RADIUS,
    PREVIEW_DETAIL_FLOOR,
    PREVIEW_PROFILES,
    SEPARATION_FACTOR,
    SIMULATION_PROFILES,
    SpatialHashGrid,
    biome_edge_grid,
    points_to_array,
    preview_acceptance,
    sample_adaptive_points,
    sampler_profile,
    target_point_count,
)
from py_mapgen.core.options import Fidelity, MeshQuality


def assert_separated(points):
    coords = points_to_array(points)
    radii = np.array([p.radius for p in points])
    dx = coords[:, 0, None] - coords[None, :, 0]
    dy = coords[:, 1, None] - coords[None, :, 1]
    distance = np.hypot(dx, dy)
    required = np.minimum(radii[:, None], radii[None, :]) * SEPARATION_FACTOR
    np.fill_diagonal(distance, np.inf)
    assert (distance >= required - 1e-9).all()


class TestProfiles:
    """Test quality tiers and budgets."""

    def test_profile_selection(self):
        assert sampler_profile(MeshQuality.LOW, Fidelity.PREVIEW).target_points == 1800
        assert sampler_profile(MeshQuality.HIGH, Fidelity.SIMULATION).target_points == 10000
        assert sampler_profile(MeshQuality.MEDIUM, Fidelity.SIMULATION).stream_suffix == "sim-mesh"

    def test_radii_ordered(self):
        """Higher quality means smaller radii."""
        for profiles in (PREVIEW_PROFILES, SIMULATION_PROFILES):
            low, medium, high = (profiles[q] for q in (MeshQuality.LOW, MeshQuality.MEDIUM, MeshQuality.HIGH))
            assert low.max_radius > medium.max_radius > high.max_radius
            assert low.min_radius > medium.min_radius > high.min_radius

    def test_target_point_count(self):
        """Budget scales with area and is clamped to [0.65, 1.65] of the target."""
        profile = PREVIEW_PROFILES[MeshQuality.LOW]
        assert target_point_count(profile, 720, 360) == 1800
        assert target_point_count(profile, 100, 100) == 1170
        assert target_point_count(profile, 4096, 4096) == 2970


class TestSpatialHashGrid:
    """Test separation queries."""

    def test_rejects_close_points(self):
        grid = SpatialHashGrid(100, 100, 5)
        assert grid.try_insert(50, 50, 10)
        assert not grid.try_insert(55, 50, 10)
        assert grid.try_insert(65, 50, 10)
        assert len(grid) == 2

    def test_uses_smaller_radius(self):
        """Separation uses the smaller of the two radii."""
        grid = SpatialHashGrid(100, 100, 5)
        assert grid.try_insert(50, 50, 20)
        assert grid.try_insert(54, 50, 4)

    def test_clamps_to_viewport(self):
        grid = SpatialHashGrid(100, 50, 5)
        grid.try_insert(-10, 80, 3)
        point = grid.points[0]
        assert (point.x, point.y) == (0.0, 50.0)


class TestBiomeEdges:
    """Test biome edge density."""

    def test_uniform_has_no_edges(self):
        np.testing.assert_array_equal(biome_edge_grid(np.zeros((4, 4), dtype=np.uint8)), 0.0)

    def test_single_cell(self):
        """The odd cell is all edge; a corner sees one of three neighbours differ."""
        biome = np.zeros((3, 3), dtype=np.uint8)
        biome[1, 1] = 5
        edges = biome_edge_grid(biome)
        assert edges[1, 1] == 1.0
        assert edges[0, 0] == pytest.approx(1 / 3)
        assert edges[0, 1] == pytest.approx(1 / 5)


class TestSampling:
    """Test dart throwing over generated layers."""

    @pytest.fixture(scope="class")
    def preview_points(self, scenario_a_layers):
        return sample_adaptive_points(scenario_a_layers, "world-seed-001", 720, 360, 0.56, MeshQuality.LOW)

    def test_separation(self, preview_points):
        """No two points are closer than their pairwise separation."""
        assert_separated(preview_points)

    def test_inside_viewport(self, preview_points):
        coords = points_to_array(preview_points)
        assert coords[:, 0].min() >= 0 and coords[:, 0].max() <= 720
        assert coords[:, 1].min() >= 0 and coords[:, 1].max() <= 360

    def test_border_points_first(self, preview_points):
        """The perimeter is seeded before interior sampling."""
        first = preview_points[0]
        assert (first.x, first.y, first.radius) == (0.0, 0.0, BORDER_RADIUS)

    def test_budget(self, preview_points):
        assert len(preview_points) <= target_point_count(PREVIEW_PROFILES[MeshQuality.LOW], 720, 360)

    def test_deterministic(self, scenario_a_layers, preview_points):
        again = sample_adaptive_points(scenario_a_layers, "world-seed-001", 720, 360, 0.56, MeshQuality.LOW)
        assert again == preview_points

    def test_seed_changes_points(self, scenario_a_layers, preview_points):
        other = sample_adaptive_points(scenario_a_layers, "another-seed", 720, 360, 0.56, MeshQuality.LOW)
        assert other != preview_points

    def test_radius_range(self, preview_points):
        profile = PREVIEW_PROFILES[MeshQuality.LOW]
        for point in preview_points:
            assert point.radius == BORDER_RADIUS or profile.min_radius <= point.radius <= profile.max_radius

    def test_simulation_separation(self, simulation_layers):
        points = sample_adaptive_points(
            simulation_layers, "simulation-seed", 360, 180, 0.5, MeshQuality.LOW, Fidelity.SIMULATION
        )
        profile = SIMULATION_PROFILES[MeshQuality.LOW]
        assert len(points) > 4
        assert_separated(points)
        for point in points:
            assert point.radius == BORDER_RADIUS or profile.min_radius <= point.radius <= profile.max_radius


class TestPreviewAcceptance:
    """Test preview density terms."""

    def test_open_sea_floor(self):
        """Deep sea far from any coast gets the floor detail, not the widest radius."""
        profile = PREVIEW_PROFILES[MeshQuality.LOW]
        height = np.zeros((20, 40))
        u = np.array([0.25, 0.5, 0.75])
        v = np.array([0.5, 0.5, 0.5])
        accept, radius = preview_acceptance(profile, height, 0.56, u, v)
        np.testing.assert_allclose(accept, 0.08 + PREVIEW_DETAIL_FLOOR * 0.92)
        np.testing.assert_allclose(radius, profile.max_radius - PREVIEW_DETAIL_FLOOR * profile.radius_span)
        assert (radius < profile.max_radius).all()

    def test_relief_refines_radius(self):
        """High land still samples finer than the sea floor."""
        profile = PREVIEW_PROFILES[MeshQuality.LOW]
        height = np.full((20, 40), 0.95)
        _, land_radius = preview_acceptance(profile, height, 0.56, np.array([0.5]), np.array([0.5]))
        _, sea_radius = preview_acceptance(profile, np.zeros((20, 40)), 0.56, np.array([0.5]), np.array([0.5]))
        assert land_radius[0] < sea_radius[0]
