"""Tests for thermal erosion."""

import numpy as np

from py_mapgen.core.erosion import ErosionOptions, apply_thermal_erosion, erosion_step


class TestThermalErosion:
    """Test talus-driven material transfer."""

    def test_flat_unchanged(self):
        """A flat grid has nothing to move."""
        height = np.full((12, 12), 0.6)
        np.testing.assert_array_equal(apply_thermal_erosion(height, 0.5), height)

    def test_spike_spreads(self):
        """A spike is lowered and its neighbours raised."""
        height = np.full((11, 11), 0.5)
        height[5, 5] = 0.9
        eroded = apply_thermal_erosion(height, 0.2)
        assert eroded[5, 5] < 0.9
        assert eroded[5, 6] > 0.5
        assert eroded[4, 4] > 0.5

    def test_mass_conserved(self):
        """Interior transfers neither create nor destroy material."""
        rng = np.random.default_rng(11)
        height = rng.uniform(0.2, 0.8, (30, 30))
        eroded = apply_thermal_erosion(height, 0.5)
        np.testing.assert_allclose(eroded.sum(), height.sum(), rtol=1e-10)

    def test_gentle_slope_stable(self):
        """Slopes under the land talus do not erode."""
        height = np.tile(0.6 + 0.005 * np.arange(20), (10, 1))
        assert np.diff(height, axis=1).max() < 0.023
        eroded = apply_thermal_erosion(height, 0.1)
        np.testing.assert_array_equal(eroded, height)

    def test_sea_talus_is_lower(self):
        """The same slope erodes below sea level but not above it."""
        slope = np.tile(0.015 * np.arange(10), (6, 1))
        below = slope + 0.1
        above = slope + 0.6
        assert not np.array_equal(erosion_step(below, 0.5, ErosionOptions()), below)
        np.testing.assert_array_equal(erosion_step(above, 0.5, ErosionOptions()), above)

    def test_zero_iterations_copies(self):
        """No passes returns an equal copy."""
        height = np.linspace(0, 1, 25).reshape(5, 5)
        result = apply_thermal_erosion(height, 0.5, iterations=0)
        np.testing.assert_array_equal(result, height)
        assert result is not height

    def test_transfer_capped(self):
        """A single pass never moves more than the land cap out of a cell."""
        height = np.full((5, 5), 0.3)
        height[2, 2] = 1.0
        stepped = erosion_step(height, 0.2, ErosionOptions())
        assert height[2, 2] - stepped[2, 2] <= 0.052 + 1e-12

    def test_stays_in_range(self):
        """Heights stay inside [0, 1]."""
        rng = np.random.default_rng(5)
        eroded = apply_thermal_erosion(rng.uniform(0, 1, (20, 20)), 0.4)
        assert eroded.min() >= 0.0
        assert eroded.max() <= 1.0
