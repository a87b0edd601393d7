"""Shared fixtures for the generator tests."""

import pytest

from py_mapgen.core.options import GenerationOptions
from py_mapgen.core.terrain_generator import generate, generate_with_erosion

SCENARIO_A = dict(
    seed="world-seed-001",
    width=2048,
    height=1024,
    sea_level=0.56,
    climate_preset="temperate",
    cells_x=120,
    cells_y=60,
)


@pytest.fixture(scope="session")
def scenario_a_options():
    """Reference options of the main determinism scenario."""
    return GenerationOptions(**SCENARIO_A)


@pytest.fixture(scope="session")
def scenario_a_layers(scenario_a_options):
    """Preview layers of the reference scenario."""
    return generate(scenario_a_options)


@pytest.fixture(scope="session")
def simulation_options():
    """Small simulation-fidelity options."""
    return GenerationOptions(seed="simulation-seed", cells_x=96, cells_y=48, sea_level=0.5)


@pytest.fixture(scope="session")
def simulation_layers(simulation_options):
    """Eroded layers for the small simulation options."""
    return generate_with_erosion(simulation_options)
