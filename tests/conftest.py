import numpy as np
import pytest

from dgu_simulator.core import (
    BimodalLognormalSpec,
    GradientSpec,
    MaterialParams,
    MultiSpeciesTransportEngine,
    build_gradient,
    build_size_distribution,
)


R_MIN = 0.05
R_MAX = 0.065
N_CELLS = 120


def gaussian_profile(center, sigma):
    return lambda r: np.exp(-((r - center) ** 2) / (2 * sigma * sigma))


def make_bimodal_engine():
    gradient = build_gradient(
        GradientSpec("uniform", R_MIN, R_MAX, 1050.0, 1050.0, 0.001, 0.001), N_CELLS
    )
    dist = build_size_distribution(
        BimodalLognormalSpec(18.0, 1.3, 0.6, 32.0, 1.5, 0.4), n_bins=5
    )
    engine = MultiSpeciesTransportEngine(
        r_min=R_MIN,
        r_max=R_MAX,
        n_cells=N_CELLS,
        omega=25000.0,
        temperature=293.0,
        gradient=gradient,
        bin_radii=dist.radii_m,
        bin_weights=dist.weights,
        material=MaterialParams(rho_core=2200.0, rho_shell=1050.0, shell_thickness_m=2e-9),
    )
    span = R_MAX - R_MIN
    engine.set_initial_concentrations(gaussian_profile(R_MIN + 0.2 * span, 0.05 * span))
    return engine


@pytest.fixture
def bimodal_engine():
    """Five-bin sedimenting population in a uniform solvent."""
    return make_bimodal_engine()


@pytest.fixture
def engine_factory():
    return make_bimodal_engine
