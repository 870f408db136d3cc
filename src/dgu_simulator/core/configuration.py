"""
Simulation Configuration
========================

Default parameter records and the factory that assembles a transport engine
from them.

The defaults describe a nanoparticle separation run: ~8 nm silicon-core,
ligand-shell particles layered on a linear density gradient spanning
780-1426 kg/m³ in a swinging-bucket rotor at ~30,000 rpm and 1 °C.

License: MIT
"""

import logging
from dataclasses import dataclass, field

from .gradient import GradientSpec, GradientType, build_gradient
from .distribution import LognormalSpec, DistributionSpec, build_size_distribution
from .hydrodynamics import MaterialParams
from .transport import MultiSpeciesTransportEngine

logger = logging.getLogger(__name__)


# Simulated seconds per wall-clock second offered to the driving loop
TIME_SCALES = (1, 10, 100, 1000, 10000)


@dataclass
class RotorParams:
    """
    Rotor operating point.

    Attributes:
        omega: Angular speed [rad/s]
        temperature: Absolute temperature [K]
    """

    omega: float = 3141.6
    temperature: float = 274.15

    def validate(self) -> None:
        """Validate rotor speed and temperature."""
        if not self.omega >= 0:
            raise ValueError(f"Rotor speed must be non-negative, got {self.omega} rad/s")
        if not self.temperature > 0:
            raise ValueError(f"Temperature must be positive, got {self.temperature} K")


def default_gradient() -> GradientSpec:
    return GradientSpec(
        type=GradientType.LINEAR,
        r_min_m=0.0674,
        r_max_m=0.1531,
        rho_top=780.0,
        rho_bot=1426.0,
        eta_top=0.000751,
        eta_bot=0.000694,
    )


def default_size_distribution() -> LognormalSpec:
    return LognormalSpec(d50_nm=7.82, g_sigma=1.5)


def default_material() -> MaterialParams:
    return MaterialParams(rho_core=2330.0, rho_shell=1050.0, shell_thickness_m=1.66e-9)


@dataclass
class SimulationConfiguration:
    """
    Complete configuration for a centrifugation run.

    Combines grid resolution, solvent gradient, particle population, material
    and rotor parameters with the driving-loop settings.
    """

    radial_cells: int = 180
    gradient: GradientSpec = field(default_factory=default_gradient)
    size_distribution: DistributionSpec = field(default_factory=default_size_distribution)
    n_bins: int = 100
    material: MaterialParams = field(default_factory=default_material)
    rotor: RotorParams = field(default_factory=RotorParams)
    time_scale: int = 1000
    max_steps_per_frame: int = 5000

    def validate(self) -> None:
        """Validate configuration consistency."""
        if self.radial_cells < 1:
            raise ValueError(f"Need at least 1 radial cell, got {self.radial_cells}")
        if self.n_bins < 1:
            raise ValueError(f"Need at least 1 size bin, got {self.n_bins}")
        self.gradient.validate()
        self.size_distribution.validate()
        self.material.validate()
        self.rotor.validate()
        if self.time_scale not in TIME_SCALES:
            raise ValueError(
                f"Time scale must be one of {TIME_SCALES}, got {self.time_scale}"
            )
        if self.max_steps_per_frame < 1:
            raise ValueError(
                f"Step budget must be positive: {self.max_steps_per_frame}"
            )


def build_engine(config: SimulationConfiguration) -> MultiSpeciesTransportEngine:
    """
    Build gradient and size distribution from a configuration and construct
    the transport engine on the gradient's radial span.

    Args:
        config: Simulation configuration

    Returns:
        Engine with zero-filled state; call an initializer before stepping
    """
    config.validate()

    gradient = build_gradient(config.gradient, config.radial_cells)
    distribution = build_size_distribution(config.size_distribution, config.n_bins)

    logger.info(
        f"Configuration: {config.gradient.type.value} gradient, "
        f"{distribution.n_bins} bins, mode {distribution.mode_diameter_nm:.2f} nm"
    )

    return MultiSpeciesTransportEngine(
        r_min=config.gradient.r_min_m,
        r_max=config.gradient.r_max_m,
        n_cells=config.radial_cells,
        omega=config.rotor.omega,
        temperature=config.rotor.temperature,
        gradient=gradient,
        bin_radii=distribution.radii_m,
        bin_weights=distribution.weights,
        material=config.material,
    )
