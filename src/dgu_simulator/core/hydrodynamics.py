"""
Hydrodynamics Module for Centrifugal Particle Transport
=======================================================

This module derives the per-bin, per-cell transport coefficients that drive
the Lamm equation:
- Core–shell effective particle density
- Stokes friction coefficient
- Diffusion coefficient (Stokes–Einstein)
- Sedimentation drift velocity in the centrifugal field

THEORETICAL FOUNDATION
=====================

1. Core–Shell Effective Density:
   ρ_p = [ρ_core·V_core + ρ_shell·(V - V_core)] / V
       = ρ_shell + (ρ_core - ρ_shell)·V_core/V

   Where:
   - a_core = max(a - t_shell, 0)
   - V = (4/3)·π·a³

2. Stokes Friction:
   f = 6·π·η(r)·a

3. Stokes–Einstein Diffusion:
   D = k_B·T / f

4. Centrifugal Buoyant-Force Balance:
   v = Δρ·V·ω²·r / f,   Δρ = ρ_p - ρ_solvent(r)

   v > 0: particle sediments outward
   v < 0: particle floats toward the meniscus
   v = 0: isopycnic point

Coefficients are a pure function of (radii, grid, gradient, material, ω, T).
Any non-finite result (zero friction, zero volume) is replaced by 0.

References:
- Lamm "Die Differentialgleichung der Ultrazentrifugierung" (1929)
- Svedberg & Pedersen "The Ultracentrifuge" (1940)
- Berg "Random Walks in Biology" (1993)

License: MIT
"""

import numpy as np
from typing import Union
from dataclasses import dataclass


# Physical Constants
K_BOLTZMANN = 1.380649e-23  # [J/K] Boltzmann constant (exact, SI 2019)


@dataclass
class MaterialParams:
    """
    Core–shell spherical particle model shared by all size bins.

    Attributes:
        rho_core: Core density [kg/m³]
        rho_shell: Shell density [kg/m³]
        shell_thickness_m: Shell thickness [m]
    """

    rho_core: float
    rho_shell: float
    shell_thickness_m: float = 0.0

    def validate(self) -> None:
        """Validate densities and shell thickness."""
        if not self.rho_core > 0 or not self.rho_shell > 0:
            raise ValueError(
                f"Densities must be positive: core {self.rho_core}, shell {self.rho_shell}"
            )
        if not self.shell_thickness_m >= 0:
            raise ValueError(
                f"Shell thickness must be non-negative, got {self.shell_thickness_m} m"
            )


@dataclass
class HydrodynamicCoefficients:
    """
    Derived transport fields, each of shape (n_bins, n_cells).

    Attributes:
        D: Diffusion coefficient [m²/s]
        v: Radial drift velocity [m/s]
        delta_rho: Effective particle density minus solvent density [kg/m³]
    """

    D: np.ndarray
    v: np.ndarray
    delta_rho: np.ndarray


def sphere_volume(radius: Union[float, np.ndarray]) -> np.ndarray:
    """Sphere volume (4/3)·π·a³ [m³] for a scalar or array radius [m]."""
    return (4.0 / 3.0) * np.pi * np.asarray(radius, dtype=np.float64) ** 3


def effective_density(
    radius: Union[float, np.ndarray], material: MaterialParams
) -> np.ndarray:
    """
    Volume-weighted core–shell density.

    Args:
        radius: Outer particle radius [m] (scalar or array)
        material: Core–shell parameters

    Returns:
        Effective density [kg/m³]; 0 where the particle volume is 0

    Example:
        >>> mat = MaterialParams(rho_core=2000.0, rho_shell=1000.0, shell_thickness_m=0.0)
        >>> float(effective_density(5e-9, mat))
        2000.0
    """
    radius = np.asarray(radius, dtype=np.float64)
    core_radius = np.maximum(radius - material.shell_thickness_m, 0.0)
    v_core = sphere_volume(core_radius)
    v_total = sphere_volume(radius)

    with np.errstate(divide="ignore", invalid="ignore"):
        core_fraction = v_core / v_total
        rho_eff = material.rho_shell + (material.rho_core - material.rho_shell) * core_fraction

    return np.where(v_total == 0, 0.0, rho_eff)


def _finite_or_zero(values: np.ndarray) -> np.ndarray:
    return np.where(np.isfinite(values), values, 0.0)


def compute_hydrodynamic_coefficients(
    radii_m: np.ndarray,
    r: np.ndarray,
    rho: np.ndarray,
    eta: np.ndarray,
    omega: float,
    temperature: float,
    material: MaterialParams,
) -> HydrodynamicCoefficients:
    """
    Recompute D, v and Δρ for every (bin, cell) pair.

    Args:
        radii_m: Particle radius per bin [m], shape (K,)
        r: Cell-center radii [m], shape (n,)
        rho: Solvent density per cell [kg/m³], shape (n,)
        eta: Solvent viscosity per cell [Pa·s], shape (n,)
        omega: Rotor angular speed [rad/s]
        temperature: Absolute temperature [K]
        material: Core–shell parameters

    Returns:
        HydrodynamicCoefficients with arrays of shape (K, n)
    """
    a = np.asarray(radii_m, dtype=np.float64)[:, np.newaxis]
    r = np.asarray(r, dtype=np.float64)[np.newaxis, :]
    rho = np.asarray(rho, dtype=np.float64)[np.newaxis, :]
    eta = np.asarray(eta, dtype=np.float64)[np.newaxis, :]

    volume = sphere_volume(a)
    rho_eff = effective_density(a, material)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        delta = rho_eff - rho
        friction = 6.0 * np.pi * eta * a
        has_friction = friction > 0
        diffusion = np.where(
            has_friction, K_BOLTZMANN * temperature / friction, 0.0
        )
        velocity = np.where(
            has_friction, delta * volume * omega * omega * r / friction, 0.0
        )

    shape = (a.shape[0], r.shape[1])
    return HydrodynamicCoefficients(
        D=np.broadcast_to(_finite_or_zero(diffusion), shape).copy(),
        v=np.broadcast_to(_finite_or_zero(velocity), shape).copy(),
        delta_rho=np.broadcast_to(_finite_or_zero(delta), shape).copy(),
    )


def validate_hydrodynamics() -> None:
    """
    Validation of hydrodynamic coefficients.

    Tests:
    1. Stokes–Einstein diffusion of a 10 nm sphere in water
    2. Drift direction follows the sign of Δρ
    3. Zero viscosity clamps coefficients to 0
    """
    material = MaterialParams(rho_core=1200.0, rho_shell=1200.0)
    r = np.array([0.06, 0.065, 0.07])

    # Test 1: D ≈ 2.1e-11 m²/s at 293 K, η = 1 mPa·s, a = 10 nm
    coeffs = compute_hydrodynamic_coefficients(
        np.array([1e-8]), r, np.full(3, 1000.0), np.full(3, 1e-3), 1000.0, 293.0, material
    )
    expected = K_BOLTZMANN * 293.0 / (6.0 * np.pi * 1e-3 * 1e-8)
    assert np.allclose(coeffs.D, expected), f"D mismatch: {coeffs.D[0, 0]:.3e}"

    # Test 2: Denser than solvent sediments outward, lighter floats
    assert np.all(coeffs.v > 0), "Dense particle should sediment outward"
    floating = compute_hydrodynamic_coefficients(
        np.array([1e-8]), r, np.full(3, 1400.0), np.full(3, 1e-3), 1000.0, 293.0, material
    )
    assert np.all(floating.v < 0), "Light particle should float inward"

    # Test 3: No friction → no transport
    frozen = compute_hydrodynamic_coefficients(
        np.array([1e-8]), r, np.full(3, 1000.0), np.zeros(3), 1000.0, 293.0, material
    )
    assert np.all(frozen.D == 0) and np.all(frozen.v == 0), "Zero friction must clamp"

    print("✓ All hydrodynamic validations passed")
