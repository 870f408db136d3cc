"""
Radial Grid and Solvent Gradient Module
=======================================

This module implements the spatial discretization of the centrifuge cell and
the solvent profile sampled on it:
- Uniform 1-D radial mesh (cell centers + face radii)
- Solvent density ρ(r) and viscosity η(r) on cell centers
- Parametric gradient shapes (uniform, linear, power, two-step)

THEORETICAL FOUNDATION
=====================

1. Finite-Volume Radial Mesh:
   dr = (r_max - r_min) / n
   r_face[i] = r_min + i·dr          i = 0..n
   r[i]      = r_min + (i + ½)·dr    i = 0..n-1

2. Normalized Position:
   ξ = clamp((r - r_min) / (r_max - r_min), 0, 1)

3. Gradient Shapes:
   uniform:   ρ = ρ_top
   linear:    ρ = ρ_top + (ρ_bot - ρ_top)·ξ
   power:     ρ = ρ_top + (ρ_bot - ρ_top)·ξᵖ
   two_step:  piecewise linear top → mid → bottom around r_mid

   The same interpolation is applied to η.

A density-gradient medium (sucrose, iodixanol, CsCl...) is characterized by
its top (meniscus) and bottom (cell base) values. Out-of-range inputs are
clamped, never rejected.

References:
- Schuck "Sedimentation Velocity Analytical Ultracentrifugation" (2016)
- Rickwood "Centrifugation: A Practical Approach" (2nd ed.)

License: MIT
"""

import numpy as np
from typing import Optional, Union
from dataclasses import dataclass, field
from enum import Enum


class RadialGrid:
    """
    Uniform 1-D radial finite-volume mesh.

    Immutable once constructed; shared by the solvent gradient and every
    particle species in the transport engine.
    """

    def __init__(self, r_min: float, r_max: float, n_cells: int):
        """
        Initialize radial grid.

        Args:
            r_min: Inner (meniscus) radius [m]
            r_max: Outer (cell base) radius [m]
            n_cells: Number of finite-volume cells
        """
        if n_cells < 1:
            raise ValueError(f"Need at least 1 cell, got {n_cells}")
        if r_min <= 0:
            raise ValueError(f"Inner radius must be positive: r_min={r_min}")
        if r_min >= r_max:
            raise ValueError(
                f"Inner radius must be below outer radius: r_min={r_min}, r_max={r_max}"
            )

        self.r_min = float(r_min)
        self.r_max = float(r_max)
        self.n_cells = int(n_cells)
        self.dr = (self.r_max - self.r_min) / self.n_cells

        self._r_faces = self.r_min + np.arange(self.n_cells + 1) * self.dr
        self._r = self.r_min + (np.arange(self.n_cells) + 0.5) * self.dr
        self._r_faces.flags.writeable = False
        self._r.flags.writeable = False

    @property
    def r(self) -> np.ndarray:
        """Cell-center radii [m]."""
        return self._r

    @property
    def r_faces(self) -> np.ndarray:
        """Face radii [m], length n_cells + 1."""
        return self._r_faces

    def normalized_position(self) -> np.ndarray:
        """Clamped normalized position ξ of every cell center."""
        xi = (self._r - self.r_min) / (self.r_max - self.r_min)
        return np.clip(xi, 0.0, 1.0)

    def __repr__(self) -> str:
        return (
            f"RadialGrid(r_min={self.r_min}, r_max={self.r_max}, "
            f"n_cells={self.n_cells})"
        )


class GradientType(str, Enum):
    """Supported solvent profile shapes."""

    UNIFORM = "uniform"
    LINEAR = "linear"
    POWER = "power"
    TWO_STEP = "two_step"


@dataclass
class GradientSpec:
    """
    Parametric description of a solvent density/viscosity gradient.

    Attributes:
        type: Profile shape
        r_min_m: Inner radius of the gradient column [m]
        r_max_m: Outer radius of the gradient column [m]
        rho_top: Density at the meniscus [kg/m³]
        rho_bot: Density at the cell base [kg/m³]
        eta_top: Dynamic viscosity at the meniscus [Pa·s]
        eta_bot: Dynamic viscosity at the cell base [Pa·s]
        exponent: Shape exponent for 'power' profiles
        r_mid_m: Breakpoint radius for 'two_step' profiles [m]
        rho_mid: Density at the breakpoint [kg/m³]
        eta_mid: Viscosity at the breakpoint [Pa·s]
    """

    type: Union[GradientType, str]
    r_min_m: float
    r_max_m: float
    rho_top: float
    rho_bot: float
    eta_top: float
    eta_bot: float
    exponent: float = 1.0
    r_mid_m: Optional[float] = None
    rho_mid: Optional[float] = None
    eta_mid: Optional[float] = None

    def __post_init__(self):
        self.type = GradientType(self.type)

    def validate(self) -> None:
        """Validate radial span and solvent properties."""
        if self.r_min_m <= 0 or self.r_min_m >= self.r_max_m:
            raise ValueError(
                f"Invalid radial span: [{self.r_min_m}, {self.r_max_m}] m"
            )

        densities = [self.rho_top, self.rho_bot, self.rho_mid]
        if any(rho is not None and not np.isfinite(rho) for rho in densities):
            raise ValueError(f"Solvent densities must be finite: {densities}")

        viscosities = [self.eta_top, self.eta_bot, self.eta_mid]
        if any(eta is not None and not eta > 0 for eta in viscosities):
            raise ValueError(f"Solvent viscosities must be positive: {viscosities}")

        if self.type is GradientType.POWER and not self.exponent > 0:
            raise ValueError(f"Power exponent must be positive, got {self.exponent}")


@dataclass
class GradientField:
    """
    Solvent density and viscosity sampled on cell centers.

    Attributes:
        rho: Density per cell [kg/m³]
        eta: Dynamic viscosity per cell [Pa·s]
    """

    rho: np.ndarray = field(default_factory=lambda: np.zeros(0))
    eta: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self):
        self.rho = np.asarray(self.rho, dtype=np.float64)
        self.eta = np.asarray(self.eta, dtype=np.float64)

    @property
    def n_cells(self) -> int:
        return len(self.rho)


def _lerp(a, b, t):
    return a + (b - a) * t


def build_gradient(spec: GradientSpec, n_cells: int) -> GradientField:
    """
    Sample a parametric solvent profile on the cell centers of a uniform grid.

    The grid is defined by the parameters' own radial bounds and ``n_cells``; the
    transport engine must be built with the same cell count.

    Args:
        spec: Gradient parameters
        n_cells: Number of radial cells

    Returns:
        GradientField with arrays of length n_cells

    Example:
        >>> spec = GradientSpec("linear", 0.06, 0.07, 1000.0, 1200.0, 1e-3, 1e-3)
        >>> field = build_gradient(spec, 10)
        >>> field.rho[0] < field.rho[-1]
        True
    """
    r_min, r_max = spec.r_min_m, spec.r_max_m
    dr = (r_max - r_min) / n_cells
    r = r_min + (np.arange(n_cells) + 0.5) * dr
    xi = np.clip((r - r_min) / (r_max - r_min), 0.0, 1.0)

    if spec.type is GradientType.UNIFORM:
        rho = np.full(n_cells, spec.rho_top, dtype=np.float64)
        eta = np.full(n_cells, spec.eta_top, dtype=np.float64)

    elif spec.type is GradientType.LINEAR:
        rho = _lerp(spec.rho_top, spec.rho_bot, xi)
        eta = _lerp(spec.eta_top, spec.eta_bot, xi)

    elif spec.type is GradientType.POWER:
        p = 1.0 if spec.exponent is None else spec.exponent
        with np.errstate(divide="ignore", invalid="ignore"):
            t = xi**p
        rho = _lerp(spec.rho_top, spec.rho_bot, t)
        eta = _lerp(spec.eta_top, spec.eta_bot, t)

    else:
        # Two independent linear segments meeting at r_mid
        r_mid = spec.r_mid_m if spec.r_mid_m is not None else 0.5 * (r_min + r_max)
        mid_xi = float(np.clip((r_mid - r_min) / (r_max - r_min), 0.0, 1.0))

        if mid_xi > 0:
            xi_lower = np.minimum(xi / mid_xi, 1.0)
        else:
            xi_lower = np.zeros_like(xi)
        if mid_xi < 1:
            xi_upper = np.clip((xi - mid_xi) / (1.0 - mid_xi), 0.0, 1.0)
        else:
            xi_upper = np.ones_like(xi)

        rho_mid = (
            spec.rho_mid
            if spec.rho_mid is not None
            else _lerp(spec.rho_top, spec.rho_bot, mid_xi)
        )
        eta_mid = (
            spec.eta_mid
            if spec.eta_mid is not None
            else _lerp(spec.eta_top, spec.eta_bot, mid_xi)
        )

        lower = xi <= mid_xi
        rho = np.where(
            lower,
            _lerp(spec.rho_top, rho_mid, xi_lower),
            _lerp(rho_mid, spec.rho_bot, xi_upper),
        )
        eta = np.where(
            lower,
            _lerp(spec.eta_top, eta_mid, xi_lower),
            _lerp(eta_mid, spec.eta_bot, xi_upper),
        )

    return GradientField(rho=rho, eta=eta)


def validate_gradient() -> None:
    """
    Validation of grid construction and gradient shapes.

    Tests:
    1. Face spacing and cell-center midpoints
    2. Uniform profile is flat
    3. Linear profile matches analytic endpoints
    4. Two-step profile without explicit midpoint equals linear
    """
    grid = RadialGrid(0.06, 0.07, 50)

    # Test 1: Grid geometry
    assert np.allclose(np.diff(grid.r_faces), grid.dr), "Faces not uniformly spaced"
    assert np.allclose(
        grid.r, 0.5 * (grid.r_faces[:-1] + grid.r_faces[1:])
    ), "Cell centers are not face midpoints"

    # Test 2: Uniform
    uniform = build_gradient(
        GradientSpec("uniform", 0.06, 0.07, 1050.0, 1300.0, 1e-3, 2e-3), 50
    )
    assert np.all(uniform.rho == 1050.0), "Uniform density should ignore rho_bot"

    # Test 3: Linear endpoints
    linear = build_gradient(
        GradientSpec("linear", 0.06, 0.07, 1000.0, 1200.0, 1e-3, 1e-3), 50
    )
    xi = grid.normalized_position()
    assert np.allclose(linear.rho, 1000.0 + 200.0 * xi), "Linear density mismatch"

    # Test 4: Two-step defaults collapse to linear
    two_step = build_gradient(
        GradientSpec("two_step", 0.06, 0.07, 1000.0, 1200.0, 1e-3, 1e-3), 50
    )
    assert np.allclose(two_step.rho, linear.rho), "Default two-step should be linear"

    print("✓ All gradient validations passed")
