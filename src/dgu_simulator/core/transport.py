"""
Multi-Species Radial Transport Module
=====================================

This module implements sedimentation–diffusion transport of a polydisperse
particle population in a centrifugal field:
- Conservative finite-volume Lamm equation solver, one row per size bin
- Centered diffusion and upwind advection on cell faces
- Exact no-flux walls at the meniscus and cell base
- Adaptive stable time-step estimation and sub-stepped advance

THEORETICAL FOUNDATION
=====================

1. Lamm Equation (cylindrical coordinates):
   ∂c/∂t = -(1/r)·∂/∂r [ r·(v·c - D·∂c/∂r) ]

2. Conservative Variable:
   q = r·c

   The cylindrical divergence becomes a plain finite difference:
   q_i(t+dt) = q_i(t) - dt·(F_{i+1/2} - F_{i-1/2}) / dr

   With F = r_face·(v_face·c_upwind - D_face·Δc/dr) and F = 0 at both walls,
   Σ q_i·dr telescopes and is conserved exactly for any step size.

3. Explicit Stability Bounds:
   dt_diff = dr² / (2·D)     (diffusion number)
   dt_adv  = dr / |v|        (CFL)
   dt      = safety · min over all bins and cells

4. Isopycnic Radius:
   Δρ(r*) = 0, located by linear interpolation between cells

Small negative excursions of q (≈ -1e-10) are a first-order truncation
artifact and are tolerated; q is never clamped.

References:
- Schuck "Numerical solutions of the Lamm equation" Biophys. J. 75 (1998)
- LeVeque "Finite Volume Methods for Hyperbolic Problems" (2002)
- Patankar "Numerical Heat Transfer and Fluid Flow" (1980)

License: MIT
"""

import numpy as np
import logging
from typing import Callable, Optional
from dataclasses import dataclass
from scipy.interpolate import interp1d

from .gradient import RadialGrid, GradientField
from .hydrodynamics import MaterialParams, compute_hydrodynamic_coefficients

logger = logging.getLogger(__name__)


@dataclass
class AdvanceResult:
    """
    Outcome of a sub-stepped advance.

    ``advanced`` may be less than requested when the step budget runs out;
    callers must check it.

    Attributes:
        advanced: Simulated time actually advanced [s]
        steps: Number of explicit steps taken
    """

    advanced: float
    steps: int


@dataclass
class MassReport:
    """Per-bin mass Σ q·dr and the cross-bin total."""

    per_bin: np.ndarray
    total: float


@dataclass
class ConcentrationReport:
    """Per-bin concentration c = q/r, shape (K, n), and the per-cell total."""

    species: np.ndarray
    total: np.ndarray


@dataclass
class BandMoments:
    """Per-bin mass-weighted centroid radius [m] and radial standard deviation [m]."""

    centroid: np.ndarray
    width: np.ndarray


class MultiSpeciesTransportEngine:
    """
    Sedimentation–diffusion transport of K particle-size bins on a shared grid.

    Bins never interact. State is a single (K, n) array of conservative
    variables; D, v and Δρ are cached (K, n) arrays recomputed in full
    whenever the gradient, material, rotor speed or temperature changes.
    """

    # Default fraction of the explicit stability limit
    DEFAULT_SAFETY = 0.3

    def __init__(
        self,
        r_min: float,
        r_max: float,
        n_cells: int,
        omega: float,
        temperature: float,
        gradient: GradientField,
        bin_radii: np.ndarray,
        bin_weights: np.ndarray,
        material: MaterialParams,
    ):
        """
        Initialize transport engine.

        Args:
            r_min: Meniscus radius [m]
            r_max: Cell base radius [m]
            n_cells: Number of radial cells (must match the gradient)
            omega: Rotor angular speed [rad/s]
            temperature: Absolute temperature [K]
            gradient: Solvent density/viscosity on cell centers
            bin_radii: Particle radius per bin [m]
            bin_weights: Relative weight per bin (renormalized here)
            material: Core–shell particle parameters
        """
        self.grid = RadialGrid(r_min, r_max, n_cells)

        if gradient.n_cells != n_cells:
            raise ValueError(
                f"Gradient has {gradient.n_cells} cells, grid has {n_cells}"
            )
        if len(bin_radii) != len(bin_weights):
            raise ValueError(
                f"Expected {len(bin_radii)} bin weights, got {len(bin_weights)}"
            )

        self.omega = float(omega)
        self.temperature = float(temperature)
        self.material = material
        self.gradient = GradientField(rho=gradient.rho.copy(), eta=gradient.eta.copy())

        self.bin_radii = np.array(bin_radii, dtype=np.float64)
        self.weights = self._normalize_weights(bin_weights)

        n_bins = len(self.bin_radii)
        self.q = np.zeros((n_bins, n_cells))
        self.D = np.zeros((n_bins, n_cells))
        self.v = np.zeros((n_bins, n_cells))
        self.delta_rho = np.zeros((n_bins, n_cells))

        self._refresh_hydrodynamics()

        logger.info(
            f"Transport engine initialized: {n_bins} bins, {n_cells} cells, "
            f"r=[{r_min:.4f}, {r_max:.4f}] m, ω={self.omega:.1f} rad/s, "
            f"T={self.temperature:.2f} K"
        )

    @staticmethod
    def _normalize_weights(weights) -> np.ndarray:
        weights = np.array(weights, dtype=np.float64)
        total = weights.sum()
        if total == 0:
            return np.full(len(weights), 1.0 / len(weights))
        return weights / total

    # ------------------------------------------------------------------
    # Grid accessors
    # ------------------------------------------------------------------

    @property
    def r(self) -> np.ndarray:
        return self.grid.r

    @property
    def r_faces(self) -> np.ndarray:
        return self.grid.r_faces

    @property
    def dr(self) -> float:
        return self.grid.dr

    @property
    def n_bins(self) -> int:
        return self.q.shape[0]

    @property
    def n_cells(self) -> int:
        return self.q.shape[1]

    # ------------------------------------------------------------------
    # Derived coefficients
    # ------------------------------------------------------------------

    def _refresh_hydrodynamics(self) -> None:
        """Recompute D, v and Δρ from the current gradient, material, ω and T."""
        coeffs = compute_hydrodynamic_coefficients(
            self.bin_radii,
            self.grid.r,
            self.gradient.rho,
            self.gradient.eta,
            self.omega,
            self.temperature,
            self.material,
        )
        self.D = coeffs.D
        self.v = coeffs.v
        self.delta_rho = coeffs.delta_rho

        logger.debug(
            f"Hydrodynamics refreshed: D∈[{self.D.min():.3e}, {self.D.max():.3e}] m²/s, "
            f"|v|≤{np.abs(self.v).max():.3e} m/s"
        )

    def set_gradient(self, gradient: GradientField) -> None:
        """Replace the solvent profile and recompute coefficients."""
        if gradient.n_cells != self.n_cells:
            raise ValueError(
                f"Gradient has {gradient.n_cells} cells, grid has {self.n_cells}"
            )
        self.gradient = GradientField(rho=gradient.rho.copy(), eta=gradient.eta.copy())
        self._refresh_hydrodynamics()

    def set_material(self, material: MaterialParams) -> None:
        self.material = material
        self._refresh_hydrodynamics()

    def set_rotor_speed(self, omega: float) -> None:
        self.omega = float(omega)
        self._refresh_hydrodynamics()

    def set_temperature(self, temperature: float) -> None:
        self.temperature = float(temperature)
        self._refresh_hydrodynamics()

    # ------------------------------------------------------------------
    # Initial conditions
    # ------------------------------------------------------------------

    def set_initial_concentrations(self, profile: Callable[[float], float]) -> None:
        """
        Initialize every bin from a radial profile scaled by the bin weight.

        Negative and non-finite samples are floored to 0.

        Args:
            profile: Concentration as a function of radius [m]
        """
        samples = np.array([profile(float(r)) for r in self.grid.r], dtype=np.float64)
        raw = self.weights[:, np.newaxis] * samples[np.newaxis, :]
        c = np.where(np.isfinite(raw) & (raw > 0), raw, 0.0)
        self.q = self.grid.r[np.newaxis, :] * c

    def set_initial_top_load(self, cells: int = 1) -> None:
        """
        Load each bin's weighted mass uniformly into the innermost cells.

        Models a thin sample zone layered on top of the gradient. The mass of
        bin k equals its weight exactly.

        Args:
            cells: Width of the loaded band in cells (clamped to [1, n])
        """
        cell_count = max(1, min(int(cells), self.n_cells))
        share = self.weights / cell_count

        # Σ q·dr over the band = weight  →  q = share/dr
        self.q = np.zeros((self.n_bins, self.n_cells))
        self.q[:, :cell_count] = (share / self.grid.dr)[:, np.newaxis]

    # ------------------------------------------------------------------
    # Time integration
    # ------------------------------------------------------------------

    def compute_stable_dt(self, safety: float = DEFAULT_SAFETY) -> float:
        """
        Largest explicit step allowed by diffusion and CFL bounds, times safety.

        Returns ``safety`` (or 1 when safety ≤ 0) if no bound exists, so
        callers always receive a usable positive step.

        Args:
            safety: Fraction of the stability limit

        Returns:
            Time step [s]
        """
        dr = self.grid.dr
        bound = np.inf

        diffusive = np.isfinite(self.D) & (self.D > 0)
        if np.any(diffusive):
            bound = min(bound, float(np.min(dr * dr / (2.0 * self.D[diffusive]))))

        advective = np.isfinite(self.v) & (self.v != 0)
        if np.any(advective):
            bound = min(bound, float(np.min(dr / np.abs(self.v[advective]))))

        if not np.isfinite(bound):
            return safety if safety > 0 else 1.0

        return safety * bound

    def _face_fluxes(self, c: np.ndarray) -> np.ndarray:
        """Radius-weighted face fluxes, shape (K, n+1), zero at both walls."""
        n = self.n_cells
        flux = np.zeros((self.n_bins, n + 1))
        if n < 2:
            return flux

        c_left = c[:, :-1]
        c_right = c[:, 1:]

        d_face = 0.5 * (self.D[:, :-1] + self.D[:, 1:])
        v_face = 0.5 * (self.v[:, :-1] + self.v[:, 1:])
        d_face = np.where(np.isfinite(d_face), d_face, 0.0)
        v_face = np.where(np.isfinite(v_face), v_face, 0.0)

        diffusive = -d_face * (c_right - c_left) / self.grid.dr
        advective = np.where(v_face >= 0, v_face * c_left, v_face * c_right)

        flux[:, 1:n] = self.grid.r_faces[1:n] * (diffusive + advective)
        return flux

    def step(self, dt: float) -> None:
        """
        Single forward-Euler finite-volume step for every bin.

        All bins are updated from one snapshot of the prior state. Non-finite
        or non-positive ``dt`` is ignored.

        Args:
            dt: Time step [s]
        """
        if not np.isfinite(dt) or dt <= 0:
            return

        c = self.q / self.grid.r
        flux = self._face_fluxes(c)
        self.q = self.q - dt * (flux[:, 1:] - flux[:, :-1]) / self.grid.dr

    def advance_by(self, total_dt: float, max_steps: int) -> AdvanceResult:
        """
        Advance by ``total_dt`` using stable sub-steps, within a step budget.

        Because D and v are static between coefficient changes, the stable
        step is the same on every call and chunking the advance does not
        alter the trajectory.

        Args:
            total_dt: Requested simulated time [s]
            max_steps: Maximum number of explicit steps

        Returns:
            AdvanceResult; ``advanced < total_dt`` signals partial completion
        """
        advanced = 0.0
        steps = 0

        while advanced < total_dt and steps < max_steps:
            dt_stable = self.compute_stable_dt()
            if not np.isfinite(dt_stable) or dt_stable <= 0:
                break

            dt = min(dt_stable, total_dt - advanced)
            self.step(dt)
            advanced += dt
            steps += 1

        return AdvanceResult(advanced=advanced, steps=steps)

    # ------------------------------------------------------------------
    # Read projections
    # ------------------------------------------------------------------

    def compute_masses(self) -> MassReport:
        """Per-bin mass Σ q·dr and total."""
        per_bin = self.q.sum(axis=1) * self.grid.dr
        return MassReport(per_bin=per_bin, total=float(per_bin.sum()))

    def get_concentrations(self) -> ConcentrationReport:
        """Physical concentration c = q/r per bin and summed across bins."""
        species = self.q / self.grid.r
        return ConcentrationReport(species=species, total=species.sum(axis=0))

    def compute_band_moments(self) -> BandMoments:
        """
        Mass-weighted centroid and width of each bin's radial band.

        Bins with no positive mass report 0 for both.
        """
        r = self.grid.r
        mass = self.q * self.grid.dr
        total = mass.sum(axis=1)
        occupied = total > 0

        centroid = np.zeros(self.n_bins)
        width = np.zeros(self.n_bins)

        centroid[occupied] = (mass[occupied] @ r) / total[occupied]
        deviation = r[np.newaxis, :] - centroid[:, np.newaxis]
        variance = np.zeros(self.n_bins)
        variance[occupied] = (
            mass[occupied] * deviation[occupied] ** 2
        ).sum(axis=1) / total[occupied]
        width[occupied] = np.sqrt(np.maximum(variance[occupied], 0.0))

        return BandMoments(centroid=centroid, width=width)

    def concentration_at(self, radius: float) -> float:
        """
        Total concentration at an arbitrary radius.

        Linear between cell centers; end values are held outside them.
        """
        total = self.get_concentrations().total
        if self.n_cells == 1:
            return float(total[0])

        interpolator = interp1d(
            self.grid.r,
            total,
            kind="linear",
            bounds_error=False,
            fill_value=(total[0], total[-1]),
        )
        return float(interpolator(radius))

    def isopycnic_radius_for_bin(self, bin_index: int) -> Optional[float]:
        """
        Radius where bin ``bin_index`` is neutrally buoyant.

        Scans Δρ for the first exact zero or sign change between adjacent
        cells and interpolates linearly.

        Returns:
            Isopycnic radius [m], or None if Δρ never changes sign
        """
        deltas = self.delta_rho[bin_index]
        r = self.grid.r

        for i in range(1, len(deltas)):
            prev = deltas[i - 1]
            curr = deltas[i]
            if prev == 0:
                return float(r[i - 1])
            if curr == 0:
                return float(r[i])
            if (prev < 0 < curr) or (prev > 0 > curr):
                t = abs(prev) / (abs(prev) + abs(curr))
                return float(r[i - 1] * (1 - t) + r[i] * t)

        logger.debug(f"No isopycnic crossing for bin {bin_index}")
        return None

    def print_diagnostics(self) -> None:
        """Print detailed transport diagnostics."""
        masses = self.compute_masses()
        moments = self.compute_band_moments()
        print("Transport Engine Diagnostics")
        print("=" * 60)
        print(f"Grid: {self.n_cells} cells, dr = {self.grid.dr:.3e} m")
        print(f"Rotor: ω = {self.omega:.1f} rad/s, T = {self.temperature:.2f} K")
        print(f"Stable dt: {self.compute_stable_dt():.3e} s")
        print(f"Total mass: {masses.total:.6e}")
        print()
        print(
            f"{'Bin':<6} {'d(nm)':<10} {'Weight':<12} {'Centroid(m)':<14} {'Isopycnic(m)':<14}"
        )
        print("-" * 60)
        for k in range(self.n_bins):
            iso = self.isopycnic_radius_for_bin(k)
            iso_text = f"{iso:.5f}" if iso is not None else "-"
            print(
                f"{k:<6} {2e9 * self.bin_radii[k]:<10.2f} {self.weights[k]:<12.4e} "
                f"{moments.centroid[k]:<14.5f} {iso_text:<14}"
            )
        print("=" * 60)


def validate_transport() -> None:
    """
    Comprehensive validation of the transport engine.

    Tests:
    1. Weight renormalization
    2. Top-load mass equals bin weight
    3. Mass conservation under no-flux walls
    4. Stable step fallback for inert fields
    """
    n = 80
    gradient = GradientField(rho=np.full(n, 1050.0), eta=np.full(n, 1e-3))
    material = MaterialParams(rho_core=2200.0, rho_shell=1050.0, shell_thickness_m=2e-9)
    engine = MultiSpeciesTransportEngine(
        0.05, 0.065, n, 25000.0, 293.0, gradient,
        np.array([5e-9, 10e-9, 15e-9]), np.array([1.0, 2.0, 1.0]), material,
    )

    # Test 1: Weights renormalized
    assert abs(engine.weights.sum() - 1.0) < 1e-12, "Weights should sum to 1"

    # Test 2: Top load
    engine.set_initial_top_load(3)
    masses = engine.compute_masses()
    assert np.allclose(masses.per_bin, engine.weights), "Top-load mass mismatch"

    # Test 3: Conservation
    initial = masses.total
    dt = engine.compute_stable_dt()
    for _ in range(200):
        engine.step(dt)
    drift = abs(engine.compute_masses().total - initial) / initial
    assert drift < 1e-8, f"Mass drift {drift:.2e} under no-flux walls"

    # Test 4: Inert field
    inert = MultiSpeciesTransportEngine(
        0.05, 0.065, n, 0.0, 0.0, gradient,
        np.array([5e-9]), np.array([1.0]), material,
    )
    assert inert.compute_stable_dt(0.3) == 0.3, "Inert fallback should return safety"

    print("✓ All transport validations passed")
