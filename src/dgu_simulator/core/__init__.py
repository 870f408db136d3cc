"""
Centrifugation Physics Core Package
===================================

Radial transport of polydisperse particles in a centrifugal field
(analytical / density-gradient ultracentrifugation).

This package provides implementations of:
- Gradient: Radial grid and solvent density/viscosity profiles
- Distribution: Particle size bins from parametric distributions
- Hydrodynamics: Core–shell density, Stokes–Einstein diffusion, drift
- Transport: Multi-species conservative Lamm equation solver
- Clock: Wall-clock to simulated-time driver with a step budget

USAGE EXAMPLE
============

```python
from dgu_simulator.core import (
    GradientSpec, LognormalSpec, MaterialParams,
    MultiSpeciesTransportEngine, build_gradient, build_size_distribution,
)

gradient_spec = GradientSpec(
    type="linear",
    r_min_m=0.0674, r_max_m=0.1531,   # m
    rho_top=780.0, rho_bot=1426.0,    # kg/m³
    eta_top=7.51e-4, eta_bot=6.94e-4, # Pa·s
)
gradient = build_gradient(gradient_spec, 180)
dist = build_size_distribution(LognormalSpec(d50_nm=7.82, g_sigma=1.5), n_bins=100)

engine = MultiSpeciesTransportEngine(
    r_min=0.0674, r_max=0.1531, n_cells=180,
    omega=3141.6,          # rad/s
    temperature=274.15,    # K
    gradient=gradient,
    bin_radii=dist.radii_m,
    bin_weights=dist.weights,
    material=MaterialParams(rho_core=2330.0, rho_shell=1050.0, shell_thickness_m=1.66e-9),
)
engine.set_initial_top_load(cells=2)

# Advance one hour of centrifugation, at most 100000 explicit steps
result = engine.advance_by(3600.0, max_steps=100000)
if result.advanced < 3600.0:
    ...  # step budget exhausted; call again
```

PURE PHYSICS ARCHITECTURE
=========================

WHAT THIS PACKAGE DOES:
- Builds solvent gradients and particle size bins from small parameter records
- Derives diffusion and drift coefficients per size bin and radial cell
- Advances concentration profiles with exact discrete mass conservation
- Reports masses, concentrations, band positions and isopycnic radii

WHAT THIS PACKAGE DOES NOT DO:
- NO rendering or unit formatting
- NO implicit time integration or adaptive meshes
- NO persistence of simulation state

ERROR POLICY
============

Malformed physical input never raises inside the engine; it degrades:
- All weights ≤ 0 → uniform weights
- Zero friction or volume → D, v, Δρ = 0
- Non-finite intermediates → 0
- Step budget exhausted → AdvanceResult.advanced < requested
- No density crossing → isopycnic radius is None

Structural mistakes (mismatched array lengths, empty grids) raise ValueError.

NUMERICAL INTEGRATION
=====================

Explicit forward Euler on the conservative variable q = r·c:
- Centered diffusion, upwind advection
- Zero flux at both walls
- dt = 0.3 · min(dr²/2D, dr/|v|) by default

Because coefficients are static between gradient changes, advancing by T in
one call matches advancing by T in many smaller calls.

VALIDATION STATUS
================

Run validation: call `run_all_validations()` or `python -m dgu_simulator --validate`

License: MIT
"""

# Version
__version__ = "1.0.0"

# Grid and solvent gradient
from .gradient import (
    RadialGrid,
    GradientType,
    GradientSpec,
    GradientField,
    build_gradient,
    validate_gradient,
)

# Particle size distributions
from .distribution import (
    LognormalSpec,
    BimodalLognormalSpec,
    DiscreteEntry,
    DiscreteSpec,
    SizeDistribution,
    build_size_distribution,
    validate_distribution,
)

# Hydrodynamic coefficients
from .hydrodynamics import (
    K_BOLTZMANN,
    MaterialParams,
    HydrodynamicCoefficients,
    effective_density,
    compute_hydrodynamic_coefficients,
    validate_hydrodynamics,
)

# Transport engine
from .transport import (
    MultiSpeciesTransportEngine,
    AdvanceResult,
    MassReport,
    ConcentrationReport,
    BandMoments,
    validate_transport,
)

# Driving loop support
from .clock import TimeScaledClock
from .configuration import (
    TIME_SCALES,
    RotorParams,
    SimulationConfiguration,
    build_engine,
)

__all__ = [
    # Main engine
    "MultiSpeciesTransportEngine",
    "AdvanceResult",
    "MassReport",
    "ConcentrationReport",
    "BandMoments",
    # Gradient
    "RadialGrid",
    "GradientType",
    "GradientSpec",
    "GradientField",
    "build_gradient",
    # Distribution
    "LognormalSpec",
    "BimodalLognormalSpec",
    "DiscreteEntry",
    "DiscreteSpec",
    "SizeDistribution",
    "build_size_distribution",
    # Hydrodynamics
    "K_BOLTZMANN",
    "MaterialParams",
    "HydrodynamicCoefficients",
    "effective_density",
    "compute_hydrodynamic_coefficients",
    # Driving loop
    "TimeScaledClock",
    "TIME_SCALES",
    "RotorParams",
    "SimulationConfiguration",
    "build_engine",
    # Validation functions
    "validate_gradient",
    "validate_distribution",
    "validate_hydrodynamics",
    "validate_transport",
    "run_all_validations",
]


def run_all_validations():
    """
    Run all physics validation checks.

    This should be run after any code changes to ensure
    physics correctness is maintained.
    """
    print("Running Centrifugation Physics Validation Suite")
    print("=" * 70)

    print("\n1. Gradient...")
    validate_gradient()

    print("\n2. Size distribution...")
    validate_distribution()

    print("\n3. Hydrodynamics...")
    validate_hydrodynamics()

    print("\n4. Transport...")
    validate_transport()

    print("\n" + "=" * 70)
    print("ALL VALIDATIONS PASSED ✓")
    print("=" * 70)
