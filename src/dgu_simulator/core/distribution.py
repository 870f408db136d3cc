"""
Particle Size Distribution Module
=================================

This module discretizes a polydisperse particle population into a finite set
of representative size bins:
- Single-mode lognormal distributions
- Bimodal lognormal mixtures
- Discrete populations (up to 5 Gaussian-broadened peaks)

THEORETICAL FOUNDATION
=====================

1. Lognormal Number Density:
   p(x) = 1/(x·σ·√(2π)) · exp[-(ln x - ln d₅₀)² / (2σ²)]

   Where:
   - d₅₀: Median diameter [nm]
   - σ = ln(σ_g): Geometric spread (σ_g > 1)

2. Discretized Weights:
   w_k = p(x_k) / Σ p(x_j)

   Bin diameters x_k are linearly spaced, so the bin width is carried
   implicitly by the spacing. This is a discretized-PDF weighting, not an
   integral over bin edges.

3. Gaussian Peak Broadening (discrete populations):
   σ_peak = FWHM / 2.355

The builders never fail on degenerate input: non-finite or non-positive
weights are floored to zero and an all-zero population falls back to uniform
weights.

References:
- Hinds "Aerosol Technology" (2nd ed.), Ch. 4
- Allen "Particle Size Measurement" (5th ed.)

License: MIT
"""

import numpy as np
import logging
from typing import List, Optional, Union
from dataclasses import dataclass, field
from scipy import stats

logger = logging.getLogger(__name__)


# Nanometer diameter -> meter radius
NM_TO_M = 1e-9

# FWHM = 2·√(2·ln 2)·σ
FWHM_PER_SIGMA = 2.355

MIN_BINS = 3
MAX_DISCRETE_ENTRIES = 5


def _validate_diameter_bounds(min_nm: Optional[float], max_nm: Optional[float]) -> None:
    for bound in (min_nm, max_nm):
        if bound is not None and not bound > 0:
            raise ValueError(f"Diameter bounds must be positive, got {bound} nm")
    if min_nm is not None and max_nm is not None and min_nm >= max_nm:
        raise ValueError(f"Invalid diameter span: [{min_nm}, {max_nm}] nm")


@dataclass
class LognormalSpec:
    """
    Single-mode lognormal size distribution.

    Attributes:
        d50_nm: Median diameter [nm]
        g_sigma: Geometric standard deviation (> 1)
        min_diameter_nm: Lower end of the bin axis (default 0.25·d50)
        max_diameter_nm: Upper end of the bin axis (default 4·d50)
    """

    d50_nm: float
    g_sigma: float
    min_diameter_nm: Optional[float] = None
    max_diameter_nm: Optional[float] = None

    def validate(self) -> None:
        """Validate median and spread."""
        if not self.d50_nm > 0:
            raise ValueError(f"Median diameter must be positive, got {self.d50_nm} nm")
        if not self.g_sigma > 1:
            raise ValueError(f"Geometric spread must exceed 1, got {self.g_sigma}")
        _validate_diameter_bounds(self.min_diameter_nm, self.max_diameter_nm)


@dataclass
class BimodalLognormalSpec:
    """
    Weighted mixture of two lognormal modes.

    Attributes:
        d50_1_nm, g_sigma1, weight1: First mode
        d50_2_nm, g_sigma2, weight2: Second mode
        min_diameter_nm: Lower end of the bin axis
        max_diameter_nm: Upper end of the bin axis
    """

    d50_1_nm: float
    g_sigma1: float
    weight1: float
    d50_2_nm: float
    g_sigma2: float
    weight2: float
    min_diameter_nm: Optional[float] = None
    max_diameter_nm: Optional[float] = None

    def validate(self) -> None:
        """Validate both modes and their mixing weights."""
        for d50, g_sigma in ((self.d50_1_nm, self.g_sigma1), (self.d50_2_nm, self.g_sigma2)):
            if not d50 > 0:
                raise ValueError(f"Median diameter must be positive, got {d50} nm")
            if not g_sigma > 1:
                raise ValueError(f"Geometric spread must exceed 1, got {g_sigma}")
        if self.weight1 < 0 or self.weight2 < 0 or self.weight1 + self.weight2 <= 0:
            raise ValueError(
                f"Mode weights must be non-negative with a positive sum: "
                f"{self.weight1}, {self.weight2}"
            )
        _validate_diameter_bounds(self.min_diameter_nm, self.max_diameter_nm)


@dataclass
class DiscreteEntry:
    """One population peak: diameter [nm], relative weight, optional FWHM [nm]."""

    diameter_nm: float
    weight: float
    width_nm: Optional[float] = None


@dataclass
class DiscreteSpec:
    """
    Discrete population of up to 5 peaks.

    Entries beyond the fifth are ignored.
    """

    entries: List[DiscreteEntry] = field(default_factory=list)
    min_diameter_nm: Optional[float] = None
    max_diameter_nm: Optional[float] = None

    def validate(self) -> None:
        """Validate peak positions, weights and widths."""
        for entry in self.entries:
            if not entry.diameter_nm > 0:
                raise ValueError(f"Peak diameter must be positive, got {entry.diameter_nm} nm")
            if not entry.weight >= 0:
                raise ValueError(f"Peak weight must be non-negative, got {entry.weight}")
            if entry.width_nm is not None and not entry.width_nm > 0:
                raise ValueError(f"Peak width must be positive, got {entry.width_nm} nm")
        if len(self.entries) > MAX_DISCRETE_ENTRIES:
            logger.warning(
                f"{len(self.entries)} peaks given, only the first "
                f"{MAX_DISCRETE_ENTRIES} are used"
            )
        _validate_diameter_bounds(self.min_diameter_nm, self.max_diameter_nm)


DistributionSpec = Union[LognormalSpec, BimodalLognormalSpec, DiscreteSpec]


@dataclass
class SizeDistribution:
    """
    Representative particle radii with normalized weights.

    Attributes:
        radii_m: Particle radius per bin [m]
        weights: Relative weight per bin (sums to 1)
    """

    radii_m: np.ndarray
    weights: np.ndarray

    @property
    def n_bins(self) -> int:
        return len(self.radii_m)

    @property
    def diameters_nm(self) -> np.ndarray:
        return 2.0 * self.radii_m / NM_TO_M

    @property
    def mode_diameter_nm(self) -> float:
        """Diameter of the most heavily weighted bin [nm]."""
        return float(self.diameters_nm[int(np.argmax(self.weights))])


def normalize_weights(weights: np.ndarray) -> np.ndarray:
    """
    Floor invalid weights to zero and normalize to unit sum.

    Falls back to uniform weights when nothing positive remains.
    """
    weights = np.asarray(weights, dtype=np.float64).copy()
    valid = np.isfinite(weights) & (weights > 0)
    weights[~valid] = 0.0

    total = weights.sum()
    if total == 0:
        return np.full(len(weights), 1.0 / len(weights))

    return weights / total


def _lognormal_pdf(x: np.ndarray, median: float, g_sigma: float) -> np.ndarray:
    # Closed-form lognormal density with σ = ln(σ_g), μ = ln(median)
    with np.errstate(divide="ignore", invalid="ignore"):
        pdf = stats.lognorm.pdf(x, s=np.log(g_sigma), scale=median)
    return np.where(np.isfinite(pdf), pdf, 0.0)


def _build_lognormal(spec, n_bins: int):
    if isinstance(spec, LognormalSpec):
        base_min = spec.d50_nm * 0.25
        base_max = spec.d50_nm * 4.0
    else:
        base_min = min(spec.d50_1_nm, spec.d50_2_nm) * 0.25
        base_max = max(spec.d50_1_nm, spec.d50_2_nm) * 4.0

    d_min = spec.min_diameter_nm if spec.min_diameter_nm is not None else base_min
    d_max = spec.max_diameter_nm if spec.max_diameter_nm is not None else base_max
    diameters_nm = np.linspace(d_min, d_max, n_bins)

    if isinstance(spec, LognormalSpec):
        weights = _lognormal_pdf(diameters_nm, spec.d50_nm, spec.g_sigma)
    else:
        p1 = _lognormal_pdf(diameters_nm, spec.d50_1_nm, spec.g_sigma1) * spec.weight1
        p2 = _lognormal_pdf(diameters_nm, spec.d50_2_nm, spec.g_sigma2) * spec.weight2
        weights = p1 + p2

    return diameters_nm, normalize_weights(weights)


def _build_discrete(spec: DiscreteSpec, n_bins: int):
    entries = spec.entries[:MAX_DISCRETE_ENTRIES]

    # Axis spans the explicit bounds widened to cover every entry
    d_min = spec.min_diameter_nm
    d_max = spec.max_diameter_nm
    for entry in entries:
        d_min = entry.diameter_nm if d_min is None else min(d_min, entry.diameter_nm)
        d_max = entry.diameter_nm if d_max is None else max(d_max, entry.diameter_nm)
    if d_min is None or d_max is None:
        d_min, d_max = 1.0, 10.0

    diameters_nm = np.linspace(d_min, d_max, n_bins)
    weights = np.zeros(n_bins)
    width_default = (d_max - d_min) * 0.02

    for entry in entries:
        width = entry.width_nm if entry.width_nm is not None else width_default
        sigma = width / FWHM_PER_SIGMA
        with np.errstate(divide="ignore", invalid="ignore"):
            contribution = entry.weight * stats.norm.pdf(
                diameters_nm, loc=entry.diameter_nm, scale=sigma
            )
        weights += np.where(np.isfinite(contribution), contribution, 0.0)

    return diameters_nm, normalize_weights(weights)


def build_size_distribution(spec: DistributionSpec, n_bins: int) -> SizeDistribution:
    """
    Build bin radii [m] and normalized weights from a parametric distribution.

    Args:
        spec: LognormalSpec, BimodalLognormalSpec or DiscreteSpec
        n_bins: Requested bin count (floored to 3)

    Returns:
        SizeDistribution with weights summing to 1

    Example:
        >>> dist = build_size_distribution(LognormalSpec(20.0, 1.3), n_bins=50)
        >>> abs(dist.weights.sum() - 1.0) < 1e-12
        True
    """
    n_bins = max(MIN_BINS, int(n_bins))

    if isinstance(spec, (LognormalSpec, BimodalLognormalSpec)):
        diameters_nm, weights = _build_lognormal(spec, n_bins)
    else:
        diameters_nm, weights = _build_discrete(spec, n_bins)

    if spec.min_diameter_nm is not None:
        diameters_nm = np.maximum(diameters_nm, spec.min_diameter_nm)
    if spec.max_diameter_nm is not None:
        diameters_nm = np.minimum(diameters_nm, spec.max_diameter_nm)

    radii_m = diameters_nm * NM_TO_M / 2.0

    return SizeDistribution(radii_m=radii_m, weights=weights)


def validate_distribution() -> None:
    """
    Validation of size distribution builders.

    Tests:
    1. Weights sum to one for every distribution type
    2. Lognormal mode lies inside the bin span
    3. Degenerate spread falls back to uniform weights
    """
    specs = [
        LognormalSpec(d50_nm=20.0, g_sigma=1.3),
        BimodalLognormalSpec(18.0, 1.3, 0.6, 32.0, 1.5, 0.4),
        DiscreteSpec([DiscreteEntry(10.0, 1.0), DiscreteEntry(30.0, 2.0, 3.0)]),
    ]

    # Test 1: Normalization
    for spec in specs:
        dist = build_size_distribution(spec, n_bins=40)
        assert (
            abs(dist.weights.sum() - 1.0) < 1e-9
        ), f"{type(spec).__name__} weights sum to {dist.weights.sum()}"

    # Test 2: Mode within span
    dist = build_size_distribution(specs[0], n_bins=40)
    d = dist.diameters_nm
    assert d.min() <= dist.mode_diameter_nm <= d.max(), "Mode outside bin span"

    # Test 3: σ_g = 1 is a zero-width lognormal
    flat = build_size_distribution(LognormalSpec(d50_nm=20.0, g_sigma=1.0), n_bins=5)
    assert np.allclose(flat.weights, 0.2), "Degenerate spread should be uniform"

    print("✓ All distribution validations passed")
