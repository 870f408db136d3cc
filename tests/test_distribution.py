import numpy as np
import pytest

from dgu_simulator.core import (
    BimodalLognormalSpec,
    DiscreteEntry,
    DiscreteSpec,
    LognormalSpec,
    build_size_distribution,
    validate_distribution,
)
from dgu_simulator.core.configuration import default_size_distribution
from dgu_simulator.core.distribution import normalize_weights


ALL_SPECS = [
    LognormalSpec(d50_nm=7.82, g_sigma=1.5),
    LognormalSpec(d50_nm=20.0, g_sigma=1.2, min_diameter_nm=10.0, max_diameter_nm=40.0),
    BimodalLognormalSpec(18.0, 1.3, 0.6, 32.0, 1.5, 0.4),
    DiscreteSpec([DiscreteEntry(12.0, 1.0), DiscreteEntry(25.0, 0.5, width_nm=2.0)]),
]


@pytest.mark.parametrize("spec", ALL_SPECS, ids=lambda s: type(s).__name__)
@pytest.mark.parametrize("n_bins", [3, 17, 100])
def test_weights_sum_to_one(spec, n_bins):
    dist = build_size_distribution(spec, n_bins=n_bins)
    assert dist.n_bins == n_bins
    assert len(dist.weights) == n_bins
    assert dist.weights.sum() == pytest.approx(1.0, abs=1e-6)
    assert np.all(dist.weights >= 0)


def test_bin_count_floored_to_three():
    dist = build_size_distribution(LognormalSpec(20.0, 1.3), n_bins=1)
    assert dist.n_bins == 3


def test_default_span_and_radius_conversion():
    dist = build_size_distribution(LognormalSpec(20.0, 1.3), n_bins=5)
    assert np.allclose(dist.diameters_nm, np.linspace(5.0, 80.0, 5))
    assert dist.radii_m[0] == pytest.approx(5.0e-9 / 2)
    assert dist.radii_m[-1] == pytest.approx(80.0e-9 / 2)


def test_lognormal_weights_follow_density():
    dist = build_size_distribution(LognormalSpec(20.0, 1.4), n_bins=40)
    x = dist.diameters_nm
    sigma = np.log(1.4)
    pdf = np.exp(-((np.log(x) - np.log(20.0)) ** 2) / (2 * sigma**2)) / (
        x * sigma * np.sqrt(2 * np.pi)
    )
    assert np.allclose(dist.weights, pdf / pdf.sum())


def test_default_distribution_mode_near_median():
    spec = default_size_distribution()
    dist = build_size_distribution(spec, n_bins=100)
    assert dist.n_bins == 100
    closest = dist.diameters_nm[np.argmin(np.abs(dist.diameters_nm - spec.d50_nm))]
    assert closest < 2 * spec.d50_nm
    assert dist.weights.sum() == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("spec", ALL_SPECS[:3], ids=lambda s: type(s).__name__)
def test_lognormal_mode_within_span(spec):
    dist = build_size_distribution(spec, n_bins=60)
    d = dist.diameters_nm
    assert d.min() <= dist.mode_diameter_nm <= d.max()


def test_bimodal_resolves_both_modes():
    spec = BimodalLognormalSpec(10.0, 1.1, 0.5, 40.0, 1.1, 0.5)
    dist = build_size_distribution(spec, n_bins=200)
    d = dist.diameters_nm
    assert d[0] == pytest.approx(2.5)
    assert d[-1] == pytest.approx(160.0)
    low = dist.weights[d < 20.0]
    high = dist.weights[d >= 20.0]
    assert low.max() > 0
    assert high.max() > 0
    assert abs(d[d < 20.0][np.argmax(low)] - 10.0) < 2.0
    assert abs(d[d >= 20.0][np.argmax(high)] - 40.0) < 4.0


def test_discrete_peaks_land_on_entries():
    spec = DiscreteSpec([DiscreteEntry(10.0, 1.0, 1.0), DiscreteEntry(30.0, 3.0, 1.0)])
    dist = build_size_distribution(spec, n_bins=81)
    d = dist.diameters_nm
    assert d[0] == pytest.approx(10.0)
    assert d[-1] == pytest.approx(30.0)
    assert dist.mode_diameter_nm == pytest.approx(30.0)
    # Equal widths: peak heights scale with entry weights
    assert dist.weights[-1] / dist.weights[0] == pytest.approx(3.0, rel=1e-6)


def test_discrete_ignores_entries_beyond_five():
    entries = [DiscreteEntry(10.0 + 2.0 * i, 1.0) for i in range(5)]
    entries.append(DiscreteEntry(100.0, 50.0))
    dist = build_size_distribution(DiscreteSpec(entries), n_bins=20)
    assert dist.diameters_nm.max() == pytest.approx(18.0)


def test_discrete_single_entry_falls_back_to_uniform():
    # Zero span gives a zero default width, so every contribution is skipped
    dist = build_size_distribution(DiscreteSpec([DiscreteEntry(26.0, 1.0)]), n_bins=1)
    assert dist.n_bins == 3
    assert np.allclose(dist.diameters_nm, 26.0)
    assert np.allclose(dist.weights, 1.0 / 3.0)


def test_discrete_without_entries_uses_default_axis():
    dist = build_size_distribution(DiscreteSpec([]), n_bins=4)
    assert dist.diameters_nm[0] == pytest.approx(1.0)
    assert dist.diameters_nm[-1] == pytest.approx(10.0)
    assert np.allclose(dist.weights, 0.25)


def test_degenerate_spread_falls_back_to_uniform():
    dist = build_size_distribution(LognormalSpec(20.0, 1.0), n_bins=6)
    assert np.allclose(dist.weights, 1.0 / 6.0)


def test_diameters_clamped_to_bounds():
    spec = DiscreteSpec(
        [DiscreteEntry(5.0, 1.0), DiscreteEntry(50.0, 1.0)],
        min_diameter_nm=20.0,
        max_diameter_nm=30.0,
    )
    dist = build_size_distribution(spec, n_bins=10)
    assert dist.diameters_nm.min() >= 20.0 - 1e-9
    assert dist.diameters_nm.max() <= 30.0 + 1e-9


class TestNormalizeWeights:
    def test_floors_invalid_values(self):
        weights = normalize_weights(np.array([1.0, -2.0, np.nan, np.inf, 3.0]))
        assert np.allclose(weights, [0.25, 0.0, 0.0, 0.0, 0.75])

    def test_all_zero_becomes_uniform(self):
        assert np.allclose(normalize_weights(np.zeros(4)), 0.25)

    def test_input_not_mutated(self):
        raw = np.array([1.0, -1.0])
        normalize_weights(raw)
        assert raw[1] == -1.0


def test_validate_distribution_runs(capsys):
    validate_distribution()
    assert "distribution validations passed" in capsys.readouterr().out


class TestSpecValidate:
    @pytest.mark.parametrize("spec", ALL_SPECS, ids=lambda s: type(s).__name__)
    def test_well_formed_specs_pass(self, spec):
        spec.validate()

    @pytest.mark.parametrize(
        "spec",
        [
            LognormalSpec(d50_nm=0.0, g_sigma=1.5),
            LognormalSpec(d50_nm=10.0, g_sigma=1.0),
            LognormalSpec(d50_nm=10.0, g_sigma=1.5, min_diameter_nm=20.0, max_diameter_nm=5.0),
            LognormalSpec(d50_nm=10.0, g_sigma=1.5, min_diameter_nm=-1.0),
            BimodalLognormalSpec(18.0, 0.9, 0.6, 32.0, 1.5, 0.4),
            BimodalLognormalSpec(18.0, 1.3, -0.1, 32.0, 1.5, 0.4),
            BimodalLognormalSpec(18.0, 1.3, 0.0, 32.0, 1.5, 0.0),
            DiscreteSpec([DiscreteEntry(0.0, 1.0)]),
            DiscreteSpec([DiscreteEntry(10.0, -1.0)]),
            DiscreteSpec([DiscreteEntry(10.0, 1.0, width_nm=0.0)]),
            DiscreteSpec([DiscreteEntry(10.0, 1.0)], min_diameter_nm=12.0, max_diameter_nm=12.0),
        ],
    )
    def test_rejects_malformed_specs(self, spec):
        with pytest.raises(ValueError):
            spec.validate()

    def test_extra_peaks_are_reported(self, caplog):
        spec = DiscreteSpec([DiscreteEntry(5.0 + i, 1.0) for i in range(7)])
        spec.validate()
        assert "only the first 5 are used" in caplog.text

    def test_builder_does_not_validate(self):
        dist = build_size_distribution(LognormalSpec(d50_nm=10.0, g_sigma=1.0), n_bins=5)
        assert dist.weights.sum() == pytest.approx(1.0)
