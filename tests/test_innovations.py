"""Tests for the Poisson and Generalized-Poisson innovation laws."""

import numpy as np
import pytest
from scipy import stats

from coco_ts.exceptions import ConfigurationError, DomainError
from coco_ts.innovations import (
    GeneralizedPoissonLaw,
    InnovationLaw,
    PoissonLaw,
    canonical_family,
    resolve_law,
)


class TestPoissonLaw:
    law = PoissonLaw()

    def test_matches_scipy(self):
        k = np.arange(10)
        np.testing.assert_allclose(self.law.pmf(k, 2.5), stats.poisson.pmf(k, 2.5))

    def test_zero_outside_support(self):
        assert self.law.pmf(-1, 2.0) == 0.0
        assert self.law.pmf(2.5, 2.0) == 0.0
        assert self.law.cdf(-1, 2.0) == 0.0

    def test_scalar_result_is_float(self):
        assert isinstance(self.law.pmf(3, 1.0), float)

    def test_rejects_dispersion(self):
        with pytest.raises(DomainError, match="no dispersion"):
            self.law.pmf(1, 2.0, 0.2)

    @pytest.mark.parametrize("rate", [0.0, -1.0, np.inf, np.nan])
    def test_rejects_bad_rate(self, rate):
        with pytest.raises(DomainError):
            self.law.pmf(1, rate)

    def test_is_innovation_law(self):
        assert isinstance(self.law, InnovationLaw)


class TestGeneralizedPoissonLaw:
    law = GeneralizedPoissonLaw()

    def test_reduces_to_poisson_when_eta_zero(self):
        k = np.arange(15)
        np.testing.assert_allclose(
            self.law.pmf(k, 3.0, 0.0), stats.poisson.pmf(k, 3.0), rtol=1e-12
        )

    def test_masses_sum_to_one(self):
        total = np.sum(self.law.pmf(np.arange(300), 2.0, 0.3))
        assert total == pytest.approx(1.0, abs=1e-10)

    def test_mean_and_variance(self):
        k = np.arange(400)
        p = self.law.pmf(k, 2.0, 0.3)
        mean = np.sum(k * p)
        var = np.sum((k - mean) ** 2 * p)
        assert mean == pytest.approx(2.0 / 0.7, rel=1e-8)
        assert var == pytest.approx(2.0 / 0.7**3, rel=1e-6)

    def test_log_pmf_closed_form(self):
        lam, eta, k = 1.5, 0.2, 4
        expected = (
            np.log(lam)
            + (k - 1) * np.log(lam + eta * k)
            - lam
            - eta * k
            - np.log(24.0)
        )
        assert self.law.logpmf(k, lam, eta) == pytest.approx(expected)

    def test_cdf_is_cumulative_pmf(self):
        expected = np.cumsum(self.law.pmf(np.arange(8), 1.2, 0.4))
        np.testing.assert_allclose(self.law.cdf(np.arange(8), 1.2, 0.4), expected)

    def test_cdf_zero_below_support(self):
        assert self.law.cdf(-3, 1.0, 0.1) == 0.0

    def test_cdf_broadcasts_over_rates(self):
        out = self.law.cdf(2, np.array([0.5, 1.0, 2.0]), 0.1)
        assert out.shape == (3,)
        assert np.all(np.diff(out) < 0)

    def test_outside_support_has_zero_mass(self):
        assert self.law.pmf(-2, 1.0, 0.3) == 0.0
        assert self.law.pmf(1.5, 1.0, 0.3) == 0.0
        assert self.law.logpmf(-1, 1.0, 0.3) == -np.inf

    @pytest.mark.parametrize("eta", [-0.1, 1.0, 1.5, np.nan])
    def test_rejects_bad_dispersion(self, eta):
        with pytest.raises(DomainError, match="Dispersion"):
            self.law.pmf(1, 1.0, eta)

    def test_sampling_mean(self):
        rng = np.random.default_rng(42)
        draws = self.law.rvs(2.0, 0.3, rng, size=20_000)
        assert draws.shape == (20_000,)
        assert draws.min() >= 0
        assert draws.mean() == pytest.approx(2.0 / 0.7, abs=0.1)

    def test_sampling_reproducible(self):
        a = self.law.rvs(1.0, 0.2, np.random.default_rng(7), size=50)
        b = self.law.rvs(1.0, 0.2, np.random.default_rng(7), size=50)
        np.testing.assert_array_equal(a, b)

    def test_sampling_per_element_rates(self):
        rng = np.random.default_rng(0)
        draws = self.law.rvs(np.array([0.5, 5.0, 50.0]), 0.1, rng)
        assert draws.shape == (3,)
        assert draws.dtype == np.int64


class TestRegistry:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("poisson", "poisson"),
            ("Poisson", "poisson"),
            ("gp", "gp"),
            ("GP", "gp"),
            ("generalized_poisson", "gp"),
            ("generalized-poisson", "gp"),
        ],
    )
    def test_aliases(self, name, expected):
        assert canonical_family(name) == expected

    def test_unknown_family(self):
        with pytest.raises(ConfigurationError, match="Unknown innovation family"):
            canonical_family("negbin")

    def test_resolve_law_types(self):
        assert isinstance(resolve_law("poisson"), PoissonLaw)
        assert isinstance(resolve_law("gp"), GeneralizedPoissonLaw)

    def test_resolve_law_passthrough(self):
        law = GeneralizedPoissonLaw()
        assert resolve_law(law) is law
