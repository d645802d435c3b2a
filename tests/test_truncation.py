"""Tests for the truncated-support summation helper."""

import numpy as np
import pytest
from scipy import stats

from coco_ts._truncation import DEFAULT_TOL, truncated_support
from coco_ts.exceptions import ConfigurationError, ConvergenceError


class TestTruncatedSupport:
    def test_stops_at_first_crossing(self):
        masses = truncated_support(lambda j: stats.poisson.pmf(j, 3.0))
        assert masses.sum() > 1 - DEFAULT_TOL
        assert masses[:-1].sum() <= 1 - DEFAULT_TOL

    def test_terms_in_order(self):
        masses = truncated_support(lambda j: stats.poisson.pmf(j, 1.0), tol=1e-3)
        np.testing.assert_allclose(masses, stats.poisson.pmf(np.arange(masses.size), 1.0))

    def test_looser_tolerance_gives_fewer_terms(self):
        term = lambda j: stats.poisson.pmf(j, 4.0)  # noqa: E731
        assert truncated_support(term, 1e-2).size < truncated_support(term, 1e-12).size

    def test_point_mass_at_zero(self):
        masses = truncated_support(lambda j: 1.0 if j == 0 else 0.0)
        np.testing.assert_array_equal(masses, [1.0])

    @pytest.mark.parametrize("tol", [0.0, 1.0, -0.5, 2.0])
    def test_rejects_tolerance_outside_unit_interval(self, tol):
        with pytest.raises(ConfigurationError, match="tol"):
            truncated_support(lambda j: 0.5, tol)

    def test_rejects_non_numeric_tolerance(self):
        with pytest.raises(ConfigurationError):
            truncated_support(lambda j: 0.5, "small")

    def test_improper_distribution(self):
        with pytest.raises(ConvergenceError, match="did not reach"):
            truncated_support(lambda j: 0.0, max_terms=50)
