"""Tests for forward simulation."""

import numpy as np
import pandas as pd
import pytest
from statsmodels.tsa.stattools import acf

from coco_ts import simulate
from coco_ts.exceptions import ConfigurationError, DomainError
from coco_ts.specs import ModelSpec
from coco_ts.transitions import PoissonAR1


class TestSimulateBasics:
    def test_shape_and_dtype(self):
        path = simulate(ModelSpec(), [2.0, 0.5], 300, seed=1)
        assert path.shape == (300,)
        assert path.dtype == np.int64
        assert path.min() >= 0

    def test_reproducible(self):
        a = simulate(ModelSpec(family="gp", order=2), [1.0, 0.2, 0.1, 0.2, 0.3], 100, seed=9)
        b = simulate(ModelSpec(family="gp", order=2), [1.0, 0.2, 0.1, 0.2, 0.3], 100, seed=9)
        np.testing.assert_array_equal(a, b)

    def test_different_seeds_differ(self):
        a = simulate(ModelSpec(), [2.0, 0.5], 100, seed=1)
        b = simulate(ModelSpec(), [2.0, 0.5], 100, seed=2)
        assert not np.array_equal(a, b)

    def test_accepts_generator_and_transition(self):
        path = simulate(PoissonAR1(), [1.0, 0.3], 20, seed=np.random.default_rng(0))
        assert path.size == 20

    def test_burn_in_keeps_length(self):
        assert simulate(ModelSpec(), [1.0, 0.3], 50, burn_in=25, seed=0).size == 50


class TestSimulateMoments:
    def test_poisson_first_order(self):
        path = simulate(ModelSpec(), [2.0, 0.5], 5000, seed=42)
        assert path.mean() == pytest.approx(4.0, abs=0.25)
        assert path.var() == pytest.approx(4.0, abs=0.6)
        assert acf(path, nlags=1, fft=False)[1] == pytest.approx(0.5, abs=0.08)

    def test_gp_first_order_is_overdispersed(self):
        path = simulate(ModelSpec(family="gp"), [1.0, 0.4, 0.4], 5000, seed=42)
        # Margin mean λ / ((1 − η)(1 − α)).
        assert path.mean() == pytest.approx(1.0 / (0.6 * 0.6), abs=0.25)
        assert path.var() > 1.5 * path.mean()


class TestSimulateCovariates:
    def _design(self, n):
        t = np.arange(n)
        return np.column_stack([np.ones(n), np.sin(2 * np.pi * t / 25)])

    def test_regression_path(self):
        x = self._design(400)
        path = simulate(ModelSpec(n_covariates=2), [0.3, 0.5, 0.8], 400, xreg=x, seed=4)
        assert path.size == 400
        # Peaks of the seasonal rate produce larger counts.
        high = path[x[:, 1] > 0.5].mean()
        low = path[x[:, 1] < -0.5].mean()
        assert high > low

    def test_accepts_dataframe(self):
        x = pd.DataFrame(self._design(30), columns=["const", "season"])
        path = simulate(ModelSpec(n_covariates=2), [0.3, 0.5, 0.8], 30, xreg=x, seed=4)
        assert path.size == 30

    def test_requires_covariates(self):
        with pytest.raises(ConfigurationError, match="requires 'xreg'"):
            simulate(ModelSpec(n_covariates=2), [0.3, 0.5, 0.8], 30)

    def test_rejects_burn_in(self):
        with pytest.raises(ConfigurationError, match="burn_in"):
            simulate(
                ModelSpec(n_covariates=2), [0.3, 0.5, 0.8], 30, xreg=self._design(30), burn_in=5
            )

    def test_row_count_must_match_length(self):
        with pytest.raises(DomainError, match="rows"):
            simulate(ModelSpec(n_covariates=2), [0.3, 0.5, 0.8], 30, xreg=self._design(31))

    def test_rejects_covariates_for_plain_model(self):
        with pytest.raises(ConfigurationError, match="without covariates"):
            simulate(ModelSpec(), [1.0, 0.5], 30, xreg=self._design(30))


class TestSimulateValidation:
    @pytest.mark.parametrize("length", [0, -5, 2.5, True])
    def test_rejects_length(self, length):
        with pytest.raises(ConfigurationError, match="length"):
            simulate(ModelSpec(), [1.0, 0.5], length)

    def test_rejects_negative_burn_in(self):
        with pytest.raises(ConfigurationError, match="burn_in"):
            simulate(ModelSpec(), [1.0, 0.5], 10, burn_in=-1)

    def test_rejects_inadmissible_parameters(self):
        with pytest.raises(DomainError):
            simulate(ModelSpec(order=2), [1.0, 0.5, 0.3, 0.3], 10)
