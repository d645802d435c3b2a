"""Edge cases across the public API."""

import warnings

import numpy as np
import pytest

from coco_ts import (
    ModelSpec,
    PoissonAR1,
    bootstrap_acf,
    fit,
    log_likelihood,
    score,
    simulate,
)
from coco_ts.exceptions import CocoError, ConfigurationError, ConvergenceError, DomainError
from coco_ts.fitting import _interior_mask


class TestExceptionHierarchy:
    def test_value_error_compatible(self):
        assert issubclass(DomainError, ValueError)
        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(ConvergenceError, RuntimeError)
        for exc in (DomainError, ConfigurationError, ConvergenceError):
            assert issubclass(exc, CocoError)

    def test_convergence_error_payload(self):
        err = ConvergenceError("stuck", best_params=[1.0, 0.5], n_iter=3, optimizer_message="x")
        assert isinstance(err.best_params, np.ndarray)
        assert err.n_iter == 3
        assert err.optimizer_message == "x"


class TestSmallInputs:
    def test_minimal_series_likelihood(self):
        # One transition only.
        value = log_likelihood(ModelSpec(), [2, 1], [1.0, 0.5])
        assert value == pytest.approx(np.log(PoissonAR1().pmf(1, 2, [1.0, 0.5])))

    def test_single_observation_rejected(self):
        with pytest.raises(DomainError, match="more than 1"):
            fit([3])

    def test_all_zero_history(self):
        assert PoissonAR1().pmf(0, 0, [2.0, 0.9]) == pytest.approx(np.exp(-2.0))

    def test_large_counts(self):
        p = PoissonAR1().pmf(120, 100, [20.0, 0.9])
        assert 0.0 < p < 1.0
        masses = PoissonAR1().support(100, [20.0, 0.9])
        assert masses.sum() == pytest.approx(1.0, abs=1e-9)

    def test_simulate_length_one(self):
        assert simulate(ModelSpec(order=2), [1.0, 0.2, 0.2, 0.2], 1, seed=0).size == 1


class TestBoundaryFits:
    def test_gp_on_equidispersed_data(self):
        # Poisson data drives eta onto its lower bound; only the eta row
        # of the covariance is undefined.
        series = simulate(ModelSpec(), [2.0, 0.3], 400, seed=19)
        with pytest.warns(UserWarning, match="boundary"):
            fitted = fit(series, "gp")
        assert fitted.params[2] < 1e-4
        se = fitted.std_errors
        assert np.all(np.isfinite(se[:2]))
        assert np.all(se[:2] > 0)
        assert np.isnan(se[2])
        assert np.all(np.isnan(fitted.covariance[2]))
        assert np.all(np.isfinite(fitted.covariance[:2, :2]))

    def test_interior_mask_flags_bound_coordinates(self):
        spec = ModelSpec(family="gp")
        free = _interior_mask(spec, np.array([2.0, 0.3, 0.0]))
        assert free.tolist() == [True, True, False]
        free = _interior_mask(spec, np.array([2.0, 1.0 - 1e-6, 0.2]))
        assert free.tolist() == [True, False, True]

    def test_regression_coefficients_always_free(self):
        spec = ModelSpec(n_covariates=2)
        free = _interior_mask(spec, np.array([0.4, 0.0, -3.0]))
        assert free.all()

    def test_overdispersed_data_prefers_gp(self):
        series = simulate(ModelSpec(family="gp"), [1.0, 0.4, 0.4], 500, seed=23)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            pois = fit(series, "poisson")
            gp = fit(series, "gp")
        assert gp.log_likelihood > pois.log_likelihood
        assert score(gp).log_score < score(pois).log_score


class TestOptionValidationFailsFast:
    def test_bootstrap_options_checked_before_simulation(self, monkeypatch):
        fitted = fit(simulate(ModelSpec(), [1.0, 0.5], 100, seed=0))

        def boom(*args, **kwargs):
            raise AssertionError("simulation should not start")

        monkeypatch.setattr("coco_ts.bootstrap.simulate", boom)
        with pytest.raises(ConfigurationError):
            bootstrap_acf(fitted, n_replicates=0)
