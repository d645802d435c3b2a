"""Tests for maximum-likelihood fitting."""

import numpy as np
import pandas as pd
import pytest

from coco_ts import ModelSpec, fit, log_likelihood, simulate
from coco_ts.exceptions import ConfigurationError, ConvergenceError, DomainError
from coco_ts.fitting import default_init


@pytest.fixture(scope="module")
def poisson_series():
    return simulate(ModelSpec(), [2.0, 0.5], 1000, seed=123)


@pytest.fixture(scope="module")
def poisson_fit(poisson_series):
    return fit(poisson_series, "poisson", 1)


class TestParameterRecovery:
    def test_poisson_first_order(self, poisson_fit):
        lam, alpha = poisson_fit.params
        assert alpha == pytest.approx(0.5, abs=0.1)
        assert lam == pytest.approx(2.0, abs=0.5)
        assert poisson_fit.converged

    def test_gp_first_order(self):
        series = simulate(ModelSpec(family="gp"), [2.0, 0.4, 0.3], 1000, seed=7)
        fitted = fit(series, "gp", 1)
        lam, alpha, eta = fitted.params
        assert alpha == pytest.approx(0.4, abs=0.1)
        assert eta == pytest.approx(0.3, abs=0.12)
        assert lam == pytest.approx(2.0, abs=0.6)

    def test_poisson_second_order(self):
        true = [1.0, 0.25, 0.15, 0.2]
        series = simulate(ModelSpec(order=2), true, 600, burn_in=50, seed=21)
        fitted = fit(series, "poisson", 2)
        assert fitted.param_names == ["lambda", "alpha1", "alpha2", "alpha3"]
        a1, a2, a3 = fitted.params[1:]
        assert a1 + a2 + a3 == pytest.approx(0.6, abs=0.15)
        assert a1 + a2 + a3 < 1
        assert 2 * a1 + a3 < 1

    def test_regression_log_link(self):
        n = 800
        t = np.arange(n)
        x = np.column_stack([np.ones(n), np.sin(2 * np.pi * t / 40)])
        series = simulate(ModelSpec(n_covariates=2), [0.3, 0.5, 0.6], n, xreg=x, seed=3)
        fitted = fit(series, "poisson", 1, xreg=x)
        alpha, b0, b1 = fitted.params
        assert alpha == pytest.approx(0.3, abs=0.12)
        assert b0 == pytest.approx(0.5, abs=0.25)
        assert b1 == pytest.approx(0.6, abs=0.2)

    def test_regression_identity_link(self):
        n = 600
        rng = np.random.default_rng(10)
        x = np.column_stack([np.ones(n), rng.uniform(0.0, 2.0, size=n)])
        series = simulate(
            ModelSpec(n_covariates=2, link="identity"), [0.4, 1.0, 1.0], n, xreg=x, seed=10
        )
        fitted = fit(series, "poisson", 1, xreg=x, link="identity")
        assert np.all(x @ fitted.params[1:] > 0)
        assert fitted.params[0] == pytest.approx(0.4, abs=0.15)


class TestFittedModel:
    def test_information_criteria(self, poisson_fit):
        k, n = 2, poisson_fit.n_obs
        ll = poisson_fit.log_likelihood
        assert poisson_fit.aic == pytest.approx(2 * k - 2 * ll)
        assert poisson_fit.bic == pytest.approx(k * np.log(n) - 2 * ll)

    def test_log_likelihood_matches_evaluation(self, poisson_fit, poisson_series):
        again = log_likelihood(ModelSpec(), poisson_series, poisson_fit.params)
        assert poisson_fit.log_likelihood == pytest.approx(again)

    def test_optimum_beats_nearby_points(self, poisson_fit, poisson_series):
        for delta in ([0.1, 0.0], [0.0, 0.02], [-0.1, 0.0], [0.0, -0.02]):
            nearby = log_likelihood(ModelSpec(), poisson_series, poisson_fit.params + delta)
            assert poisson_fit.log_likelihood >= nearby - 1e-6

    def test_standard_errors(self, poisson_fit):
        se = poisson_fit.std_errors
        assert se.shape == (2,)
        assert np.all(np.isfinite(se))
        assert np.all(se > 0)
        # Alpha is estimated to within a few hundredths with T = 1000.
        assert se[1] < 0.1
        np.testing.assert_allclose(se, np.sqrt(np.diag(poisson_fit.covariance)))

    def test_summary_table(self, poisson_fit):
        table = poisson_fit.summary()
        assert list(table.index) == ["lambda", "alpha"]
        assert list(table.columns) == ["estimate", "std_error", "z_value", "ci_lower", "ci_upper"]
        assert np.all(table["ci_lower"] < table["estimate"])
        assert np.all(table["estimate"] < table["ci_upper"])

    def test_metadata(self, poisson_fit):
        assert poisson_fit.backend == "numpy"
        assert poisson_fit.duration >= 0
        assert poisson_fit.n_iter > 0
        assert poisson_fit.xreg is None
        assert poisson_fit.spec.label == "Poisson1"

    def test_named_covariates(self):
        n = 300
        frame = pd.DataFrame({"const": np.ones(n), "trend": np.linspace(-1, 1, n)})
        series = simulate(ModelSpec(n_covariates=2), [0.3, 0.4, 0.3], n, xreg=frame, seed=2)
        fitted = fit(pd.Series(series), xreg=frame)
        assert fitted.param_names == ["alpha", "beta_const", "beta_trend"]
        assert fitted.spec.covariate_names == ("const", "trend")


class TestDefaultInit:
    def test_inside_admissible_region(self, poisson_series):
        for family in ("poisson", "gp"):
            for order in (1, 2):
                spec = ModelSpec(family=family, order=order)
                spec.validate(default_init(spec, poisson_series))

    def test_first_order_moments(self, poisson_series):
        lam, alpha = default_init(ModelSpec(), poisson_series)
        assert alpha == pytest.approx(0.5, abs=0.1)
        assert lam == pytest.approx(poisson_series.mean() * (1 - alpha))

    def test_constant_series(self):
        init = default_init(ModelSpec(family="gp"), np.full(20, 3))
        ModelSpec(family="gp").validate(init)


class TestFitErrors:
    def test_iteration_budget(self, poisson_series):
        with pytest.raises(ConvergenceError) as excinfo:
            fit(poisson_series, init=[5.0, 0.05], max_iter=1)
        assert excinfo.value.best_params is not None
        assert excinfo.value.best_params.shape == (2,)

    def test_init_outside_region(self, poisson_series):
        with pytest.raises(DomainError, match="Thinning"):
            fit(poisson_series, init=[1.0, 1.2])

    def test_init_non_stationary_second_order(self, poisson_series):
        with pytest.raises(DomainError, match="alpha1 \\+ alpha2 \\+ alpha3"):
            fit(poisson_series, order=2, init=[1.0, 0.4, 0.35, 0.3])

    def test_init_wrong_length(self, poisson_series):
        with pytest.raises(DomainError, match="expects 2"):
            fit(poisson_series, init=[1.0, 0.5, 0.1])

    @pytest.mark.parametrize("tol", [0.0, 1.0, -1e-8])
    def test_rejects_tolerance(self, poisson_series, tol):
        with pytest.raises(ConfigurationError, match="tol"):
            fit(poisson_series, tol=tol)

    def test_rejects_max_iter(self, poisson_series):
        with pytest.raises(ConfigurationError, match="max_iter"):
            fit(poisson_series, max_iter=0)

    def test_rejects_order(self, poisson_series):
        with pytest.raises(ConfigurationError):
            fit(poisson_series, order=3)

    def test_rejects_family(self, poisson_series):
        with pytest.raises(ConfigurationError):
            fit(poisson_series, family="negative_binomial")

    def test_rejects_link(self, poisson_series):
        with pytest.raises(ConfigurationError):
            fit(poisson_series, xreg=np.ones(poisson_series.size), link="logit")

    def test_rejects_negative_counts(self):
        with pytest.raises(DomainError):
            fit([1, 2, -3, 4])

    def test_rejects_misaligned_covariates(self, poisson_series):
        with pytest.raises(DomainError, match="rows"):
            fit(poisson_series, xreg=np.ones((10, 1)))

    def test_unknown_backend(self, poisson_series):
        with pytest.raises(ValueError, match="Unknown backend"):
            fit(poisson_series, backend="fortran")
