"""Tests for Polars input compatibility."""

import numpy as np
import pytest

from coco_ts import ModelSpec, fit, simulate
from coco_ts._compat import _as_count_series, _as_covariate_matrix

# Skip all tests in this module if Polars is not installed.
pl = pytest.importorskip("polars")


class TestPolarsConversion:
    def test_series(self):
        np.testing.assert_array_equal(_as_count_series(pl.Series("y", [2, 0, 1])), [2, 0, 1])

    def test_dataframe_names(self):
        frame = pl.DataFrame({"const": [1.0, 1.0], "x": [0.5, 1.5]})
        x, names = _as_covariate_matrix(frame)
        assert names == ("const", "x")
        np.testing.assert_array_equal(x[:, 1], [0.5, 1.5])

    def test_lazyframe_collected(self):
        lazy = pl.DataFrame({"y": [1, 2, 3]}).lazy()
        np.testing.assert_array_equal(_as_count_series(lazy), [1, 2, 3])


class TestPolarsEndToEnd:
    def test_fit_accepts_polars(self):
        n = 200
        x = pl.DataFrame({"const": np.ones(n), "trend": np.linspace(0.0, 1.0, n)})
        series = simulate(ModelSpec(n_covariates=2), [0.3, 0.2, 0.4], n, xreg=x, seed=1)
        fitted = fit(pl.Series("y", series), xreg=x)
        assert fitted.param_names == ["alpha", "beta_const", "beta_trend"]
