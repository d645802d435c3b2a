"""Parametric bootstrap of the sample autocorrelation function.

Tsay (1992) proposes judging a fitted time-series model by whether the
data's own summary statistics are *reproducible* under it.  Here the
statistic is the sample autocorrelation function: ``B`` paths of the
same length as the data are simulated from the fitted model, the ACF
of each path is computed up to ``L`` lags, and the per-lag empirical
quantiles of the resulting ``(B, L)`` matrix form an acceptance
envelope for the observed ACF.

Replicates are independent, so they form an embarrassingly parallel
batch.  Each replicate receives its own child of one
:class:`numpy.random.SeedSequence`, which makes the replicate matrix
independent of execution order: the same seed gives the same matrix
whether it is computed sequentially or with ``n_jobs`` workers.

Parallelism
~~~~~~~~~~~
When ``n_jobs != 1``, replicates are distributed with
``joblib.Parallel`` on its default process-based (loky) backend.
Simulating a count path is pure-Python work that holds the GIL.

Reference:
    Tsay, R. S. (1992). Model checking via parametric bootstraps in
    time series analysis. *Applied Statistics*, 41(1), 1–15.
"""

from __future__ import annotations

import warnings
from typing import Any

import numpy as np
from joblib import Parallel, delayed
from statsmodels.tsa.stattools import acf

from .simulate import simulate
from .transitions import ConvolutionTransition


def sample_acf(series: np.ndarray, n_lags: int) -> np.ndarray:
    """Sample autocorrelations at lags ``1..n_lags``.

    Uses the biased (denominator ``T``) estimator of
    :func:`statsmodels.tsa.stattools.acf`.  Lags beyond ``T − 1`` and
    the autocorrelations of a constant series are ``NaN``.
    """
    values = np.asarray(series, dtype=float)
    out = np.full(n_lags, np.nan)
    if values.size < 2:
        return out
    with warnings.catch_warnings():
        # A constant path has zero variance, so its ACF is NaN.
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        ac = acf(values, nlags=min(n_lags, values.size - 1), fft=False)
    out[: ac.size - 1] = ac[1:]
    return out


def _replicate_acf(
    transition: ConvolutionTransition,
    params: np.ndarray,
    length: int,
    xreg: np.ndarray | None,
    burn_in: int,
    n_lags: int,
    seed: np.random.SeedSequence,
) -> np.ndarray:
    path = simulate(transition, params, length, xreg=xreg, burn_in=burn_in, seed=seed)
    return sample_acf(path, n_lags)


def bootstrap_replicates(
    transition: ConvolutionTransition,
    params: Any,
    length: int,
    *,
    n_lags: int,
    n_replicates: int,
    burn_in: int = 0,
    xreg: np.ndarray | None = None,
    seed: int | np.random.SeedSequence | None = None,
    n_jobs: int = 1,
) -> np.ndarray:
    """Simulate *n_replicates* paths and return their ACFs.

    Args:
        transition: Resolved transition law of the fitted model.
        params: Fitted parameter vector.
        length: Length of each simulated path.
        n_lags: Number of autocorrelation lags.
        n_replicates: Number of bootstrap replicates ``B``.
        burn_in: Steps discarded at the start of every path.
        xreg: Covariate matrix (regression models).
        seed: Root seed; replicate ``b`` uses the ``b``-th spawned child.
        n_jobs: joblib parallelism level.

    Returns:
        Autocorrelation matrix of shape ``(n_replicates, n_lags)``.
    """
    root = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    children = root.spawn(n_replicates)
    theta = np.asarray(params, dtype=float)

    if n_jobs == 1:
        result = np.empty((n_replicates, n_lags))
        for b, child in enumerate(children):
            result[b] = _replicate_acf(transition, theta, length, xreg, burn_in, n_lags, child)
        return result

    rows = Parallel(n_jobs=n_jobs)(
        delayed(_replicate_acf)(transition, theta, length, xreg, burn_in, n_lags, child)
        for child in children
    )
    return np.asarray(np.vstack(rows))
