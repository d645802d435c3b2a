"""Proper scoring rules for one-step-ahead conditional distributions.

For every in-sample time point ``t = p+1, …, T`` the fitted transition
law ``P_t(·) = P(X_t = · | history_t)`` is compared with the realised
count ``x_t`` through three negatively oriented scores (Czado,
Gneiting & Held, 2009):

* logarithmic:  ``−log P_t(x_t)``
* quadratic:    ``−2·P_t(x_t) + Σ_j P_t(j)²``
* ranked probability:  ``Σ_j (F_t(j) − 1{j ≥ x_t})²``

The sums over ``j`` run over the truncated support of ``P_t`` (masses
are accumulated until the cdf exceeds ``1 − tol``, see
:mod:`coco_ts._truncation`).  Each score is averaged over the
``T − p`` time points.  Lower is better for all three.

Reference:
    Czado, C., Gneiting, T. & Held, L. (2009). Predictive model
    assessment for count data. *Biometrics*, 65(4), 1254–1261.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ._truncation import DEFAULT_TOL
from .transitions import ConditionalLaw, ConvolutionTransition


def score_terms(
    transition: ConvolutionTransition,
    series: np.ndarray,
    params: Any,
    xreg: np.ndarray | None = None,
    tol: float = DEFAULT_TOL,
) -> tuple[float, float, float, int]:
    """Average logarithmic, quadratic and ranked probability scores.

    Args:
        transition: Resolved transition law.
        series: Validated 1-D integer array.
        params: Parameter vector.
        xreg: Covariate matrix aligned with *series* (regression
            models only).
        tol: Truncation tolerance for the support sums.

    Returns:
        ``(log_score, quad_score, rps_score, n_terms)``.  The log
        score is ``inf`` when an observation has zero probability.
    """
    spec = transition.spec
    theta = spec.validate(params)
    rates = spec.rates(theta, xreg)
    _, thinning, dispersion = spec.split(theta)
    p = spec.order
    n_terms = series.size - p

    log_total = 0.0
    quad_total = 0.0
    rps_total = 0.0
    # One truncated support per distinct (history, rate).
    cache: dict[tuple[tuple[int, ...], float], tuple[ConditionalLaw, np.ndarray]] = {}
    for t in range(p, series.size):
        history = tuple(int(series[t - k]) for k in range(1, p + 1))
        rate_t = float(rates) if np.ndim(rates) == 0 else float(rates[t])
        key = (history, rate_t)
        if key not in cache:
            cond = transition.conditional_at(history, rate_t, thinning, dispersion)
            cache[key] = (cond, cond.support(tol))
        cond, masses = cache[key]

        observed = int(series[t])
        p_obs = cond.pmf(observed)
        with np.errstate(divide="ignore"):
            log_total -= float(np.log(p_obs))
        quad_total += -2.0 * p_obs + float(np.sum(masses**2))
        # The ranked probability sum must reach the observed count even
        # when it lies beyond the truncated support.
        grid = np.arange(max(masses.size, observed + 1))
        cdf = np.cumsum(np.pad(masses, (0, grid.size - masses.size)))
        rps_total += float(np.sum((cdf - (grid >= observed)) ** 2))

    return (
        log_total / n_terms,
        quad_total / n_terms,
        rps_total / n_terms,
        n_terms,
    )
