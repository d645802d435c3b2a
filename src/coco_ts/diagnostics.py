"""Model-adequacy diagnostics for fitted count models.

Two complementary checks are provided:

* :func:`bootstrap_acf`: the parametric-bootstrap ACF envelope of
  Tsay (1992).  The fitted model is simulated ``n_replicates`` times
  at the length of the data; the observed sample ACF should lie
  inside the per-lag quantile band of the simulated ACFs.  Lags that
  leave the band point at dependence the model does not reproduce.
* :func:`score`: averaged one-step-ahead proper scoring rules
  (logarithmic, quadratic, ranked probability) together with AIC and
  BIC, for comparing competing models fitted to the same series.
  Lower scores indicate better predictive performance.

Both functions validate their options and raise
:class:`~coco_ts.exceptions.ConfigurationError` before any simulation
or evaluation starts.  Heavy lifting is delegated to the active
backend (see :mod:`coco_ts._backends`).

Without covariates, every bootstrap path is started from the
stationary margin and run for ``_BOOTSTRAP_BURN_IN`` extra steps that
are discarded.  Regression models are simulated along the observed
covariate rows without a burn-in.
"""

from __future__ import annotations

import logging
import numbers
import time

import numpy as np

from ._backends import resolve_backend
from ._results import BootstrapResult, FittedModel, ScoreResult, envelope_bounds
from ._truncation import DEFAULT_TOL
from ._validation import check_open_unit, check_positive_int
from .bootstrap import sample_acf
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_BOOTSTRAP_BURN_IN = 10


def _check_fitted(fitted: FittedModel) -> None:
    if not isinstance(fitted, FittedModel):
        msg = f"Expected a FittedModel returned by fit(), got {type(fitted).__name__}."
        raise TypeError(msg)


def _check_n_jobs(n_jobs: int) -> int:
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, numbers.Integral) or n_jobs == 0:
        msg = f"'n_jobs' must be a non-zero integer, got {n_jobs!r}."
        raise ConfigurationError(msg)
    return int(n_jobs)


def bootstrap_acf(
    fitted: FittedModel,
    n_lags: int = 21,
    n_replicates: int = 1000,
    alpha: float = 0.05,
    *,
    seed: int | np.random.SeedSequence | None = None,
    n_jobs: int = 1,
    backend: str | None = None,
) -> BootstrapResult:
    """Parametric-bootstrap envelope of the sample autocorrelation function.

    Args:
        fitted: Result of :func:`~coco_ts.fit`.
        n_lags: Number of lags ``L``.
        n_replicates: Number of simulated paths ``B``.
        alpha: Significance level; the envelope spans the
            ``alpha/2`` and ``1 − alpha/2`` quantiles.
        seed: Root seed.  The same seed yields the same replicates
            regardless of ``n_jobs``.
        n_jobs: Parallel workers (``-1`` for all cores).
        backend: Backend name; ``None`` uses the configured default.

    Returns:
        A :class:`~coco_ts._results.BootstrapResult`.

    Raises:
        ConfigurationError: If *n_lags* or *n_replicates* is not a
            positive integer, *alpha* is outside ``(0, 1)``, or
            *n_jobs* is zero.
    """
    _check_fitted(fitted)
    n_lags = check_positive_int(n_lags, name="n_lags")
    n_replicates = check_positive_int(n_replicates, name="n_replicates")
    alpha = check_open_unit(alpha, name="alpha")
    n_jobs = _check_n_jobs(n_jobs)

    start_time = time.perf_counter()
    engine = resolve_backend(backend)
    burn_in = 0 if fitted.spec.has_covariates else _BOOTSTRAP_BURN_IN
    logger.debug(
        "Bootstrapping ACF of %s model: B=%d, L=%d, n_jobs=%d, backend=%r",
        fitted.spec.label,
        n_replicates,
        n_lags,
        n_jobs,
        engine.name,
    )

    replicates = engine.bootstrap_acf(
        fitted.transition,
        fitted.params,
        fitted.n_obs,
        n_lags=n_lags,
        n_replicates=n_replicates,
        burn_in=burn_in,
        xreg=fitted.xreg,
        seed=seed,
        n_jobs=n_jobs,
    )
    n_degenerate = int(np.sum(np.all(np.isnan(replicates), axis=1)))
    if n_degenerate:
        logger.debug("%d of %d bootstrap paths were constant", n_degenerate, n_replicates)

    lower, upper = envelope_bounds(replicates, alpha)
    return BootstrapResult(
        spec=fitted.spec,
        lags=np.arange(1, n_lags + 1),
        observed_acf=sample_acf(fitted.series, n_lags),
        lower=lower,
        upper=upper,
        replicates=replicates,
        alpha=alpha,
        n_replicates=n_replicates,
        backend=engine.name,
        duration=time.perf_counter() - start_time,
    )


def score(
    fitted: FittedModel,
    tol: float = DEFAULT_TOL,
    *,
    backend: str | None = None,
) -> ScoreResult:
    """Averaged proper scoring rules of a fitted model.

    Args:
        fitted: Result of :func:`~coco_ts.fit`.
        tol: Truncation tolerance for the support sums, in ``(0, 1)``.
        backend: Backend name; ``None`` uses the configured default.

    Returns:
        A :class:`~coco_ts._results.ScoreResult`; ``result.to_dict()``
        gives the ``log.score`` / ``quad.score`` / ``rps.score`` /
        ``aic`` / ``bic`` mapping.  AIC and BIC are recomputed from
        ``fitted.log_likelihood`` and the parameter count.

    Raises:
        ConfigurationError: If *tol* is outside ``(0, 1)``.
    """
    _check_fitted(fitted)
    tol = check_open_unit(tol, name="tol")
    engine = resolve_backend(backend)
    log_s, quad_s, rps_s, n_terms = engine.score_terms(
        fitted.transition, fitted.series, fitted.params, fitted.xreg, tol
    )
    loglik = fitted.log_likelihood
    k = fitted.n_params
    logger.debug(
        "Scored %s model over %d terms: log=%.6g, quad=%.6g, rps=%.6g",
        fitted.spec.label,
        n_terms,
        log_s,
        quad_s,
        rps_s,
    )
    return ScoreResult(
        log_score=log_s,
        quad_score=quad_s,
        rps_score=rps_s,
        aic=2.0 * k - 2.0 * loglik,
        bic=k * float(np.log(fitted.n_obs)) - 2.0 * loglik,
        n_terms=n_terms,
        tol=tol,
    )
