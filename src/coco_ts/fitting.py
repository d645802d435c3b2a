"""Maximum-likelihood fitting of convolution-closed count models.

:func:`fit` maximises the conditional log-likelihood
(:mod:`coco_ts.likelihood`) over the admissible parameter region with
SciPy's SLSQP optimizer, then derives standard errors from the inverse
of a numerical Hessian of the negative log-likelihood at the optimum.

Constraints
~~~~~~~~~~~
Box bounds keep every thinning probability in ``(0, 1)``, the rate
``lambda`` positive and ``eta`` in ``[0, 1)``.  Second-order models
add two linear inequalities (``α₁+α₂+α₃ < 1`` and ``2α₁+α₃ < 1``);
regression models with the ``identity`` or ``relu`` link add
``x_t'β > 0`` for every row.  Strict inequalities are enforced with a
margin of ``_MARGIN``.  Should an iterate still leave the region (the
SLSQP line search may overshoot a nonlinear constraint), the
objective returns a large finite penalty instead of raising.

Starting values
~~~~~~~~~~~~~~~
Unless ``init`` is given, starting values come from the moments of the
series: the lag-one sample autocorrelation for the thinning (split in
three equal parts for order 2), ``1 − sqrt(mean/var)`` for ``eta``
when the series is over-dispersed, and ``mean·(1 − Σα)·(1 − η)`` for
the innovation rate.  Regression coefficients start from the
least-squares projection of the link-transformed rate on the
covariates.

Convergence
~~~~~~~~~~~
Exhausting ``max_iter`` iterations, or ending at a point with a
non-finite likelihood, raises
:class:`~coco_ts.exceptions.ConvergenceError` carrying the last
iterate.  Any other unsuccessful exit (typically a line search that
cannot make progress at an already flat optimum) returns the result
with ``converged=False`` and emits a :class:`UserWarning`.

Standard errors
~~~~~~~~~~~~~~~
The numerical Hessian is taken over the estimates whose
finite-difference stencil stays inside the bounds; estimates on a
bound (typically ``eta = 0`` on equidispersed data) are held fixed
and get ``NaN`` rows and columns in the covariance matrix.
"""

from __future__ import annotations

import logging
import time
import warnings
from typing import TYPE_CHECKING, Any

import numpy as np
from scipy.optimize import minimize
from statsmodels.tsa.stattools import acf

from ._backends import BackendProtocol, resolve_backend
from ._compat import _as_covariate_matrix
from ._results import FittedModel
from ._validation import check_open_unit, check_positive_int
from .exceptions import ConfigurationError, ConvergenceError, DomainError
from .likelihood import prepare_inputs
from .specs import ModelSpec
from .transitions import ConvolutionTransition, resolve_transition

if TYPE_CHECKING:
    from ._typing import ArrayLike

logger = logging.getLogger(__name__)

# Distance kept from the open boundaries of the parameter region.
_MARGIN = 1e-6

# Objective value returned outside the admissible region.
_PENALTY = 1e10

# SLSQP exit mode for "Iteration limit reached".
_SLSQP_ITERATION_LIMIT = 9


# ------------------------------------------------------------------ #
# Starting values
# ------------------------------------------------------------------ #


def _lag_one_acf(series: np.ndarray) -> float:
    if np.ptp(series) == 0:
        return 0.3
    r1 = float(acf(series.astype(float), nlags=1, fft=False)[1])
    return r1 if np.isfinite(r1) else 0.3


def default_init(
    spec: ModelSpec,
    series: np.ndarray,
    xreg: np.ndarray | None = None,
) -> np.ndarray:
    """Moment-based starting values in the layout of *spec*.

    Raises:
        ConfigurationError: If a regression model with the
            ``identity`` / ``relu`` link cannot be given a starting
            point with positive rates; pass ``init`` explicitly then.
    """
    mean = float(np.mean(series))
    var = float(np.var(series))
    r1 = float(np.clip(_lag_one_acf(series), 0.05, 0.8))
    thinning = [r1] if spec.order == 1 else [r1 / 3.0] * 3

    eta: list[float] = []
    if spec.has_dispersion:
        ratio = mean / var if var > 0 else 1.0
        eta = [float(np.clip(1.0 - np.sqrt(ratio), 0.05, 0.9))]

    scale = 1.0 - eta[0] if eta else 1.0
    rate = max(mean * (1.0 - sum(thinning)) * scale, 0.1)

    if not spec.has_covariates:
        return np.array([rate, *thinning, *eta])

    assert xreg is not None
    link = spec.link_function
    target = np.full(series.size, float(link.inverse(np.asarray(rate))))
    beta, *_ = np.linalg.lstsq(xreg, target, rcond=None)
    if link.needs_positive_predictor and np.any(xreg @ beta <= _MARGIN):
        msg = (
            f"Cannot find starting values with x'beta > 0 for the "
            f"'{spec.link}' link; pass 'init' explicitly."
        )
        raise ConfigurationError(msg)
    return np.array([*thinning, *eta, *beta])


# ------------------------------------------------------------------ #
# Optimizer set-up
# ------------------------------------------------------------------ #


def _bounds(spec: ModelSpec) -> list[tuple[float | None, float | None]]:
    thinning = [(_MARGIN, 1.0 - _MARGIN)] * spec.n_thinning
    eta = [(0.0, 1.0 - _MARGIN)] if spec.has_dispersion else []
    if not spec.has_covariates:
        return [(_MARGIN, None), *thinning, *eta]
    return [*thinning, *eta, *[(None, None)] * spec.n_covariates]


def _constraints(spec: ModelSpec, xreg: np.ndarray | None) -> list[dict[str, Any]]:
    constraints: list[dict[str, Any]] = []
    start = 0 if spec.has_covariates else 1
    if spec.order == 2:
        a = slice(start, start + 3)
        constraints.append(
            {"type": "ineq", "fun": lambda th: 1.0 - np.sum(th[a]) - _MARGIN}
        )
        constraints.append(
            {"type": "ineq", "fun": lambda th: 1.0 - 2.0 * th[a][0] - th[a][2] - _MARGIN}
        )
    if spec.has_covariates and spec.link_function.needs_positive_predictor:
        first_beta = spec.n_thinning + int(spec.has_dispersion)
        constraints.append(
            {"type": "ineq", "fun": lambda th: xreg @ th[first_beta:] - _MARGIN}
        )
    return constraints


def _make_objective(
    engine: BackendProtocol,
    transition: ConvolutionTransition,
    series: np.ndarray,
    xreg: np.ndarray | None,
    outside: float,
) -> Any:
    """Negative log-likelihood returning *outside* off the admissible region."""

    def objective(theta: np.ndarray) -> float:
        try:
            value = engine.negative_log_likelihood(transition, series, theta, xreg)
        except DomainError:
            return outside
        return value if np.isfinite(value) else outside

    return objective


def _interior_mask(spec: ModelSpec, theta: np.ndarray) -> np.ndarray:
    """Coordinates whose central-difference stencil stays inside the bounds."""
    # Twice the relative step of statsmodels' approx_hess3.
    step = 2.0 * np.finfo(float).eps ** 0.25 * np.maximum(np.abs(theta), 0.1)
    free = np.ones(theta.size, dtype=bool)
    for i, (lo, hi) in enumerate(_bounds(spec)):
        if lo is not None and theta[i] - step[i] < lo:
            free[i] = False
        if hi is not None and theta[i] + step[i] > hi:
            free[i] = False
    return free


def _covariance(
    engine: BackendProtocol,
    objective: Any,
    theta: np.ndarray,
    free: np.ndarray,
) -> np.ndarray:
    """Inverse numerical Hessian over the *free* coordinates.

    Estimates on a bound are held fixed; their rows and columns are
    ``NaN``.  The whole matrix is ``NaN`` when the Hessian of the free
    block is not finite or singular.
    """
    k = theta.size
    cov = np.full((k, k), np.nan)
    if not np.all(free):
        logger.debug("Estimates on a bound at %s: %s", theta, ~free)
        warnings.warn(
            f"{int(np.sum(~free))} estimate(s) lie on the boundary of the "
            "parameter region; their standard errors are undefined.",
            UserWarning,
            stacklevel=3,
        )
    if not np.any(free):
        return cov

    def restricted(sub: np.ndarray) -> float:
        full = theta.copy()
        full[free] = sub
        return objective(full)

    hess = engine.hessian(restricted, theta[free])
    if not np.all(np.isfinite(hess)):
        logger.debug("Hessian has non-finite entries at %s", theta)
        warnings.warn(
            "The Hessian at the optimum could not be evaluated; standard "
            "errors are undefined.",
            UserWarning,
            stacklevel=3,
        )
        return cov
    try:
        inv = np.linalg.inv(hess)
    except np.linalg.LinAlgError:
        logger.debug("Hessian is singular at %s", theta)
        warnings.warn(
            "The Hessian at the optimum is singular; standard errors are undefined.",
            UserWarning,
            stacklevel=3,
        )
        return cov
    cov[np.ix_(free, free)] = inv
    return cov


# ------------------------------------------------------------------ #
# Public entry point
# ------------------------------------------------------------------ #


def fit(
    series: ArrayLike,
    family: str = "poisson",
    order: int = 1,
    *,
    xreg: ArrayLike | None = None,
    link: str = "log",
    init: Any = None,
    tol: float = 1e-8,
    max_iter: int = 1000,
    backend: str | None = None,
) -> FittedModel:
    """Fit a convolution-closed count model by maximum likelihood.

    Args:
        series: Observed counts (1-D array, list, pandas Series or
            single-column DataFrame).
        family: Innovation family, ``"poisson"`` or ``"gp"``.
        order: Markov order, 1 or 2.
        xreg: Covariate matrix with one row per observation.  When
            given, the rate at time ``t`` is ``link⁻¹(x_t'β)``.
            DataFrame column names label the coefficients.
        link: ``"log"``, ``"identity"`` or ``"relu"`` (regression only).
        init: Starting parameter vector; defaults to
            :func:`default_init`.
        tol: Optimizer tolerance on the objective, in ``(0, 1)``.
        max_iter: Optimizer iteration budget.
        backend: Backend name; ``None`` uses the configured default.

    Returns:
        A :class:`~coco_ts._results.FittedModel`.

    Raises:
        DomainError: On invalid counts, misaligned covariates, or an
            ``init`` outside the admissible region.
        ConfigurationError: On an unknown family / link, an order
            other than 1 or 2, or invalid ``tol`` / ``max_iter``.
        ConvergenceError: If the optimizer exhausts ``max_iter`` or
            ends at a point with a non-finite likelihood.
    """
    start_time = time.perf_counter()
    tol = check_open_unit(tol, name="tol")
    max_iter = check_positive_int(max_iter, name="max_iter")

    names = None
    n_covariates = 0
    x = None
    if xreg is not None:
        x, names = _as_covariate_matrix(xreg)
        n_covariates = x.shape[1]
    spec = ModelSpec(
        family=family,
        order=order,
        n_covariates=n_covariates,
        link=link,
        covariate_names=names,
    )
    counts, x = prepare_inputs(spec, series, x)
    transition = resolve_transition(spec)
    engine = resolve_backend(backend)

    if init is None:
        theta0 = default_init(spec, counts, x)
    else:
        theta0 = np.asarray(init, dtype=float).reshape(-1)
    theta0 = spec.validate(theta0)
    spec.rates(theta0, x)

    logger.debug(
        "Fitting %s model to %d observations (backend=%r, init=%s)",
        spec.label,
        counts.size,
        engine.name,
        np.array2string(theta0, precision=4),
    )

    objective = _make_objective(engine, transition, counts, x, _PENALTY)
    res = minimize(
        objective,
        theta0,
        method="SLSQP",
        bounds=_bounds(spec),
        constraints=_constraints(spec, x),
        options={"maxiter": max_iter, "ftol": tol},
    )
    theta = np.asarray(res.x, dtype=float)
    n_iter = int(getattr(res, "nit", 0))
    message = str(res.message)
    logger.debug(
        "Optimizer finished after %d iterations (status %s): %s",
        n_iter,
        res.status,
        message,
    )

    if res.status == _SLSQP_ITERATION_LIMIT or not np.isfinite(res.fun) or res.fun >= _PENALTY:
        msg = (
            f"Fitting the {spec.label} model did not converge within "
            f"{max_iter} iterations: {message}"
        )
        raise ConvergenceError(
            msg, best_params=theta, n_iter=n_iter, optimizer_message=message
        )
    if not res.success:
        warnings.warn(
            f"The optimizer stopped before meeting its tolerance: {message}",
            UserWarning,
            stacklevel=2,
        )

    loglik = -float(res.fun)
    k = theta.size
    covariance = _covariance(
        engine,
        _make_objective(engine, transition, counts, x, np.nan),
        theta,
        _interior_mask(spec, theta),
    )
    with np.errstate(invalid="ignore"):
        diag = np.diag(covariance)
        std_errors = np.sqrt(np.where(diag > 0, diag, np.nan))

    fitted = FittedModel(
        spec=spec,
        params=theta,
        param_names=spec.param_names,
        std_errors=std_errors,
        covariance=covariance,
        log_likelihood=loglik,
        aic=2.0 * k - 2.0 * loglik,
        bic=k * float(np.log(counts.size)) - 2.0 * loglik,
        converged=bool(res.success),
        n_iter=n_iter,
        message=message,
        series=counts,
        xreg=x,
        backend=engine.name,
        duration=time.perf_counter() - start_time,
    )
    logger.debug(
        "Fitted %s: logL=%.4f, AIC=%.4f (%.2fs)",
        spec.label,
        loglik,
        fitted.aic,
        fitted.duration,
    )
    return fitted
