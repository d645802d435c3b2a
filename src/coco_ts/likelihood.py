"""Conditional log-likelihood of a count series.

For a model of order ``p`` the log-likelihood conditions on the first
``p`` observations:

    ℓ(θ) = Σ_{t=p+1}^{T} log P(X_t = x_t | x_{t−1}, …, x_{t−p}; θ)

The first ``p`` observations contribute no term; they only supply the
history of the first modelled step.  Each term is evaluated by the
transition density engine (:mod:`coco_ts.transitions`).

:func:`prepare_inputs` is the boundary check shared by the likelihood,
the fitting routine and the diagnostics: it converts the series and
covariates to NumPy and raises
:class:`~coco_ts.exceptions.DomainError` for negative, non-integer or
non-finite counts, a series too short for the model order, and
covariate matrices whose shape does not match.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from ._compat import _as_count_series, _as_covariate_matrix
from .exceptions import DomainError
from .specs import ModelSpec
from .transitions import ConvolutionTransition, resolve_transition

if TYPE_CHECKING:
    from ._typing import ArrayLike


def prepare_inputs(
    spec: ModelSpec,
    series: ArrayLike,
    xreg: ArrayLike | None = None,
) -> tuple[np.ndarray, np.ndarray | None]:
    """Validate and convert a series (and covariates) for *spec*.

    Returns:
        ``(series, xreg)`` as NumPy arrays; *xreg* is ``None`` for
        models without covariates.

    Raises:
        DomainError: On invalid counts, a series with no more than
            ``order`` observations, missing or misaligned covariates,
            or covariates given to a model without regressors.
    """
    counts = _as_count_series(series)
    if counts.size <= spec.order:
        msg = (
            f"A {spec.label} model needs more than {spec.order} observation(s), "
            f"got {counts.size}."
        )
        raise DomainError(msg)

    if not spec.has_covariates:
        if xreg is not None:
            msg = f"{spec.label} model without covariates got 'xreg'."
            raise DomainError(msg)
        return counts, None

    if xreg is None:
        msg = f"{spec.label} regression model requires 'xreg'."
        raise DomainError(msg)
    x, _ = _as_covariate_matrix(xreg)
    spec.check_covariates(x, counts.size)
    return counts, x


def log_likelihood(
    model: ModelSpec | ConvolutionTransition,
    series: ArrayLike,
    params: Any,
    xreg: ArrayLike | None = None,
) -> float:
    """Conditional log-likelihood of *series* at *params*.

    Args:
        model: Model specification or resolved transition law.
        series: Observed counts.
        params: Parameter vector (see :mod:`coco_ts.specs`).
        xreg: Covariate matrix aligned row-for-row with *series*.

    Returns:
        ``ℓ(θ)``; ``-inf`` if some observed transition has zero
        probability under *params*.

    Raises:
        DomainError: On invalid data or parameters.
    """
    transition = resolve_transition(model)
    counts, x = prepare_inputs(transition.spec, series, xreg)
    return float(np.sum(transition.log_pmf_series(counts, params, x)))


def negative_log_likelihood(
    model: ModelSpec | ConvolutionTransition,
    series: ArrayLike,
    params: Any,
    xreg: ArrayLike | None = None,
) -> float:
    """Negated :func:`log_likelihood`, the quantity the optimizer minimises."""
    return -log_likelihood(model, series, params, xreg)
