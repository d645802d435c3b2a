"""Forward simulation of convolution-closed count processes.

:func:`simulate` runs the generative counterpart of the transition
density engine: at every step the retained count is drawn by thinning
the past counts (:meth:`~coco_ts.transitions.ConvolutionTransition.sample_retained`)
and an independent innovation is added.

Initialisation
~~~~~~~~~~~~~~
The first ``order`` values are drawn from the innovation family at the
stationary rate ``λ / (1 − Σα)`` (``λ/(1−α)`` for order 1, ``λU`` for
order 2) and are discarded together with ``burn_in`` further steps, so
the returned path always has exactly ``length`` values.  For Poisson
innovations this starts the chain in its stationary margin.

Regression models take one covariate row per returned value; the rate
of each step is recomputed through the link from that row, and the
initial values use the first row.  A burn-in is not available for
regression models because there are no covariate rows for it.

The whole path is held in memory.  Results are reproducible for an
explicit ``seed`` (an ``int``, a :class:`numpy.random.SeedSequence`,
or a :class:`numpy.random.Generator`).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from ._compat import _as_covariate_matrix
from ._validation import check_positive_int
from .exceptions import ConfigurationError
from .specs import ModelSpec
from .transitions import ConvolutionTransition, resolve_transition

if TYPE_CHECKING:
    from ._typing import ArrayLike


def simulate(
    model: ModelSpec | ConvolutionTransition,
    params: Any,
    length: int,
    *,
    xreg: ArrayLike | None = None,
    burn_in: int = 0,
    seed: int | np.random.SeedSequence | np.random.Generator | None = None,
) -> np.ndarray:
    """Simulate a sample path of a convolution-closed count model.

    Args:
        model: Model specification or a resolved transition law.
        params: Parameter vector in the layout of ``model``.
        length: Number of values to return.
        xreg: Covariate matrix with ``length`` rows (regression models
            only).
        burn_in: Extra initial steps to generate and discard (models
            without covariates only).
        seed: Seed or generator for reproducibility.

    Returns:
        Integer array of shape ``(length,)``.

    Raises:
        ConfigurationError: If *length* or *burn_in* is invalid, or
            covariates are passed to (or missing from) the wrong kind
            of model.
        DomainError: If *params* lie outside the admissible region or
            *xreg* does not have ``length`` rows.
    """
    transition = resolve_transition(model)
    spec = transition.spec
    length = check_positive_int(length, name="length")
    burn_in = check_positive_int(burn_in, name="burn_in", minimum=0)

    theta = spec.validate(params)
    rate_or_beta, thinning, dispersion = spec.split(theta)
    rng = np.random.default_rng(seed)

    if spec.has_covariates:
        if xreg is None:
            msg = f"{spec.label} regression model requires 'xreg' to simulate."
            raise ConfigurationError(msg)
        if burn_in:
            msg = "'burn_in' is not supported for regression models."
            raise ConfigurationError(msg)
        x, _ = _as_covariate_matrix(xreg)
        spec.check_covariates(x, length)
        step_rates = np.asarray(spec.rates(theta, x), dtype=float)
    else:
        if xreg is not None:
            msg = f"{spec.label} model without covariates got 'xreg'."
            raise ConfigurationError(msg)
        step_rates = np.full(burn_in + length, float(rate_or_beta))

    p = spec.order
    law = transition.law
    path = np.empty(p + step_rates.size, dtype=np.int64)
    start_rate = spec.stationary_rate(float(step_rates[0]), thinning)
    path[:p] = law.rvs(start_rate, dispersion, rng, size=p)

    if spec.has_covariates:
        innovations = law.rvs(step_rates, dispersion, rng)
    else:
        innovations = law.rvs(float(step_rates[0]), dispersion, rng, size=step_rates.size)

    for t in range(step_rates.size):
        history = tuple(int(path[p + t - k]) for k in range(1, p + 1))
        retained = transition.sample_retained(
            history, thinning, float(step_rates[t]), dispersion, rng
        )
        path[p + t] = retained + int(innovations[t])

    return path[p + burn_in :]
