"""Transition density engine: conditional pmf / cdf of the next count.

Every model in this package has the form

    X_t = R_t(X_{t−1}, …, X_{t−p}) + W_t,        p ∈ {1, 2}

where ``R_t`` is a random thinning of the past counts (the *retained*
part) and ``W_t`` an independent innovation from
:mod:`coco_ts.innovations`.  The conditional law of ``X_t`` is
therefore the convolution of the retained law with the innovation
law:

    P(X_t = x | history) = Σ_r  P(R_t = r | history) · f(x − r; λ_t, η)

The retained law has finite support (it never exceeds the sum of the
past counts), so it is computed once per history as a probability
vector and every pmf / cdf / truncated-support evaluation for that
history reuses it.

First order
~~~~~~~~~~~
``R_t | X_{t−1}=y  ~  Binomial(y, α)``, giving

    pmf(x | y) = Σ_{i=0}^{min(x, y)} Bin(i; y, α) · f(x − i; λ, η)

Second order
~~~~~~~~~~~~
The two lags share a common component.  With ``U = 1/(1−α₁−α₂−α₃)``
and ``μ = λU`` (the stationary mean scale), write the lag-one count
``y`` and the lag-two count ``z`` as ``y = C + D₁``, ``z = C + D₂``
where the shared part ``C`` and the lag-specific parts carry rates
``μ(α₁+α₃)`` and ``μ(1−α₁−α₃)``.  Conditional on ``(y, z)``:

    P(C = c | y, z) ∝ f(c; μ(α₁+α₃)) · f(y−c; μ(1−α₁−α₃)) · f(z−c; μ(1−α₁−α₃))

and given ``C = c`` the retained count is the sum of three independent
thinnings (shared part, lag-one part, lag-two part):

    R = Bin(c, α₃/(α₁+α₃)) + Bin(y−c, α₁/(1−α₁−α₃)) + Bin(z−c, α₂/(1−α₁−α₃))

For Poisson innovations this is the trivariate-reduction CLAR(2)
model whose margins are Poisson(λU).  The thinning probabilities are
valid exactly when ``2α₁ + α₃ < 1`` and ``α₁ + α₂ + α₃ < 1``.

Dispatch
~~~~~~~~
One class exists per ``(family, order)`` pair.  They are registered
in ``_TRANSITIONS`` and selected once via :func:`resolve_transition`,
so callers program against :class:`ConvolutionTransition` and never
branch on the model type themselves.

References:
    * Joe, H. (1996). Time series models with univariate margins in
      the convolution-closed infinitely divisible class. *Journal of
      Applied Probability*, 33(3), 664–677.
    * Jung, R. C. & Tremayne, A. R. (2011). Convolution-closed models
      for count time series with applications. *Journal of Time
      Series Analysis*, 32(3), 268–280.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np
from scipy import stats as sp_stats

from ._truncation import DEFAULT_TOL, truncated_support
from .exceptions import ConfigurationError, DomainError
from .innovations import GeneralizedPoissonLaw, InnovationLaw, PoissonLaw
from .specs import ModelSpec


def _binomial_vector(n: int, p: float) -> np.ndarray:
    """Binomial(n, p) masses on ``0..n``."""
    return np.asarray(sp_stats.binom.pmf(np.arange(n + 1), n, p))


def _check_count(value: Any, *, name: str) -> int:
    """Return *value* as an int, rejecting non-integers."""
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        msg = f"'{name}' must be an integer, got {value!r}."
        raise DomainError(msg) from None
    if not np.isfinite(as_float) or as_float != round(as_float):
        msg = f"'{name}' must be an integer, got {value!r}."
        raise DomainError(msg)
    return int(as_float)


# ------------------------------------------------------------------ #
# Conditional law for a fixed history
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class ConditionalLaw:
    """Distribution of ``X_t`` for one fixed history and rate.

    Attributes:
        retained: Masses of the retained count on ``0..len−1``.
        rate: Innovation rate at time ``t``.
        dispersion: Innovation dispersion (0 for Poisson).
        law: The innovation law.
    """

    retained: np.ndarray
    rate: float
    dispersion: float
    law: InnovationLaw

    def pmf(self, x: int) -> float:
        if x < 0:
            return 0.0
        i = np.arange(min(x, self.retained.size - 1) + 1)
        innov = self.law.pmf(x - i, self.rate, self.dispersion)
        return float(np.dot(self.retained[i], innov))

    def cdf(self, x: int) -> float:
        if x < 0:
            return 0.0
        innov = self.law.pmf(np.arange(x + 1), self.rate, self.dispersion)
        masses = np.convolve(self.retained, innov)[: x + 1]
        return float(min(np.sum(masses), 1.0))

    def support(self, tol: float = DEFAULT_TOL) -> np.ndarray:
        """Masses ``pmf(0), pmf(1), …`` until the cdf exceeds ``1 − tol``."""
        return truncated_support(self.pmf, tol)


# ------------------------------------------------------------------ #
# Base class
# ------------------------------------------------------------------ #


class ConvolutionTransition:
    """Shared machinery for ``retained ⊛ innovation`` transition laws.

    Subclasses fix the Markov ``order`` and the innovation ``law`` and
    implement :meth:`retained_pmf` and :meth:`sample_retained`.  All
    public operations validate their inputs and raise
    :class:`~coco_ts.exceptions.DomainError` before computing
    anything.

    Histories are given most recent first: ``y`` for order 1,
    ``(X_{t−1}, X_{t−2})`` for order 2.

    Args:
        spec: Model specification; its family and order must match
            the class.
    """

    order: ClassVar[int]
    law: ClassVar[InnovationLaw]

    def __init__(self, spec: ModelSpec | None = None) -> None:
        if spec is None:
            spec = ModelSpec(family=self.law.name, order=self.order)
        if spec.order != self.order or spec.family != self.law.name:
            msg = (
                f"{type(self).__name__} implements family={self.law.name!r}, "
                f"order={self.order}; got {spec.label}."
            )
            raise ConfigurationError(msg)
        self.spec = spec

    def __repr__(self) -> str:
        return f"{type(self).__name__}(spec={self.spec!r})"

    # ---- To be implemented by subclasses ---------------------------

    def retained_pmf(
        self,
        history: tuple[int, ...],
        thinning: np.ndarray,
        rate: float,
        dispersion: float,
    ) -> np.ndarray:
        """Masses of the retained count given *history*."""
        raise NotImplementedError

    def sample_retained(
        self,
        history: tuple[int, ...],
        thinning: np.ndarray,
        rate: float,
        dispersion: float,
        rng: np.random.Generator,
    ) -> int:
        """Draw one retained count given *history*."""
        raise NotImplementedError

    # ---- Input checks ----------------------------------------------

    def check_history(self, history: Any) -> tuple[int, ...]:
        """Return *history* as a tuple of ``order`` non-negative ints."""
        values = np.atleast_1d(np.asarray(history, dtype=object)).reshape(-1)
        if values.size != self.order:
            msg = (
                f"{self.spec.label} transition needs {self.order} lagged "
                f"count(s), got {values.size}."
            )
            raise DomainError(msg)
        counts = tuple(_check_count(v, name="history") for v in values)
        if any(c < 0 for c in counts):
            msg = f"History counts must be non-negative, got {counts}."
            raise DomainError(msg)
        return counts

    def _resolve(
        self,
        params: Any,
        covariates: Any = None,
    ) -> tuple[float, np.ndarray, float]:
        theta = self.spec.validate(params)
        _, thinning, dispersion = self.spec.split(theta)
        if self.spec.has_covariates:
            if covariates is None:
                msg = f"{self.spec.label} regression model needs a covariate row."
                raise DomainError(msg)
            row = np.atleast_2d(np.asarray(covariates, dtype=float))
            rate = float(self.spec.rates(theta, row)[0])
        else:
            rate = float(self.spec.rates(theta))
        return rate, thinning, dispersion

    # ---- Conditional law -------------------------------------------

    def conditional_at(
        self,
        history: tuple[int, ...],
        rate: float,
        thinning: np.ndarray,
        dispersion: float,
    ) -> ConditionalLaw:
        """Conditional law from already-validated components."""
        return ConditionalLaw(
            retained=self.retained_pmf(history, thinning, rate, dispersion),
            rate=rate,
            dispersion=dispersion,
            law=self.law,
        )

    def conditional(
        self,
        history: Any,
        params: Any,
        covariates: Any = None,
    ) -> ConditionalLaw:
        """Conditional law of the next count given *history*.

        Args:
            history: Previous count (order 1) or ``(X_{t−1}, X_{t−2})``.
            params: Parameter vector (see :mod:`coco_ts.specs`).
            covariates: Covariate row for time ``t`` (regression
                models only).
        """
        hist = self.check_history(history)
        rate, thinning, dispersion = self._resolve(params, covariates)
        return self.conditional_at(hist, rate, thinning, dispersion)

    # ---- Public operations -----------------------------------------

    def pmf(self, x: Any, history: Any, params: Any, covariates: Any = None) -> float:
        """``P(X_t = x | history)``; exactly 0 for ``x < 0``.

        Raises:
            DomainError: On non-integer *x*, invalid *history*, or
                parameters outside the admissible region.
        """
        x_int = _check_count(x, name="x")
        return self.conditional(history, params, covariates).pmf(x_int)

    def cdf(self, x: Any, history: Any, params: Any, covariates: Any = None) -> float:
        """``P(X_t ≤ x | history)``; exactly 0 for ``x < 0``."""
        x_int = _check_count(x, name="x")
        return self.conditional(history, params, covariates).cdf(x_int)

    def support(
        self,
        history: Any,
        params: Any,
        covariates: Any = None,
        tol: float = DEFAULT_TOL,
    ) -> np.ndarray:
        """Masses ``pmf(0 | history), pmf(1 | history), …`` truncated at ``1 − tol``."""
        return self.conditional(history, params, covariates).support(tol)

    def log_pmf_series(
        self,
        series: np.ndarray,
        params: Any,
        xreg: np.ndarray | None = None,
    ) -> np.ndarray:
        """Conditional log masses ``log P(X_t | history_t)`` for t > order.

        The first ``order`` observations only serve as history.
        Identical ``(history, rate)`` pairs share one retained-law
        evaluation.

        Args:
            series: Validated 1-D integer array.
            params: Parameter vector.
            xreg: Covariate matrix aligned with *series* (regression
                models only).

        Returns:
            Array of length ``len(series) − order``; ``-inf`` where the
            observed count has zero conditional probability.
        """
        theta = self.spec.validate(params)
        rates = self.spec.rates(theta, xreg)
        _, thinning, dispersion = self.spec.split(theta)
        p = self.order
        out = np.empty(series.size - p)
        cache: dict[tuple[tuple[int, ...], float], ConditionalLaw] = {}
        for t in range(p, series.size):
            hist = tuple(int(series[t - k]) for k in range(1, p + 1))
            rate_t = float(rates) if np.ndim(rates) == 0 else float(rates[t])
            key = (hist, rate_t)
            cond = cache.get(key)
            if cond is None:
                cond = self.conditional_at(hist, rate_t, thinning, dispersion)
                cache[key] = cond
            mass = cond.pmf(int(series[t]))
            out[t - p] = np.log(mass) if mass > 0 else -np.inf
        return out


# ------------------------------------------------------------------ #
# First order
# ------------------------------------------------------------------ #


class FirstOrderTransition(ConvolutionTransition):
    """Binomial thinning of the previous count plus an innovation."""

    order = 1

    def retained_pmf(
        self,
        history: tuple[int, ...],
        thinning: np.ndarray,
        rate: float,
        dispersion: float,
    ) -> np.ndarray:
        return _binomial_vector(history[0], float(thinning[0]))

    def sample_retained(
        self,
        history: tuple[int, ...],
        thinning: np.ndarray,
        rate: float,
        dispersion: float,
        rng: np.random.Generator,
    ) -> int:
        return int(rng.binomial(history[0], float(thinning[0])))

    def log_pmf_series(
        self,
        series: np.ndarray,
        params: Any,
        xreg: np.ndarray | None = None,
    ) -> np.ndarray:
        # Vectorised over t: row t of the (T−1, K) grids holds the
        # terms Bin(i; y_t, α)·f(x_t − i) for i = 0..K−1.
        theta = self.spec.validate(params)
        rates = self.spec.rates(theta, xreg)
        _, thinning, dispersion = self.spec.split(theta)
        x = series[1:]
        y = series[:-1]
        if x.size == 0:
            return np.empty(0)
        rate_col = rates if np.ndim(rates) == 0 else np.asarray(rates)[1:, None]
        k = int(np.max(np.minimum(x, y))) + 1
        i = np.arange(k)[None, :]
        thinned = sp_stats.binom.pmf(i, y[:, None], float(thinning[0]))
        innov = self.law.pmf(x[:, None] - i, rate_col, dispersion)
        probs = np.sum(thinned * innov, axis=1)
        with np.errstate(divide="ignore"):
            return np.log(probs)


# ------------------------------------------------------------------ #
# Second order
# ------------------------------------------------------------------ #


class SecondOrderTransition(ConvolutionTransition):
    """Trivariate-reduction thinning of the last two counts plus an innovation."""

    order = 2

    def _shared_weights(
        self,
        history: tuple[int, ...],
        thinning: np.ndarray,
        rate: float,
        dispersion: float,
    ) -> np.ndarray:
        """``P(C = c | y, z)`` for ``c = 0..min(y, z)``."""
        y, z = history
        a1, a2, a3 = (float(a) for a in thinning)
        mu = rate / (1.0 - a1 - a2 - a3)
        shared = mu * (a1 + a3)
        single = mu * (1.0 - a1 - a3)
        c = np.arange(min(y, z) + 1)
        log_w = (
            self.law.logpmf(c, shared, dispersion)
            + self.law.logpmf(y - c, single, dispersion)
            + self.law.logpmf(z - c, single, dispersion)
        )
        w = np.exp(log_w - np.max(log_w))
        return np.asarray(w / np.sum(w))

    @staticmethod
    def _split_probabilities(thinning: np.ndarray) -> tuple[float, float, float]:
        """Thinning probabilities of the shared, lag-one and lag-two parts."""
        a1, a2, a3 = (float(a) for a in thinning)
        rest = 1.0 - a1 - a3
        return a3 / (a1 + a3), a1 / rest, a2 / rest

    def retained_pmf(
        self,
        history: tuple[int, ...],
        thinning: np.ndarray,
        rate: float,
        dispersion: float,
    ) -> np.ndarray:
        y, z = history
        weights = self._shared_weights(history, thinning, rate, dispersion)
        p_shared, p_first, p_second = self._split_probabilities(thinning)
        out = np.zeros(y + z + 1)
        for c, w in enumerate(weights):
            part = np.convolve(
                np.convolve(_binomial_vector(c, p_shared), _binomial_vector(y - c, p_first)),
                _binomial_vector(z - c, p_second),
            )
            out[: part.size] += w * part
        return out

    def sample_retained(
        self,
        history: tuple[int, ...],
        thinning: np.ndarray,
        rate: float,
        dispersion: float,
        rng: np.random.Generator,
    ) -> int:
        y, z = history
        weights = self._shared_weights(history, thinning, rate, dispersion)
        p_shared, p_first, p_second = self._split_probabilities(thinning)
        c = int(rng.choice(weights.size, p=weights))
        return int(
            rng.binomial(c, p_shared)
            + rng.binomial(y - c, p_first)
            + rng.binomial(z - c, p_second)
        )


# ------------------------------------------------------------------ #
# Concrete (family, order) classes
# ------------------------------------------------------------------ #


class PoissonAR1(FirstOrderTransition):
    """First-order model with Poisson innovations."""

    law = PoissonLaw()


class GeneralizedPoissonAR1(FirstOrderTransition):
    """First-order model with Generalized-Poisson innovations."""

    law = GeneralizedPoissonLaw()


class PoissonAR2(SecondOrderTransition):
    """Second-order model with Poisson innovations."""

    law = PoissonLaw()


class GeneralizedPoissonAR2(SecondOrderTransition):
    """Second-order model with Generalized-Poisson innovations."""

    law = GeneralizedPoissonLaw()


# ------------------------------------------------------------------ #
# Registry
# ------------------------------------------------------------------ #

_TRANSITIONS: dict[tuple[str, int], type[ConvolutionTransition]] = {}
"""Registry mapping ``(family, order)`` to a transition class."""


def register_transition(
    family: str,
    order: int,
    cls: type[ConvolutionTransition],
) -> None:
    """Register *cls* as the transition law for ``(family, order)``.

    Raises:
        TypeError: If *cls* is not a :class:`ConvolutionTransition`.
    """
    if not (isinstance(cls, type) and issubclass(cls, ConvolutionTransition)):
        msg = f"{cls!r} is not a ConvolutionTransition subclass."
        raise TypeError(msg)
    _TRANSITIONS[(family, order)] = cls


def resolve_transition(
    spec: ModelSpec | ConvolutionTransition,
) -> ConvolutionTransition:
    """Return the transition law for *spec* (instances pass through).

    Raises:
        ConfigurationError: If no class is registered for the spec's
            ``(family, order)``.
    """
    if isinstance(spec, ConvolutionTransition):
        return spec
    cls = _TRANSITIONS.get((spec.family, spec.order))
    if cls is None:
        available = ", ".join(f"{f}/{o}" for f, o in sorted(_TRANSITIONS))
        msg = f"No transition law for {spec.label}.  Available: {available}."
        raise ConfigurationError(msg)
    return cls(spec)


register_transition("poisson", 1, PoissonAR1)
register_transition("gp", 1, GeneralizedPoissonAR1)
register_transition("poisson", 2, PoissonAR2)
register_transition("gp", 2, GeneralizedPoissonAR2)
