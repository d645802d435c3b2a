"""Innovation laws: Poisson and Generalized-Poisson.

The innovation is the new, exogenous count added at every time step.
Both laws are convolution-closed in the rate for a fixed dispersion:

    Po(λ₁) * Po(λ₂)            = Po(λ₁ + λ₂)
    GP(λ₁, η) * GP(λ₂, η)      = GP(λ₁ + λ₂, η)

which is what makes the thinning-plus-innovation recursion in
:mod:`coco_ts.transitions` stay inside the family.

Generalized Poisson (Consul & Jain, 1973)
-----------------------------------------
For rate ``λ > 0`` and dispersion ``η ∈ [0, 1)``:

    p(k) = λ (λ + ηk)^(k−1) exp(−λ − ηk) / k!,    k = 0, 1, 2, …

with mean ``λ / (1 − η)`` and variance ``λ / (1 − η)³``.  ``η = 0``
gives the Poisson law.  The mass is evaluated in the log domain

    log p(k) = log λ + (k − 1) log(λ + ηk) − λ − ηk − log Γ(k + 1)

so that large rates or counts neither overflow ``(λ + ηk)^(k−1)`` nor
underflow ``exp(−λ)`` before the product is formed.

Every law is a stateless frozen dataclass; all parameters flow through
method arguments, so a single instance can be shared across threads.

Reference:
    Consul, P. C. & Jain, G. C. (1973). A generalization of the Poisson
    distribution. *Technometrics*, 15(4), 791–799.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import numpy as np
from scipy import stats as sp_stats
from scipy.special import gammaln

from ._truncation import truncated_support
from .exceptions import ConfigurationError, DomainError

# Sampling tables are cut once the cdf exceeds 1 − 1e-12.
_SAMPLING_TOL = 1e-12


def _scalar_or_array(values: np.ndarray) -> Any:
    """Return a Python float for 0-d results, the array otherwise."""
    if values.ndim == 0:
        return float(values)
    return values


def _check_rate(rate: Any) -> np.ndarray:
    rate_arr = np.asarray(rate, dtype=float)
    if not np.all(np.isfinite(rate_arr)) or np.any(rate_arr <= 0):
        msg = f"Innovation rate must be finite and strictly positive, got {rate!r}."
        raise DomainError(msg)
    return rate_arr


# ------------------------------------------------------------------ #
# InnovationLaw protocol
# ------------------------------------------------------------------ #


@runtime_checkable
class InnovationLaw(Protocol):
    """Interface every innovation law must implement.

    Attributes:
        name: Short identifier (``"poisson"`` or ``"gp"``).
        has_dispersion: Whether the law carries a dispersion
            parameter that must be estimated.
    """

    @property
    def name(self) -> str: ...

    @property
    def has_dispersion(self) -> bool: ...

    def validate(self, rate: Any, dispersion: float) -> None:
        """Raise :class:`DomainError` for an invalid rate / dispersion."""
        ...

    def pmf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        """Point mass at *k* (zero for negative or non-integer *k*)."""
        ...

    def logpmf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        """Log point mass at *k* (``-inf`` outside the support)."""
        ...

    def cdf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        """Cumulative distribution at *k* (zero for ``k < 0``)."""
        ...

    def rvs(
        self,
        rate: Any,
        dispersion: float,
        rng: np.random.Generator,
        size: int | None = None,
    ) -> Any:
        """Draw innovations at *rate* using *rng*."""
        ...


# ------------------------------------------------------------------ #
# Poisson
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class PoissonLaw:
    """Poisson innovations, evaluated through :mod:`scipy.stats`.

    The dispersion argument exists only for signature compatibility
    with :class:`GeneralizedPoissonLaw`; any non-zero value is
    rejected.
    """

    @property
    def name(self) -> str:
        return "poisson"

    @property
    def has_dispersion(self) -> bool:
        return False

    def validate(self, rate: Any, dispersion: float = 0.0) -> None:
        _check_rate(rate)
        if dispersion != 0:
            msg = f"The Poisson law has no dispersion parameter, got {dispersion!r}."
            raise DomainError(msg)

    def pmf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        self.validate(rate, dispersion)
        return _scalar_or_array(np.asarray(sp_stats.poisson.pmf(k, rate)))

    def logpmf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        self.validate(rate, dispersion)
        return _scalar_or_array(np.asarray(sp_stats.poisson.logpmf(k, rate)))

    def cdf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        self.validate(rate, dispersion)
        return _scalar_or_array(np.asarray(sp_stats.poisson.cdf(k, rate)))

    def rvs(
        self,
        rate: Any,
        dispersion: float,
        rng: np.random.Generator,
        size: int | None = None,
    ) -> Any:
        self.validate(rate, dispersion)
        return rng.poisson(rate, size=size)


# ------------------------------------------------------------------ #
# Generalized Poisson
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class GeneralizedPoissonLaw:
    """Generalized-Poisson innovations ``GP(λ, η)``.

    The mass function is evaluated in the log domain (see module
    docstring).  The cdf has no closed form and is the cumulative sum
    of the masses ``p(0), …, p(k)``.  Sampling inverts a cdf table
    truncated at ``1 − 1e-12``.
    """

    @property
    def name(self) -> str:
        return "gp"

    @property
    def has_dispersion(self) -> bool:
        return True

    def validate(self, rate: Any, dispersion: float) -> None:
        _check_rate(rate)
        if not np.isfinite(dispersion) or not 0.0 <= dispersion < 1.0:
            msg = f"Dispersion must lie in [0, 1), got {dispersion!r}."
            raise DomainError(msg)

    def _logpmf(self, k: Any, rate: Any, dispersion: float) -> np.ndarray:
        """Unvalidated log mass, broadcasting *k* against *rate*."""
        k_arr, rate_arr = np.broadcast_arrays(
            np.asarray(k, dtype=float), np.asarray(rate, dtype=float)
        )
        # Masses outside {0, 1, 2, …} are exactly zero.
        valid = (k_arr >= 0) & (np.mod(k_arr, 1) == 0)
        ks = np.where(valid, k_arr, 0.0)
        out = (
            np.log(rate_arr)
            + (ks - 1.0) * np.log(rate_arr + dispersion * ks)
            - rate_arr
            - dispersion * ks
            - gammaln(ks + 1.0)
        )
        return np.where(valid, out, -np.inf)

    def logpmf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        self.validate(rate, dispersion)
        return _scalar_or_array(self._logpmf(k, rate, dispersion))

    def pmf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        self.validate(rate, dispersion)
        return _scalar_or_array(np.exp(self._logpmf(k, rate, dispersion)))

    def cdf(self, k: Any, rate: Any, dispersion: float = 0.0) -> Any:
        self.validate(rate, dispersion)
        k_arr, rate_arr = np.broadcast_arrays(
            np.floor(np.asarray(k, dtype=float)), np.asarray(rate, dtype=float)
        )
        k_max = int(max(np.max(k_arr, initial=-1.0), 0.0))
        support = np.arange(k_max + 1, dtype=float)
        # Row r holds the cumulative masses 0..k_max at rate r.
        flat_rate = rate_arr.reshape(-1)
        table = np.cumsum(
            np.exp(self._logpmf(support[None, :], flat_rate[:, None], dispersion)),
            axis=1,
        )
        flat_k = k_arr.reshape(-1)
        idx = np.clip(flat_k, 0, k_max).astype(int)
        values = np.where(flat_k < 0, 0.0, table[np.arange(flat_k.size), idx])
        return _scalar_or_array(np.clip(values, 0.0, 1.0).reshape(k_arr.shape))

    def _cdf_table(self, rate: float, dispersion: float) -> np.ndarray:
        masses = truncated_support(
            lambda j: np.exp(self._logpmf(j, rate, dispersion)),
            tol=_SAMPLING_TOL,
        )
        return np.cumsum(masses)

    def rvs(
        self,
        rate: Any,
        dispersion: float,
        rng: np.random.Generator,
        size: int | None = None,
    ) -> Any:
        self.validate(rate, dispersion)
        rate_arr = np.asarray(rate, dtype=float)
        if rate_arr.ndim == 0:
            table = self._cdf_table(float(rate_arr), dispersion)
            u = rng.random(size)
            # Smallest k with F(k) > u.
            return np.searchsorted(table, u, side="right")

        draws = np.empty(rate_arr.shape, dtype=np.int64)
        for idx, r in np.ndenumerate(rate_arr):
            table = self._cdf_table(float(r), dispersion)
            draws[idx] = np.searchsorted(table, rng.random(), side="right")
        return draws


# ------------------------------------------------------------------ #
# Registry
# ------------------------------------------------------------------ #

_LAWS: dict[str, type] = {
    "poisson": PoissonLaw,
    "gp": GeneralizedPoissonLaw,
}

_ALIASES: dict[str, str] = {
    "poisson": "poisson",
    "gp": "gp",
    "generalized_poisson": "gp",
    "generalizedpoisson": "gp",
}


def canonical_family(name: str) -> str:
    """Map a user-facing family name to ``"poisson"`` or ``"gp"``.

    Raises:
        ConfigurationError: If *name* is not a known innovation family.
    """
    key = str(name).strip().lower().replace("-", "_")
    if key not in _ALIASES:
        msg = f"Unknown innovation family {name!r}.  Choose 'poisson' or 'gp'."
        raise ConfigurationError(msg)
    return _ALIASES[key]


def resolve_law(name: str | InnovationLaw) -> InnovationLaw:
    """Return the innovation law for *name* (instances pass through)."""
    if isinstance(name, InnovationLaw):
        return name
    law: InnovationLaw = _LAWS[canonical_family(name)]()
    return law
