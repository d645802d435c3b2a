"""Model specification and parameter-vector layout.

A :class:`ModelSpec` is the single tagged description of a model:
the innovation family, Markov order, regressor count and link.  Everything
else is derived from it: the transition density class (see
:func:`~coco_ts.transitions.resolve_transition`), the names and order
of the parameters, their admissible ranges, and the optimizer
constraints.

Parameter layout
~~~~~~~~~~~~~~~~
=====================  ==========================================
Model                  Parameter vector
=====================  ==========================================
order 1                ``(lambda, alpha[, eta])``
order 2                ``(lambda, alpha1, alpha2, alpha3[, eta])``
order 1, regression    ``(alpha[, eta], beta_0, …, beta_{p−1})``
order 2, regression    ``(alpha1, alpha2, alpha3[, eta], beta_0, …)``
=====================  ==========================================

``eta`` is present only for the Generalized-Poisson family.  In
regression models the rate is ``λ_t = g⁻¹(x_t'β)`` and the thinning /
dispersion parameters come first.

Admissible region
~~~~~~~~~~~~~~~~~
* every thinning probability lies in ``(0, 1)``;
* order 2: ``alpha1 + alpha2 + alpha3 < 1`` (stationarity) and
  ``2·alpha1 + alpha3 < 1`` (the lag-one share of the shared
  component must leave a valid thinning probability, see
  :class:`~coco_ts.transitions.SecondOrderTransition`);
* ``eta ∈ [0, 1)``;
* the rate is strictly positive at every time point.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from .exceptions import ConfigurationError, DomainError
from .innovations import InnovationLaw, canonical_family, resolve_law
from .links import LinkFunction, resolve_link

_THINNING_NAMES: dict[int, tuple[str, ...]] = {
    1: ("alpha",),
    2: ("alpha1", "alpha2", "alpha3"),
}


@dataclass(frozen=True)
class ModelSpec:
    """Tagged description of a convolution-closed count model.

    Attributes:
        family: ``"poisson"`` or ``"gp"`` (aliases such as
            ``"generalized_poisson"`` are normalised).
        order: Markov order, 1 or 2.
        n_covariates: Number of regressor columns (0 for a model
            with a constant rate).
        link: Link function name (``"log"``, ``"identity"``,
            ``"relu"``); only used when ``n_covariates > 0``.
        covariate_names: Optional regressor names, used to label the
            coefficients.
    """

    family: str = "poisson"
    order: int = 1
    n_covariates: int = 0
    link: str = "log"
    covariate_names: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "family", canonical_family(self.family))
        if self.order not in _THINNING_NAMES:
            msg = f"Model order must be 1 or 2, got {self.order!r}."
            raise ConfigurationError(msg)
        if int(self.n_covariates) != self.n_covariates or self.n_covariates < 0:
            msg = f"'n_covariates' must be a non-negative integer, got {self.n_covariates!r}."
            raise ConfigurationError(msg)
        object.__setattr__(self, "n_covariates", int(self.n_covariates))
        object.__setattr__(self, "link", resolve_link(self.link).name)
        if self.covariate_names is not None:
            names = tuple(str(n) for n in self.covariate_names)
            if len(names) != self.n_covariates:
                msg = (
                    f"Got {len(names)} covariate names for "
                    f"{self.n_covariates} covariates."
                )
                raise ConfigurationError(msg)
            object.__setattr__(self, "covariate_names", names)

    # ---- Derived properties ----------------------------------------

    @property
    def has_covariates(self) -> bool:
        return self.n_covariates > 0

    @property
    def has_dispersion(self) -> bool:
        return self.family == "gp"

    @property
    def law(self) -> InnovationLaw:
        return resolve_law(self.family)

    @property
    def link_function(self) -> LinkFunction:
        return resolve_link(self.link)

    @property
    def n_thinning(self) -> int:
        return len(_THINNING_NAMES[self.order])

    @property
    def label(self) -> str:
        """Short human-readable model label, e.g. ``"GP2"``."""
        base = "Poisson" if self.family == "poisson" else "GP"
        return f"{base}{self.order}"

    @property
    def param_names(self) -> list[str]:
        """Names of the parameters in vector order."""
        names = list(_THINNING_NAMES[self.order])
        if self.has_dispersion:
            names.append("eta")
        if not self.has_covariates:
            return ["lambda", *names]
        if self.covariate_names is not None:
            betas = [f"beta_{n}" for n in self.covariate_names]
        else:
            betas = [f"beta_{i}" for i in range(self.n_covariates)]
        return [*names, *betas]

    @property
    def n_params(self) -> int:
        return len(self.param_names)

    # ---- Parameter handling ----------------------------------------

    def split(self, params: Any) -> tuple[Any, np.ndarray, float]:
        """Split a parameter vector into its components.

        Args:
            params: Parameter vector in the layout described in the
                module docstring.

        Returns:
            ``(rate_or_beta, thinning, dispersion)`` where
            *rate_or_beta* is the scalar rate for models without
            covariates and the coefficient vector otherwise.

        Raises:
            DomainError: If the length does not match the layout.
        """
        theta = np.asarray(params, dtype=float).reshape(-1)
        if theta.size != self.n_params:
            msg = (
                f"{self.label} model expects {self.n_params} parameters "
                f"{self.param_names}, got {theta.size}."
            )
            raise DomainError(msg)

        nt = self.n_thinning
        if self.has_covariates:
            thinning = theta[:nt]
            dispersion = float(theta[nt]) if self.has_dispersion else 0.0
            beta = theta[nt + int(self.has_dispersion) :]
            return beta, thinning, dispersion

        rate = float(theta[0])
        thinning = theta[1 : 1 + nt]
        dispersion = float(theta[1 + nt]) if self.has_dispersion else 0.0
        return rate, thinning, dispersion

    def validate(self, params: Any) -> np.ndarray:
        """Check *params* against the admissible region.

        Returns:
            The parameter vector as a 1-D float array.

        Raises:
            DomainError: If any parameter lies outside its range.
        """
        theta = np.asarray(params, dtype=float).reshape(-1)
        rate, thinning, dispersion = self.split(theta)
        if not np.all(np.isfinite(theta)):
            msg = f"Parameters must be finite, got {theta.tolist()}."
            raise DomainError(msg)
        if np.any(thinning <= 0) or np.any(thinning >= 1):
            msg = f"Thinning probabilities must lie in (0, 1), got {thinning.tolist()}."
            raise DomainError(msg)
        if self.order == 2:
            a1, a2, a3 = thinning
            if a1 + a2 + a3 >= 1:
                msg = (
                    "Second-order models require alpha1 + alpha2 + alpha3 < 1, "
                    f"got {a1 + a2 + a3:.6g}."
                )
                raise DomainError(msg)
            if 2 * a1 + a3 >= 1:
                msg = (
                    "Second-order models require 2*alpha1 + alpha3 < 1, "
                    f"got {2 * a1 + a3:.6g}."
                )
                raise DomainError(msg)
        if not 0.0 <= dispersion < 1.0:
            msg = f"Dispersion eta must lie in [0, 1), got {dispersion!r}."
            raise DomainError(msg)
        if not self.has_covariates and rate <= 0:
            msg = f"Rate lambda must be strictly positive, got {rate!r}."
            raise DomainError(msg)
        return theta

    def check_covariates(self, xreg: np.ndarray, n_rows: int | None = None) -> None:
        """Validate a covariate matrix against this specification.

        Raises:
            DomainError: If the column count differs from
                ``n_covariates`` or the row count from *n_rows*.
        """
        if xreg.ndim != 2 or xreg.shape[1] != self.n_covariates:
            msg = (
                f"Covariate matrix must have {self.n_covariates} columns, "
                f"got shape {xreg.shape}."
            )
            raise DomainError(msg)
        if n_rows is not None and xreg.shape[0] != n_rows:
            msg = (
                f"Covariate matrix has {xreg.shape[0]} rows but the series "
                f"has {n_rows} observations."
            )
            raise DomainError(msg)

    def rates(self, params: Any, xreg: np.ndarray | None = None) -> Any:
        """Innovation rate(s) implied by *params*.

        Returns:
            A float for models without covariates; an array with one
            rate per row of *xreg* otherwise.

        Raises:
            DomainError: If a regression model is given no covariates,
                or a rate is not strictly positive.
        """
        rate_or_beta, _, _ = self.split(params)
        if not self.has_covariates:
            return rate_or_beta
        if xreg is None:
            msg = f"{self.label} regression model requires a covariate matrix."
            raise DomainError(msg)
        xreg = np.atleast_2d(np.asarray(xreg, dtype=float))
        self.check_covariates(xreg)
        rates = np.asarray(self.link_function(xreg @ rate_or_beta), dtype=float)
        if not np.all(np.isfinite(rates)) or np.any(rates <= 0):
            msg = (
                f"The '{self.link}' link produced non-positive or non-finite "
                "rates; choose coefficients with x'beta > 0 on every row."
            )
            raise DomainError(msg)
        return rates

    def stationary_rate(self, rate: float, thinning: np.ndarray) -> float:
        """Rate of the stationary marginal used to seed simulations."""
        return float(rate / (1.0 - np.sum(thinning)))
