"""Link functions mapping a linear predictor to an innovation rate.

In regression models the innovation rate at time ``t`` is
``λ_t = g⁻¹(x_t'β)`` where ``x_t`` is the covariate row and ``β`` the
coefficient vector.  Three response functions are supported:

=============  ========================  ==========================
Name           ``λ = g⁻¹(η)``            Notes
=============  ========================  ==========================
``"log"``      ``exp(η)``                always positive
``"identity"`` ``η``                     requires ``η > 0``
``"relu"``     ``max(η, 0)``             requires ``η > 0``
=============  ========================  ==========================

For ``identity`` and ``relu`` the fitting routine adds the
inequality constraint ``x_t'β > 0`` on every row.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class LinkFunction:
    """A named response function and its inverse.

    Attributes:
        name: Registry key.
        response: Maps the linear predictor to the rate.
        inverse: Maps a rate back to the linear predictor (used for
            starting values).
        needs_positive_predictor: Whether ``x'β > 0`` must be
            enforced as a constraint during fitting.
    """

    name: str
    response: Callable[[np.ndarray], np.ndarray]
    inverse: Callable[[np.ndarray], np.ndarray]
    needs_positive_predictor: bool

    def __call__(self, eta: np.ndarray) -> np.ndarray:
        return self.response(eta)


_LINKS: dict[str, LinkFunction] = {
    "log": LinkFunction("log", np.exp, np.log, False),
    "identity": LinkFunction(
        "identity", lambda eta: np.asarray(eta, dtype=float), lambda mu: mu, True
    ),
    "relu": LinkFunction(
        "relu", lambda eta: np.maximum(eta, 0.0), lambda mu: mu, True
    ),
}


def resolve_link(name: str | LinkFunction) -> LinkFunction:
    """Return the :class:`LinkFunction` registered under *name*.

    Raises:
        ConfigurationError: If *name* is not a registered link.
    """
    if isinstance(name, LinkFunction):
        return name
    key = str(name).strip().lower()
    if key not in _LINKS:
        msg = f"Unknown link function {name!r}.  Choose from: {sorted(_LINKS)}."
        raise ConfigurationError(msg)
    return _LINKS[key]
