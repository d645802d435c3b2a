"""Truncated evaluation of probability mass over an unbounded support.

Several quantities in this package are sums over the whole
non-negative integer line: the normaliser of the quadratic score, the
ranked probability score, the truncated conditional support, and the
cdf table used to sample Generalized-Poisson innovations.  All of them
are evaluated by :func:`truncated_support`, which generates terms
``term(0), term(1), …`` and stops once the running sum of the terms
exceeds ``1 − tol``.

Termination
~~~~~~~~~~~
The terms are point masses of a proper distribution on ``{0, 1, …}``,
so the running sum converges to 1 and eventually exceeds ``1 − tol``
for every ``tol > 0``.  Poisson and Generalized-Poisson tails decay at
least geometrically, and the binomially-thinned part of a transition
has bounded support, so the number of terms is small in practice
(tens for typical counts).  ``max_terms`` only guards against a
parameter set that violates the model's preconditions (e.g. a mass
function that does not sum to one); reaching it raises
:class:`~coco_ts.exceptions.ConvergenceError` rather than looping
forever.
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np

from ._validation import check_open_unit
from .exceptions import ConvergenceError

DEFAULT_TOL = 1e-10
"""Default truncation tolerance: stop once the cdf exceeds ``1 − 1e-10``."""

MAX_TERMS = 100_000


def truncated_support(
    term: Callable[[int], float],
    tol: float = DEFAULT_TOL,
    *,
    max_terms: int = MAX_TERMS,
) -> np.ndarray:
    """Evaluate point masses until their cumulative sum exceeds ``1 − tol``.

    The term that pushes the running sum over the threshold is
    included, so the returned array always carries at least
    ``1 − tol`` of the probability mass.

    Args:
        term: Callable returning the mass at ``j`` for ``j = 0, 1, …``.
        tol: Truncation tolerance in ``(0, 1)``.
        max_terms: Upper bound on the number of terms evaluated.

    Returns:
        Array of the evaluated terms, ``[term(0), …, term(J)]``.

    Raises:
        ConfigurationError: If *tol* is outside ``(0, 1)``.
        ConvergenceError: If *max_terms* terms do not accumulate
            ``1 − tol`` of mass.
    """
    tol = check_open_unit(tol, name="tol")
    threshold = 1.0 - tol
    terms: list[float] = []
    total = 0.0
    for j in range(max_terms):
        value = float(term(j))
        terms.append(value)
        total += value
        if total > threshold:
            return np.asarray(terms)

    msg = (
        f"Truncated sum did not reach 1 - {tol:g} within {max_terms} terms "
        f"(accumulated mass {total:.12f}).  The parameters do not define "
        f"a proper distribution."
    )
    raise ConvergenceError(msg, n_iter=max_terms)
