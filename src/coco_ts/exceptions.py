"""Exception taxonomy for the coco_ts package.

Three failure classes are distinguished so that callers can react to
each one separately:

* :class:`DomainError`: malformed inputs such as negative or non-integer
  counts, parameters outside their declared range, a parameter vector
  whose length does not match the model layout, covariate matrices
  that do not line up with the series.
* :class:`ConfigurationError`: invalid tuning options such as a truncation
  tolerance outside ``(0, 1)``, non-positive lag or replicate counts,
  an unknown link function.
* :class:`ConvergenceError`: the optimizer did not meet its tolerance
  within its iteration budget.  The best parameter vector found so far
  is attached so that partial progress can be inspected.

``DomainError`` and ``ConfigurationError`` subclass :class:`ValueError`
and ``ConvergenceError`` subclasses :class:`RuntimeError`, so existing
``except ValueError`` handlers keep working.
"""

from __future__ import annotations

from typing import Any

import numpy as np


class CocoError(Exception):
    """Base class for all errors raised by coco_ts."""


class DomainError(CocoError, ValueError):
    """Raised when an input lies outside the model's domain."""


class ConfigurationError(CocoError, ValueError):
    """Raised when a tuning option is invalid."""


class ConvergenceError(CocoError, RuntimeError):
    """Raised when the optimizer fails to converge.

    Attributes:
        best_params: Parameter vector at the last optimizer iterate.
        n_iter: Number of iterations the optimizer performed.
        optimizer_message: Message reported by the optimizer.
    """

    def __init__(
        self,
        msg: str,
        *,
        best_params: np.ndarray | None = None,
        n_iter: int | None = None,
        optimizer_message: str | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(msg)
        self.best_params = None if best_params is None else np.asarray(best_params)
        self.n_iter = n_iter
        self.optimizer_message = optimizer_message
        self.extra = extra
