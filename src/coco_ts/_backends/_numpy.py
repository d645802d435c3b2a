"""NumPy / SciPy / statsmodels backend (always available).

The native engine.  Every method delegates to the pure kernels of the
package:

* likelihood: :meth:`~coco_ts.transitions.ConvolutionTransition.log_pmf_series`
  (vectorised over time for first-order models, cached per distinct
  ``(history, rate)`` for second-order models);
* Hessian: :func:`statsmodels.tools.numdiff.approx_hess3`, a
  central-difference scheme with relative step sizes;
* bootstrap: :func:`coco_ts.bootstrap.bootstrap_replicates`, optionally
  parallelised with joblib;
* scoring: :func:`coco_ts.scoring.score_terms`.

Warning suppression
~~~~~~~~~~~~~~~~~~~
Finite differences evaluated next to the boundary of the parameter
region (for example ``eta`` close to 0) can step outside it.  The
objective passed to :meth:`NumpyBackend.hessian` then returns ``NaN``
and NumPy emits ``RuntimeWarning`` for the resulting arithmetic; those
warnings are suppressed here and the ``NaN`` entries are reported by
the caller as undefined standard errors instead.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np
from statsmodels.tools.numdiff import approx_hess3

from ..bootstrap import bootstrap_replicates
from ..scoring import score_terms

if TYPE_CHECKING:
    from ..transitions import ConvolutionTransition


@dataclass(frozen=True)
class NumpyBackend:
    """Native compute backend.

    The class is a frozen dataclass with no instance state; it only
    namespaces the kernels behind the :class:`BackendProtocol`
    interface, so it is safe to cache in ``_BACKEND_CACHE``.
    """

    @property
    def name(self) -> str:
        return "numpy"

    @property
    def is_available(self) -> bool:  # noqa: PLR6301
        return True

    def negative_log_likelihood(
        self,
        transition: ConvolutionTransition,
        series: np.ndarray,
        params: np.ndarray,
        xreg: np.ndarray | None = None,
    ) -> float:
        return -float(np.sum(transition.log_pmf_series(series, params, xreg)))

    def hessian(
        self,
        fun: Callable[[np.ndarray], float],
        x: np.ndarray,
    ) -> np.ndarray:
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=RuntimeWarning)
            return np.asarray(approx_hess3(np.asarray(x, dtype=float), fun))

    def bootstrap_acf(
        self,
        transition: ConvolutionTransition,
        params: np.ndarray,
        length: int,
        *,
        n_lags: int,
        n_replicates: int,
        burn_in: int = 0,
        xreg: np.ndarray | None = None,
        seed: Any = None,
        n_jobs: int = 1,
    ) -> np.ndarray:
        return bootstrap_replicates(
            transition,
            params,
            length,
            n_lags=n_lags,
            n_replicates=n_replicates,
            burn_in=burn_in,
            xreg=xreg,
            seed=seed,
            n_jobs=n_jobs,
        )

    def score_terms(
        self,
        transition: ConvolutionTransition,
        series: np.ndarray,
        params: np.ndarray,
        xreg: np.ndarray | None = None,
        tol: float = 1e-10,
    ) -> tuple[float, float, float, int]:
        return score_terms(transition, series, params, xreg, tol)
