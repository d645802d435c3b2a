"""Typed result objects for fits and diagnostics.

Frozen dataclasses that provide:

* **Attribute access**: ``result.params``, ``result.aic``, etc.
* **Dict-like access**: ``result["aic"]``, ``result.get("key")``,
  ``"key" in result`` for consumers that prefer bracket syntax.
* **Serialisation**: ``.to_dict()`` returns a plain ``dict[str, Any]``
  with all NumPy types converted to native Python.

Three result types mirror the three stages of an analysis:

* :class:`FittedModel`: maximum-likelihood estimates with standard
  errors and information criteria.
* :class:`BootstrapResult`: parametric-bootstrap ACF envelope.
* :class:`ScoreResult`: averaged proper scoring rules.

All are frozen to communicate that results are a snapshot of a
completed computation.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, fields
from typing import Any, ClassVar

import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from ._validation import check_open_unit
from .specs import ModelSpec
from .transitions import ConvolutionTransition, resolve_transition

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy scalars/arrays to Python-native types."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


def _spec_to_dict(spec: ModelSpec) -> dict[str, Any]:
    return {
        "family": spec.family,
        "order": spec.order,
        "n_covariates": spec.n_covariates,
        "link": spec.link,
        "covariate_names": spec.covariate_names,
    }


# ------------------------------------------------------------------ #
# Dict-compatibility mixin
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Dict-like access convenience for result dataclasses.

    Supports three access patterns:

    1. ``result["key"]``      raises ``KeyError`` on miss
    2. ``result.get(key, d)`` returns *d* on miss (default ``None``)
    3. ``"key" in result``    membership test

    Subclasses may override ``_SERIALIZERS`` to register conversion
    functions for non-primitive fields, and ``_ALIASES`` to expose
    fields under additional keys.
    """

    _SERIALIZERS: ClassVar[dict[str, Any]] = {"spec": _spec_to_dict}

    # Fields to exclude from to_dict() serialisation.
    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset()

    # Alternative bracket keys, e.g. ``"log.score"`` → ``log_score``.
    _ALIASES: ClassVar[dict[str, str]] = {}

    def __getitem__(self, key: str) -> Any:
        """Attribute lookup via bracket syntax."""
        try:
            return getattr(self, self._ALIASES.get(key, key))
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        """Attribute lookup with a fallback default."""
        return getattr(self, self._ALIASES.get(key, key), default)

    def __contains__(self, key: object) -> bool:
        """Membership test: ``"key" in result``."""
        if not isinstance(key, str):
            return False
        return hasattr(self, self._ALIASES.get(key, key))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain, JSON-serialisable dictionary."""
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            if f.name in self._EXCLUDE_FROM_DICT:
                continue
            val = getattr(self, f.name)
            if f.name in self._SERIALIZERS:
                val = self._SERIALIZERS[f.name](val)
            result[f.name] = _numpy_to_python(val)
        return result


# ------------------------------------------------------------------ #
# FittedModel
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class FittedModel(_DictAccessMixin):
    """Result of :func:`~coco_ts.fit`.

    All fields are accessible both as attributes (``fitted.aic``) and
    via dict syntax (``fitted["aic"]``).
    """

    # ---- Model -----------------------------------------------------
    spec: ModelSpec
    """Specification of the fitted model."""

    # ---- Estimates -------------------------------------------------
    params: np.ndarray
    """Maximum-likelihood estimates in the layout of ``spec``."""

    param_names: list[str]
    """Parameter names aligned with ``params``."""

    std_errors: np.ndarray
    """Square roots of the diagonal of ``covariance`` (``NaN`` where undefined)."""

    covariance: np.ndarray
    """Inverse of the observed information (numerical Hessian)."""

    # ---- Fit statistics --------------------------------------------
    log_likelihood: float
    """Maximised conditional log-likelihood."""

    aic: float
    """``2k − 2ℓ``."""

    bic: float
    """``k·log(T) − 2ℓ``."""

    # ---- Optimizer -------------------------------------------------
    converged: bool
    """Whether the optimizer reported success."""

    n_iter: int
    """Number of optimizer iterations."""

    message: str
    """Optimizer termination message."""

    # ---- Data ------------------------------------------------------
    series: np.ndarray
    """The observed series (integer array)."""

    xreg: np.ndarray | None
    """Covariate matrix, or ``None``."""

    # ---- Provenance ------------------------------------------------
    backend: str
    """Name of the backend that evaluated the likelihood."""

    duration: float
    """Wall-clock seconds spent fitting."""

    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset({"series", "xreg"})

    @property
    def n_params(self) -> int:
        return int(self.params.size)

    @property
    def n_obs(self) -> int:
        return int(self.series.size)

    @property
    def transition(self) -> ConvolutionTransition:
        """Transition law of the fitted model."""
        return resolve_transition(self.spec)

    def rates(self) -> Any:
        """Fitted innovation rate (a float, or one rate per time point)."""
        return self.spec.rates(self.params, self.xreg)

    def summary(self, alpha: float = 0.05) -> pd.DataFrame:
        """Coefficient table with Wald statistics.

        Args:
            alpha: Significance level of the confidence intervals.

        Returns:
            DataFrame indexed by parameter name with columns
            ``estimate``, ``std_error``, ``z_value``, ``ci_lower`` and
            ``ci_upper``.
        """
        alpha = check_open_unit(alpha, name="alpha")
        crit = float(sp_stats.norm.ppf(1.0 - alpha / 2.0))
        with np.errstate(divide="ignore", invalid="ignore"):
            z = self.params / self.std_errors
        return pd.DataFrame(
            {
                "estimate": self.params,
                "std_error": self.std_errors,
                "z_value": z,
                "ci_lower": self.params - crit * self.std_errors,
                "ci_upper": self.params + crit * self.std_errors,
            },
            index=pd.Index(self.param_names, name="parameter"),
        )


# ------------------------------------------------------------------ #
# BootstrapResult
# ------------------------------------------------------------------ #


def envelope_bounds(
    replicates: np.ndarray, alpha: float
) -> tuple[np.ndarray, np.ndarray]:
    """Per-lag ``alpha/2`` and ``1 − alpha/2`` quantiles of *replicates*.

    ``NaN`` replicates (constant simulated paths) are ignored; a lag
    with no finite replicate gets ``NaN`` bounds.
    """
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        lower, upper = np.nanquantile(
            replicates, [alpha / 2.0, 1.0 - alpha / 2.0], axis=0
        )
    return np.asarray(lower), np.asarray(upper)


@dataclass(frozen=True)
class BootstrapResult(_DictAccessMixin):
    """Result of :func:`~coco_ts.bootstrap_acf`."""

    spec: ModelSpec
    """Specification of the model that generated the replicates."""

    lags: np.ndarray
    """Lags ``1..L``."""

    observed_acf: np.ndarray
    """Sample autocorrelations of the observed series."""

    lower: np.ndarray
    """Per-lag lower envelope at level ``alpha``."""

    upper: np.ndarray
    """Per-lag upper envelope at level ``alpha``."""

    replicates: np.ndarray
    """Bootstrap autocorrelation matrix ``(B, L)``."""

    alpha: float
    """Significance level of ``lower`` / ``upper``."""

    n_replicates: int
    """Number of bootstrap replicates ``B``."""

    backend: str
    """Name of the backend that simulated the replicates."""

    duration: float
    """Wall-clock seconds spent on the bootstrap."""

    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset({"replicates"})

    @property
    def outside(self) -> np.ndarray:
        """Boolean mask of lags whose observed ACF leaves the envelope."""
        return (self.observed_acf < self.lower) | (self.observed_acf > self.upper)

    def envelope(self, alpha: float | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Recompute the envelope at another level from the stored replicates.

        Args:
            alpha: Significance level in ``(0, 1)``; defaults to the
                level the bootstrap was run with.

        Returns:
            ``(lower, upper)`` arrays of length ``L``.
        """
        if alpha is None:
            return self.lower, self.upper
        return envelope_bounds(self.replicates, check_open_unit(alpha, name="alpha"))

    def to_frame(self) -> pd.DataFrame:
        """Lag-indexed table of the observed ACF and its envelope."""
        return pd.DataFrame(
            {
                "observed_acf": self.observed_acf,
                "lower": self.lower,
                "upper": self.upper,
                "outside": self.outside,
            },
            index=pd.Index(self.lags, name="lag"),
        )


# ------------------------------------------------------------------ #
# ScoreResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class ScoreResult(_DictAccessMixin):
    """Result of :func:`~coco_ts.score`.

    ``result["log.score"]`` and friends are accepted as aliases of the
    attribute names, and :meth:`to_dict` uses the dotted keys.
    """

    log_score: float
    """Average logarithmic score."""

    quad_score: float
    """Average quadratic score."""

    rps_score: float
    """Average ranked probability score."""

    aic: float
    """AIC of the scored model."""

    bic: float
    """BIC of the scored model."""

    n_terms: int
    """Number of time points averaged over (``T − order``)."""

    tol: float
    """Truncation tolerance used for the support sums."""

    _ALIASES: ClassVar[dict[str, str]] = {
        "log.score": "log_score",
        "quad.score": "quad_score",
        "rps.score": "rps_score",
    }

    def to_dict(self) -> dict[str, Any]:
        """``{"log.score", "quad.score", "rps.score", "aic", "bic"}`` mapping."""
        out = {alias: getattr(self, attr) for alias, attr in self._ALIASES.items()}
        out["aic"] = self.aic
        out["bic"] = self.bic
        return _numpy_to_python(out)
