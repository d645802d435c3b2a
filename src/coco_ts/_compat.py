"""Input compatibility layer for array-like series and covariates.

All public entry points accept plain sequences, NumPy arrays and
pandas objects.  This module converts them to NumPy at the boundary so
that the engine only ever sees ``np.ndarray``.  Polars Series and
DataFrames (and LazyFrames) are accepted transparently when Polars is
installed.

Polars is **not** a required dependency.  If it is not installed, the
converters simply handle the NumPy / pandas cases.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from .exceptions import DomainError

if TYPE_CHECKING:
    from ._typing import ArrayLike

# Polars is optional; detect it at runtime.
try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _to_pandas(obj: Any) -> Any:
    """Convert Polars containers to their pandas equivalents."""
    if _HAS_POLARS:
        if isinstance(obj, pl.LazyFrame):
            return obj.collect().to_pandas()
        if isinstance(obj, (pl.DataFrame, pl.Series)):
            return obj.to_pandas()
    return obj


def _as_count_series(obj: ArrayLike, *, name: str = "series") -> np.ndarray:
    """Convert *obj* to a 1-D integer array of non-negative counts.

    Args:
        obj: Sequence, NumPy array, pandas Series, single-column
            DataFrame, or Polars equivalent.
        name: Label used in error messages.

    Returns:
        A 1-D ``int64`` array.

    Raises:
        DomainError: If *obj* is not one-dimensional, is empty, or
            contains negative, non-integer or non-finite values.
    """
    obj = _to_pandas(obj)
    if isinstance(obj, pd.DataFrame):
        if obj.shape[1] != 1:
            msg = f"'{name}' must have exactly one column, got {obj.shape[1]}."
            raise DomainError(msg)
        obj = obj.iloc[:, 0]

    try:
        values = np.asarray(obj, dtype=float)
    except (TypeError, ValueError):
        msg = f"'{name}' must contain numeric values."
        raise DomainError(msg) from None

    if values.ndim != 1:
        msg = f"'{name}' must be one-dimensional, got shape {values.shape}."
        raise DomainError(msg)
    if values.size == 0:
        msg = f"'{name}' must contain at least one observation."
        raise DomainError(msg)
    if not np.all(np.isfinite(values)):
        msg = f"'{name}' contains NaN or infinite values."
        raise DomainError(msg)
    if np.any(values < 0):
        msg = f"'{name}' must contain non-negative counts."
        raise DomainError(msg)
    if not np.all(np.equal(np.mod(values, 1), 0)):
        msg = f"'{name}' must contain integer counts."
        raise DomainError(msg)
    return values.astype(np.int64)


def _as_covariate_matrix(
    obj: ArrayLike,
    *,
    name: str = "xreg",
) -> tuple[np.ndarray, tuple[str, ...] | None]:
    """Convert *obj* to a 2-D float matrix of regressors.

    A 1-D input is treated as a single regressor column.  When *obj*
    is a DataFrame its column names are returned alongside the values.

    Returns:
        ``(matrix, column_names)``; *column_names* is ``None`` for
        unnamed inputs.

    Raises:
        DomainError: If the matrix is empty, has more than two
            dimensions, or contains non-finite values.
    """
    obj = _to_pandas(obj)
    names: tuple[str, ...] | None = None
    if isinstance(obj, pd.DataFrame):
        names = tuple(str(c) for c in obj.columns)
    elif isinstance(obj, pd.Series) and obj.name is not None:
        names = (str(obj.name),)

    try:
        values = np.asarray(obj, dtype=float)
    except (TypeError, ValueError):
        msg = f"'{name}' must contain numeric values."
        raise DomainError(msg) from None

    if values.ndim == 1:
        values = values[:, None]
    if values.ndim != 2:
        msg = f"'{name}' must be two-dimensional, got shape {values.shape}."
        raise DomainError(msg)
    if values.shape[0] == 0 or values.shape[1] == 0:
        msg = f"'{name}' must have at least one row and one column."
        raise DomainError(msg)
    if not np.all(np.isfinite(values)):
        msg = f"'{name}' contains NaN or infinite values."
        raise DomainError(msg)
    return values, names
