"""Validation helpers for tuning options.

Every public entry point checks its options here before doing any
work, so an invalid option fails fast with a
:class:`~coco_ts.exceptions.ConfigurationError` instead of surfacing
halfway through a bootstrap or an optimizer run.
"""

from __future__ import annotations

import math
import numbers
from typing import Any

from .exceptions import ConfigurationError


def check_positive_int(value: Any, *, name: str, minimum: int = 1) -> int:
    """Return *value* as an int ``>= minimum``.

    Raises:
        ConfigurationError: If *value* is not an integer (booleans
            included) or is below *minimum*.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        msg = f"'{name}' must be an integer >= {minimum}, got {value!r}."
        raise ConfigurationError(msg)
    if not math.isfinite(value) or value != int(value) or int(value) < minimum:
        msg = f"'{name}' must be an integer >= {minimum}, got {value!r}."
        raise ConfigurationError(msg)
    return int(value)


def check_open_unit(value: Any, *, name: str) -> float:
    """Return *value* as a float strictly inside ``(0, 1)``.

    Raises:
        ConfigurationError: If *value* is not a real number in
            ``(0, 1)``.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        msg = f"'{name}' must be a real number in (0, 1), got {value!r}."
        raise ConfigurationError(msg)
    if not 0.0 < float(value) < 1.0:
        msg = f"'{name}' must lie strictly between 0 and 1, got {value!r}."
        raise ConfigurationError(msg)
    return float(value)
