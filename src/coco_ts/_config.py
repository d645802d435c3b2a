"""Backend configuration for the coco_ts package.

Controls which execution backend evaluates likelihoods, runs the
parametric bootstrap, and computes scoring rules.  The native NumPy /
SciPy engine is always available; alternate backends (for example a
bridge to an external numerical environment) are added at runtime via
:func:`~coco_ts._backends.register_backend`.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_backend`.
    2. The ``COCO_TS_BACKEND`` environment variable.
    3. The default, ``"numpy"``.

Backend names are case-insensitive.

Examples:
    Select a registered external backend from the shell::

        export COCO_TS_BACKEND=julia

    Return to the native engine programmatically::

        import coco_ts
        coco_ts.set_backend("numpy")

    Re-enable environment / default resolution::

        coco_ts.set_backend("auto")
"""

from __future__ import annotations

import os

_DEFAULT_BACKEND = "numpy"

# Names accepted by set_backend().  ``register_backend`` adds to this.
_KNOWN_BACKENDS = {"numpy"}

# Sentinel indicating "no programmatic override has been set".
_backend_override: str | None = None


def _add_backend_name(name: str) -> None:
    """Make *name* selectable through :func:`set_backend`."""
    _KNOWN_BACKENDS.add(name.strip().lower())


def get_backend() -> str:
    """Return the active backend name.

    Resolution order:
        1. Value set by :func:`set_backend` (unless ``"auto"``).
        2. ``COCO_TS_BACKEND`` environment variable, when it names a
           known backend.
        3. ``"numpy"``.

    Returns:
        The backend name, lower-cased.
    """
    # 1. Programmatic override
    if _backend_override is not None and _backend_override != "auto":
        return _backend_override

    # 2. Environment variable
    env = os.environ.get("COCO_TS_BACKEND", "").strip().lower()
    if env in _KNOWN_BACKENDS:
        return env

    # 3. Default
    return _DEFAULT_BACKEND


def set_backend(name: str) -> None:
    """Override the backend selection.

    Args:
        name: A registered backend name or ``"auto"``
            (case-insensitive).  ``"auto"`` restores the default
            resolution order.

    Raises:
        ValueError: If *name* is not a recognised backend.
    """
    global _backend_override
    normalised = name.strip().lower()
    valid = _KNOWN_BACKENDS | {"auto"}
    if normalised not in valid:
        raise ValueError(f"Unknown backend '{name}'. Choose from: {sorted(valid)}")
    _backend_override = normalised
