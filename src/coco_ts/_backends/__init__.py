"""Backend abstraction layer for likelihood, bootstrap and scoring work.

Each backend implements the :class:`BackendProtocol` interface, the
contract for the numerically heavy operations of the package: the
negative log-likelihood the optimizer minimises, the numerical Hessian
behind the standard errors, the batch of parametric-bootstrap
autocorrelations, and the scoring-rule sums.  The fitting and
diagnostics modules dispatch to the active backend via
:func:`resolve_backend` rather than calling a particular engine
directly.

Resolution follows the policy set by :mod:`.._config`:

1. Programmatic override via :func:`~coco_ts.set_backend`.
2. ``COCO_TS_BACKEND`` environment variable.
3. The native ``"numpy"`` backend.

Every backend computes the same quantities; they differ only in how.
The native backend (:mod:`._numpy`) is always available.  Additional
engines, for instance a bridge that delegates the likelihood to an
external numerical environment, are plugged in at runtime:

1. Write a class implementing :class:`BackendProtocol`.
2. Call ``register_backend("name", factory)``.

When a registered backend reports ``is_available == False`` and is
explicitly requested, an :class:`ImportError` is raised; explicit
requests are never silently degraded to another engine.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import numpy as np

from .. import _config
from .._config import get_backend

if TYPE_CHECKING:
    from ..transitions import ConvolutionTransition

# ------------------------------------------------------------------ #
# BackendProtocol
# ------------------------------------------------------------------ #


@runtime_checkable
class BackendProtocol(Protocol):
    """Interface that every compute backend must implement.

    All methods receive already-validated NumPy inputs (the public
    functions in :mod:`coco_ts.fitting` and :mod:`coco_ts.diagnostics`
    do the checking) and return plain floats or NumPy arrays.

    Attributes:
        name: Short identifier (e.g. ``"numpy"``).
    """

    @property
    def name(self) -> str: ...

    @property
    def is_available(self) -> bool:
        """Whether the backend's dependencies are importable."""
        ...

    def negative_log_likelihood(
        self,
        transition: ConvolutionTransition,
        series: np.ndarray,
        params: np.ndarray,
        xreg: np.ndarray | None = None,
    ) -> float:
        """Negative conditional log-likelihood of *series* at *params*.

        Returns ``inf`` when an observed transition has zero
        probability.  Raises
        :class:`~coco_ts.exceptions.DomainError` for parameters
        outside the admissible region.
        """
        ...

    def hessian(
        self,
        fun: Callable[[np.ndarray], float],
        x: np.ndarray,
    ) -> np.ndarray:
        """Numerical Hessian of the scalar function *fun* at *x*."""
        ...

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
        """Autocorrelations of simulated paths, shape ``(n_replicates, n_lags)``."""
        ...

    def score_terms(
        self,
        transition: ConvolutionTransition,
        series: np.ndarray,
        params: np.ndarray,
        xreg: np.ndarray | None = None,
        tol: float = 1e-10,
    ) -> tuple[float, float, float, int]:
        """Average ``(log, quadratic, ranked probability)`` scores and term count."""
        ...


# ------------------------------------------------------------------ #
# Backend registry and resolution
# ------------------------------------------------------------------ #

# Factories for backends added at runtime, keyed by lower-case name.
_BACKEND_FACTORIES: dict[str, Callable[[], BackendProtocol]] = {}

# Singleton cache, instantiated once per backend name.
_BACKEND_CACHE: dict[str, BackendProtocol] = {}


def register_backend(name: str, factory: Callable[[], BackendProtocol]) -> None:
    """Register a backend factory under *name*.

    The factory is called lazily, the first time the backend is
    resolved.  Registering a name again replaces the previous factory
    and drops any cached instance.

    Args:
        name: Backend identifier (case-insensitive).
        factory: Zero-argument callable returning a
            :class:`BackendProtocol` implementation.

    Raises:
        ValueError: If *name* is ``"numpy"`` or ``"auto"`` (reserved).
        TypeError: If *factory* is not callable.
    """
    key = name.strip().lower()
    if key in {"numpy", "auto"}:
        msg = f"Backend name {name!r} is reserved."
        raise ValueError(msg)
    if not callable(factory):
        msg = f"Backend factory for {name!r} must be callable, got {factory!r}."
        raise TypeError(msg)
    _BACKEND_FACTORIES[key] = factory
    _BACKEND_CACHE.pop(key, None)
    _config._add_backend_name(key)


def resolve_backend(name: str | None = None) -> BackendProtocol:
    """Return a :class:`BackendProtocol` instance for *name*.

    When *name* is ``None`` (the default), the policy from
    :func:`~coco_ts._config.get_backend` is used.

    Args:
        name: ``"numpy"``, a registered backend name, or ``None`` for
            the policy default.

    Returns:
        A backend instance.

    Raises:
        ImportError: If the requested backend is registered but its
            dependencies are not available.
        ValueError: If *name* is not a recognised backend.
    """
    if name is None:
        name = get_backend()
    name = name.strip().lower()

    if name in _BACKEND_CACHE:
        return _BACKEND_CACHE[name]

    if name == "numpy":
        from ._numpy import NumpyBackend

        backend: BackendProtocol = NumpyBackend()

    elif name in _BACKEND_FACTORIES:
        backend = _BACKEND_FACTORIES[name]()
        if not isinstance(backend, BackendProtocol):
            msg = f"Factory for backend {name!r} returned {backend!r}, not a backend."
            raise TypeError(msg)
        if not backend.is_available:
            msg = (
                f"Backend {name!r} was explicitly requested but its "
                "dependencies are not installed.  Install them or use "
                "set_backend('numpy')."
            )
            raise ImportError(msg)

    else:
        choices = sorted({"numpy", *_BACKEND_FACTORIES})
        msg = f"Unknown backend {name!r}.  Choose from: {choices}."
        raise ValueError(msg)

    _BACKEND_CACHE[name] = backend
    return backend
