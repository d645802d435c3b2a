"""coco_ts: Convolution-closed models for count time series.

Implements first- and second-order autoregressive models for
non-negative integer series whose next value is a random thinning of
the past counts plus an independent Poisson or Generalized-Poisson
innovation, optionally driven by covariates through a link function.
Provides the transition density engine, forward simulation,
conditional maximum-likelihood fitting with standard errors, the
parametric-bootstrap ACF envelope, and proper scoring rules for
comparing competing models.

Public API:
    .. autosummary::
        fit
        simulate
        log_likelihood
        negative_log_likelihood
        bootstrap_acf
        score
        print_fit_table
        print_bootstrap_table
        print_score_table
        get_backend
        set_backend
        register_backend
        resolve_backend
        ModelSpec
        resolve_transition
        register_transition
        PoissonAR1
        GeneralizedPoissonAR1
        PoissonAR2
        GeneralizedPoissonAR2
        FittedModel
        BootstrapResult
        ScoreResult
        DomainError
        ConfigurationError
        ConvergenceError
"""

from ._backends import register_backend, resolve_backend
from ._config import get_backend, set_backend
from ._results import BootstrapResult, FittedModel, ScoreResult
from .diagnostics import bootstrap_acf, score
from .display import print_bootstrap_table, print_fit_table, print_score_table
from .exceptions import CocoError, ConfigurationError, ConvergenceError, DomainError
from .fitting import fit
from .likelihood import log_likelihood, negative_log_likelihood
from .simulate import simulate
from .specs import ModelSpec
from .transitions import (
    GeneralizedPoissonAR1,
    GeneralizedPoissonAR2,
    PoissonAR1,
    PoissonAR2,
    register_transition,
    resolve_transition,
)

__all__ = [
    "BootstrapResult",
    "FittedModel",
    "ScoreResult",
    "fit",
    "simulate",
    "log_likelihood",
    "negative_log_likelihood",
    "bootstrap_acf",
    "score",
    "print_bootstrap_table",
    "print_fit_table",
    "print_score_table",
    "get_backend",
    "set_backend",
    "register_backend",
    "resolve_backend",
    "ModelSpec",
    "resolve_transition",
    "register_transition",
    "PoissonAR1",
    "GeneralizedPoissonAR1",
    "PoissonAR2",
    "GeneralizedPoissonAR2",
    "CocoError",
    "ConfigurationError",
    "ConvergenceError",
    "DomainError",
]

__version__ = "0.1.0"
