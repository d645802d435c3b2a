"""Formatted ASCII table display utilities for fits and diagnostics.

These tables mirror the statsmodels summary style: a header panel with
model-level statistics above a per-parameter (or per-lag) body.  All
tables are 80 characters wide.

* :func:`print_fit_table`: estimates, standard errors, z statistics
  and Wald confidence intervals of a fitted model.
* :func:`print_bootstrap_table`: observed ACF against its bootstrap
  envelope, with lags outside the band flagged ``[!]``.
* :func:`print_score_table`: scoring rules and information criteria
  of one or several competing fits, best value per column marked.
"""

from __future__ import annotations

import math
import textwrap
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._results import BootstrapResult, FittedModel, ScoreResult

W = 80


def _truncate(name: str, max_len: int) -> str:
    """Truncate *name* to *max_len*, appending ``'...'`` if needed."""
    if len(name) <= max_len:
        return name
    return name[: max_len - 3] + "..."


def _fmt(val: float, spec: str = ".4f") -> str:
    """Format a float, rendering ``nan`` as ``'N/A'``."""
    if val is None or (isinstance(val, float) and math.isnan(val)):
        return "N/A"
    return format(val, spec)


def _title(title: str) -> None:
    print("=" * W)
    for line in textwrap.wrap(title, width=W - 2):
        print(f"{line:^{W}}")
    print("=" * W)


def _header_row(ll: str, lv: str, rl: str, rv: str) -> None:
    # Left pair flush-left in 40 columns, right pair right-aligned in 40.
    print(f"{ll:<16}{lv:<24}{rl:>29} {rv:>10}")


def print_fit_table(
    fitted: FittedModel,
    *,
    title: str = "Count Time Series Model Results",
    alpha: float = 0.05,
) -> None:
    """Print a fitted model in a formatted ASCII table.

    Args:
        fitted: Result of :func:`~coco_ts.fit`.
        title: Title for the output table.
        alpha: Significance level of the confidence intervals.
    """
    spec = fitted.spec
    table = fitted.summary(alpha)

    _title(title)
    _header_row("Model:", spec.label, "No. Observations:", str(fitted.n_obs))
    _header_row("Family:", spec.family, "Log-Likelihood:", _fmt(fitted.log_likelihood))
    link = spec.link if spec.has_covariates else "-"
    _header_row("Link:", link, "AIC:", _fmt(fitted.aic))
    _header_row("Backend:", fitted.backend, "BIC:", _fmt(fitted.bic))
    _header_row(
        "Converged:", "yes" if fitted.converged else "no", "Iterations:", str(fitted.n_iter)
    )
    print("-" * W)

    # ── Table geometry (W = 80 chars) ─────────────────────────── #
    #   Parameter (20) | Estimate (12) | Std.Err (12) | z (10)
    #   | CI lower (13) | CI upper (13)   = 80
    level = f"{100 * (1 - alpha):g}%"
    print(
        f"{'Parameter':<20}{'Estimate':>12}{'Std.Err':>12}{'z':>10}"
        f"{'[' + level:>13}{'CI]':>13}"
    )
    print("-" * W)
    for name, row in table.iterrows():
        print(
            f"{_truncate(str(name), 20):<20}"
            f"{_fmt(row['estimate']):>12}{_fmt(row['std_error']):>12}"
            f"{_fmt(row['z_value'], '.3f'):>10}"
            f"{_fmt(row['ci_lower']):>13}{_fmt(row['ci_upper']):>13}"
        )

    if not fitted.converged:
        print("-" * W)
        print(
            textwrap.fill(
                f"  [!] The optimizer did not report convergence: {fitted.message}",
                width=W,
                subsequent_indent=" " * 6,
            )
        )
    print("=" * W)
    print()


def print_bootstrap_table(
    result: BootstrapResult,
    *,
    title: str = "Parametric Bootstrap ACF Envelope",
) -> None:
    """Print the observed ACF against its bootstrap envelope.

    Args:
        result: Result of :func:`~coco_ts.bootstrap_acf`.
        title: Title for the output table.
    """
    _title(title)
    _header_row("Model:", result.spec.label, "Replicates:", str(result.n_replicates))
    _header_row("Backend:", result.backend, "Alpha:", _fmt(result.alpha, "g"))
    print("-" * W)
    print(f"{'Lag':>6}{'Observed':>18}{'Lower':>18}{'Upper':>18}{'':>20}")
    print("-" * W)
    outside = result.outside
    for i, lag in enumerate(result.lags):
        flag = "[!]" if outside[i] else ""
        print(
            f"{int(lag):>6}{_fmt(result.observed_acf[i]):>18}"
            f"{_fmt(result.lower[i]):>18}{_fmt(result.upper[i]):>18}{flag:>20}"
        )
    print("=" * W)
    n_out = int(outside.sum())
    print(f"{n_out} of {len(result.lags)} lags outside the envelope.")
    print()


def print_score_table(
    scores: ScoreResult | Mapping[str, ScoreResult],
    *,
    title: str = "Scoring Rules",
) -> None:
    """Print scoring rules for one model or a comparison of models.

    Args:
        scores: A single :class:`~coco_ts._results.ScoreResult` or a
            mapping of model labels to results.  With several models
            the best (lowest) value in each column is marked ``*``.
        title: Title for the output table.
    """
    rows = dict(scores) if isinstance(scores, Mapping) else {"model": scores}
    columns = ("log.score", "quad.score", "rps.score", "aic", "bic")
    best = {
        col: min(r[col] for r in rows.values()) if len(rows) > 1 else None
        for col in columns
    }

    _title(title)
    # Model (15) + 5 × 13 = 80
    print(f"{'Model':<15}" + "".join(f"{c:>13}" for c in columns))
    print("-" * W)
    for label, res in rows.items():
        cells = []
        for col in columns:
            mark = "*" if best[col] is not None and res[col] == best[col] else " "
            cells.append(f"{_fmt(res[col]) + mark:>13}")
        print(f"{_truncate(str(label), 15):<15}" + "".join(cells))
    print("=" * W)
    print("Lower is better for every column.")
    print()
