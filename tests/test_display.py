"""Tests for the display module."""

import numpy as np
import pytest

from coco_ts import (
    ModelSpec,
    bootstrap_acf,
    fit,
    print_bootstrap_table,
    print_fit_table,
    print_score_table,
    score,
    simulate,
)
from coco_ts.display import _fmt, _truncate


@pytest.fixture(scope="module")
def fitted():
    return fit(simulate(ModelSpec(), [1.5, 0.4], 300, seed=17))


class TestHelpers:
    def test_short_name_unchanged(self):
        assert _truncate("abc", 10) == "abc"

    def test_long_name_truncated(self):
        result = _truncate("abcdefghijk", 10)
        assert len(result) == 10
        assert result.endswith("...")

    def test_nan_rendered(self):
        assert _fmt(float("nan")) == "N/A"
        assert _fmt(np.float64(1.23456)) == "1.2346"


class TestPrintFitTable:
    def test_contents(self, fitted, capsys):
        print_fit_table(fitted)
        out = capsys.readouterr().out
        assert "Poisson1" in out
        assert "lambda" in out
        assert "alpha" in out
        assert "AIC:" in out

    def test_width(self, fitted, capsys):
        print_fit_table(fitted)
        lines = capsys.readouterr().out.splitlines()
        assert max(len(line) for line in lines) <= 80

    def test_custom_title(self, fitted, capsys):
        print_fit_table(fitted, title="Polio counts")
        assert "Polio counts" in capsys.readouterr().out


class TestPrintBootstrapTable:
    def test_contents(self, fitted, capsys):
        result = bootstrap_acf(fitted, n_lags=4, n_replicates=30, seed=0)
        print_bootstrap_table(result)
        out = capsys.readouterr().out
        assert "Replicates:" in out
        assert "lags outside the envelope" in out
        assert max(len(line) for line in out.splitlines()) <= 80


class TestPrintScoreTable:
    def test_single(self, fitted, capsys):
        print_score_table(score(fitted))
        out = capsys.readouterr().out
        assert "log.score" in out
        assert "rps.score" in out

    def test_comparison_marks_best(self, fitted, capsys):
        gp = fit(fitted.series, "gp")
        print_score_table({"Poisson1": score(fitted), "GP1": score(gp)})
        out = capsys.readouterr().out
        assert "Poisson1" in out
        assert "GP1" in out
        assert "*" in out
        assert max(len(line) for line in out.splitlines()) <= 80
