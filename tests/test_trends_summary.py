"""Tests for posterior sample summaries."""

from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.trends.errors import EmptyInputError
from src.trends.records import Summary
from src.trends.store import PosteriorStore
from src.trends.summary import summarize, summarize_years


def test_summarize_uniform_sequence_pins_hazen_convention() -> None:
    summary = summarize(np.arange(1, 101))
    assert summary.mean == pytest.approx(50.5)
    assert summary.median == pytest.approx(50.5)
    assert summary.lower == pytest.approx(3.0)
    assert summary.upper == pytest.approx(98.0)
    assert summary.n_draws == 100
    assert (summary.lower_percentile, summary.upper_percentile) == (2.5, 97.5)
    assert summary.width == pytest.approx(95.0)


def test_summarize_custom_bounds() -> None:
    summary = summarize(np.arange(1, 101), lower_percentile=5.0, upper_percentile=95.0)
    assert summary.lower == pytest.approx(5.5)
    assert summary.upper == pytest.approx(95.5)


def test_summarize_other_interpolation_method() -> None:
    summary = summarize(np.arange(1, 101), method="linear")
    assert summary.lower == pytest.approx(3.475)
    assert summary.upper == pytest.approx(97.525)


def test_summarize_single_value() -> None:
    summary = summarize([0.42])
    assert summary == Summary(mean=0.42, median=0.42, lower=0.42, upper=0.42, n_draws=1)


def test_summarize_empty_input() -> None:
    with pytest.raises(EmptyInputError):
        summarize([])


def test_summarize_rejects_non_finite() -> None:
    with pytest.raises(ValueError):
        summarize([0.1, float("nan")])
    with pytest.raises(ValueError):
        summarize([0.1, float("inf")])


def test_summarize_validates_percentiles() -> None:
    with pytest.raises(ValueError):
        summarize([1.0, 2.0], lower_percentile=97.5, upper_percentile=2.5)
    with pytest.raises(ValueError):
        summarize([1.0, 2.0], lower_percentile=-1.0)
    with pytest.raises(ValueError):
        summarize([1.0, 2.0], upper_percentile=100.5)


def test_summarize_does_not_mutate_input() -> None:
    values = np.array([3.0, 1.0, 2.0])
    summarize(values)
    assert values.tolist() == [3.0, 1.0, 2.0]


def test_summarize_years_carries_convergence() -> None:
    store = PosteriorStore(
        {2000: [0.1, 0.2, 0.3], 2001: [0.4, 0.5, 0.6]},
        rhat={2000: 1.01, 2001: 1.3},
    )
    summaries = summarize_years(store)
    assert [item.year for item in summaries] == [2000, 2001]
    assert summaries[0].summary.mean == pytest.approx(0.2)
    assert summaries[0].converged is True
    assert summaries[1].converged is False
    assert summaries[1].rhat == pytest.approx(1.3)
