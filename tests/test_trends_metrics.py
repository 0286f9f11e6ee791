"""Unit tests for per-draw occupancy-change metrics."""

from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.trends.errors import DivisionByZeroError, DrawLengthMismatchError, InvalidRangeError, MissingYearError
from src.trends.metrics import (
    compute_change,
    difference,
    growth_rate,
    linear_growth,
    percent_difference,
    required_years,
)
from src.trends.store import PosteriorStore


def _random_draws(seed: int, n: int = 250) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    return rng.uniform(0.01, 1.0, size=n), rng.uniform(0.01, 1.0, size=n)


# ---------------------------------------------------------------------------
# Endpoint metrics


def test_difference_is_antisymmetric() -> None:
    first, last = _random_draws(1)
    assert np.allclose(difference(first, last), -difference(last, first))


def test_difference_of_identical_draws_is_zero() -> None:
    assert np.array_equal(difference([0.3], [0.3]), [0.0])


def test_percent_difference_values() -> None:
    result = percent_difference([0.2, 0.5], [0.3, 0.25])
    assert np.allclose(result, [50.0, -50.0])


def test_growth_rate_values() -> None:
    result = growth_rate([0.25, 0.5], [1.0, 0.125], first_year=2000, last_year=2002)
    assert np.allclose(result, [1.0, -0.5])


def test_growth_rate_requires_positive_span() -> None:
    with pytest.raises(InvalidRangeError):
        growth_rate([0.2], [0.3], first_year=2005, last_year=2005)
    with pytest.raises(InvalidRangeError):
        growth_rate([0.2], [0.3], first_year=2005, last_year=2001)


def test_ratio_metrics_agree_in_sign() -> None:
    first, last = _random_draws(2)
    pct = percent_difference(first, last)
    growth = growth_rate(first, last, 1990, 2000)
    increasing = last > first
    decreasing = last < first
    assert np.all(pct[increasing] > 0) and np.all(growth[increasing] > 0)
    assert np.all(pct[decreasing] < 0) and np.all(growth[decreasing] < 0)


def test_paired_lengths_must_match() -> None:
    with pytest.raises(DrawLengthMismatchError):
        difference([0.1, 0.2], [0.3])


# ---------------------------------------------------------------------------
# Zero-denominator policy


ZERO_FIRST = np.array([0.2, 0.0, 0.4, 0.0])
LAST = np.array([0.3, 0.1, 0.2, 0.0])


def test_zero_denominator_raises_by_default() -> None:
    with pytest.raises(DivisionByZeroError) as pct_exc:
        percent_difference(ZERO_FIRST, LAST, first_year=2000)
    with pytest.raises(DivisionByZeroError) as growth_exc:
        growth_rate(ZERO_FIRST, LAST, 2000, 2010)

    assert pct_exc.value.draw_indices == (1, 3)
    assert growth_exc.value.draw_indices == (1, 3)
    assert pct_exc.value.kind == "percentdif"
    assert pct_exc.value.year == 2000
    assert isinstance(pct_exc.value, ZeroDivisionError)


def test_zero_denominator_exclude_policy_marks_same_draws() -> None:
    pct = percent_difference(ZERO_FIRST, LAST, zero_policy="exclude")
    growth = growth_rate(ZERO_FIRST, LAST, 2000, 2010, zero_policy="exclude")

    assert np.array_equal(np.flatnonzero(np.isnan(pct)), [1, 3])
    assert np.array_equal(np.isnan(pct), np.isnan(growth))
    assert pct[0] == pytest.approx(50.0)


def test_unknown_zero_policy() -> None:
    with pytest.raises(ValueError):
        percent_difference([0.1], [0.2], zero_policy="ignore")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Linear growth


def test_linear_growth_recovers_relative_slope() -> None:
    years = np.arange(2000, 2005)
    rising = 0.1 + 0.05 * (years - 2000)
    flat = np.full(years.shape, 0.3)
    result = linear_growth(years, np.vstack([rising, flat]))

    # slope 0.05 over a window mean of 0.2
    assert result[0] == pytest.approx(0.25)
    assert result[1] == pytest.approx(0.0, abs=1e-12)


def test_linear_growth_uses_intermediate_years() -> None:
    years = np.arange(2000, 2005)
    bump = np.array([[0.2, 0.6, 0.6, 0.6, 0.2]])
    flat = np.array([[0.2, 0.2, 0.2, 0.2, 0.2]])
    # Same endpoints, same zero slope; the bump only moves the mean.
    assert linear_growth(years, bump)[0] == pytest.approx(0.0, abs=1e-12)
    skew = np.array([[0.2, 0.2, 0.2, 0.6, 0.2]])
    assert linear_growth(years, skew)[0] > 0
    assert linear_growth(years, flat)[0] == pytest.approx(0.0, abs=1e-12)


def test_linear_growth_zero_mean() -> None:
    years = np.arange(2000, 2003)
    draws = np.array([[0.0, 0.0, 0.0], [0.1, 0.2, 0.3]])
    with pytest.raises(DivisionByZeroError) as excinfo:
        linear_growth(years, draws)
    assert excinfo.value.draw_indices == (0,)

    result = linear_growth(years, draws, zero_policy="exclude")
    assert np.isnan(result[0])
    assert result[1] == pytest.approx(0.5)


def test_linear_growth_needs_two_years() -> None:
    with pytest.raises(InvalidRangeError):
        linear_growth([2000], np.array([[0.2]]))
    with pytest.raises(ValueError):
        linear_growth([2000, 2001], np.array([[0.2, 0.3, 0.4]]))


# ---------------------------------------------------------------------------
# compute_change against a store


def _store(years: range, n_draws: int = 20, seed: int = 0) -> PosteriorStore:
    rng = np.random.default_rng(seed)
    return PosteriorStore({year: rng.uniform(0.1, 0.9, size=n_draws) for year in years})


@pytest.mark.parametrize("kind", ["difference", "percentdif", "growthrate", "lineargrowth"])
def test_change_result_length_matches_sample_size(kind: str) -> None:
    store = _store(range(2000, 2011), n_draws=37)
    result = compute_change(store, 2000, 2010, kind)  # type: ignore[arg-type]
    assert result.n_draws == 37
    assert result.kind == kind
    assert result.n_excluded == 0
    assert (result.first_year, result.last_year) == (2000, 2010)


def test_compute_change_rejects_bad_ranges() -> None:
    store = _store(range(2000, 2005))
    with pytest.raises(InvalidRangeError):
        compute_change(store, 2003, 2003, "difference")
    with pytest.raises(InvalidRangeError):
        compute_change(store, 2004, 2001, "difference")


def test_compute_change_missing_years() -> None:
    store = PosteriorStore({2000: [0.2], 2001: [0.3], 2003: [0.4]})
    with pytest.raises(MissingYearError):
        compute_change(store, 2000, 2005, "difference")
    # Endpoint metrics only read the endpoints; lineargrowth needs every year.
    assert compute_change(store, 2000, 2003, "difference").values[0] == pytest.approx(0.2)
    with pytest.raises(MissingYearError) as excinfo:
        compute_change(store, 2000, 2003, "lineargrowth")
    assert excinfo.value.year == 2002


def test_compute_change_detects_inconsistent_store() -> None:
    class LopsidedStore:
        def get_year_samples(self, year: int) -> np.ndarray:
            return np.full(3 if year == 2000 else 4, 0.5)

    with pytest.raises(DrawLengthMismatchError) as excinfo:
        compute_change(LopsidedStore(), 2000, 2001, "difference")  # type: ignore[arg-type]
    assert excinfo.value.kind == "difference"


def test_compute_change_exclude_policy_flags_draws() -> None:
    store = PosteriorStore({2000: [0.2, 0.0, 0.4], 2001: [0.3, 0.3, 0.3]})
    result = compute_change(store, 2000, 2001, "growthrate", zero_policy="exclude")
    assert result.excluded.tolist() == [False, True, False]
    assert result.valid_values.shape == (2,)


def test_compute_change_unknown_kind() -> None:
    with pytest.raises(ValueError):
        compute_change(_store(range(2000, 2002)), 2000, 2001, "ratio")  # type: ignore[arg-type]


def test_required_years() -> None:
    assert required_years(2000, 2003, "difference") == [2000, 2003]
    assert required_years(2000, 2003, "lineargrowth") == [2000, 2001, 2002, 2003]


@pytest.mark.parametrize("kind", ["difference", "lineargrowth"])
def test_compute_change_rejects_fractional_years(kind: str) -> None:
    store = PosteriorStore({2000: [0.2], 2001: [0.3], 2003: [0.4]})
    with pytest.raises(MissingYearError) as excinfo:
        compute_change(store, 2000.9, 2003, kind)  # type: ignore[arg-type]
    assert excinfo.value.year == 2000.9
