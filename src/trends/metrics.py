"""Per-draw occupancy-change statistics.

Every metric maps paired draw vectors to a vector of the same length, so the
resulting distribution carries the full posterior uncertainty of the fitted
model. Ratio-based metrics share the zero-denominator policy below.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

import numpy as np
from sklearn.linear_model import LinearRegression

from .errors import DivisionByZeroError, DrawLengthMismatchError, EmptyInputError, InvalidRangeError
from .records import ALL_METRICS, ChangeResult, MetricKind, ZeroPolicy
from .store import PosteriorStore

ZERO_POLICIES: tuple[ZeroPolicy, ...] = ("raise", "exclude")


def difference(first: Sequence[float] | np.ndarray, last: Sequence[float] | np.ndarray) -> np.ndarray:
    """Signed absolute change ``last - first``."""
    first_arr, last_arr = _paired(first, last, "difference")
    return last_arr - first_arr


def percent_difference(
    first: Sequence[float] | np.ndarray,
    last: Sequence[float] | np.ndarray,
    zero_policy: ZeroPolicy = "raise",
    first_year: Optional[int] = None,
) -> np.ndarray:
    """Change relative to the first year, in percent."""
    first_arr, last_arr = _paired(first, last, "percentdif")
    faulty = first_arr == 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        values = 100.0 * (last_arr - first_arr) / first_arr
    return _apply_zero_policy(values, faulty, "percentdif", zero_policy, first_year)


def growth_rate(
    first: Sequence[float] | np.ndarray,
    last: Sequence[float] | np.ndarray,
    first_year: int,
    last_year: int,
    zero_policy: ZeroPolicy = "raise",
) -> np.ndarray:
    """Geometric annual growth rate ``(last / first) ** (1 / span) - 1``."""
    span = last_year - first_year
    if span <= 0:
        raise InvalidRangeError(first_year, last_year, "growthrate")
    first_arr, last_arr = _paired(first, last, "growthrate")
    faulty = first_arr <= 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        values = np.power(last_arr / first_arr, 1.0 / span) - 1.0
    return _apply_zero_policy(values, faulty, "growthrate", zero_policy, first_year)


def linear_growth(
    years: Sequence[int] | np.ndarray,
    draws: np.ndarray,
    zero_policy: ZeroPolicy = "raise",
) -> np.ndarray:
    """Least-squares slope of each draw's annual series, relative to its window mean.

    Args:
        years: Years of the window, one per column of ``draws``.
        draws: Matrix of shape ``(n_draws, n_years)``; row ``i`` is draw ``i``
            across every year of the window.

    Returns:
        Vector of ``slope_i / mean_i``: the proportional change in occupancy per
        year implied by a straight-line fit through draw ``i``.
    """
    year_arr = np.asarray(years, dtype=float)
    matrix = np.asarray(draws, dtype=float)
    if year_arr.ndim != 1 or matrix.ndim != 2:
        raise ValueError("linear_growth expects a 1-D year vector and a 2-D draw matrix.")
    if matrix.shape[1] != year_arr.shape[0]:
        raise ValueError(
            f"Draw matrix has {matrix.shape[1]} year column(s) but {year_arr.shape[0]} year(s) were given."
        )
    if np.unique(year_arr).size < 2:
        first_year = int(year_arr[0]) if year_arr.size else 0
        raise InvalidRangeError(first_year, first_year, "lineargrowth")
    if matrix.shape[0] == 0:
        raise EmptyInputError("lineargrowth received zero draws.")

    model = LinearRegression()
    model.fit(year_arr.reshape(-1, 1), matrix.T)
    slopes = np.asarray(model.coef_, dtype=float).reshape(matrix.shape[0], -1)[:, 0]

    means = matrix.mean(axis=1)
    faulty = means == 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        values = slopes / means
    return _apply_zero_policy(values, faulty, "lineargrowth", zero_policy, None)


def compute_change(
    store: PosteriorStore,
    first_year: int,
    last_year: int,
    kind: MetricKind,
    zero_policy: ZeroPolicy = "raise",
) -> ChangeResult:
    """Apply one metric across all draws of ``store`` for a year window."""
    if kind not in ALL_METRICS:
        raise ValueError(f"Unknown change metric '{kind}'. Expected one of: {', '.join(ALL_METRICS)}.")
    _check_policy(zero_policy)
    if first_year >= last_year:
        raise InvalidRangeError(first_year, last_year, kind)

    # Endpoints are looked up first so a window is only expanded between modeled years.
    store.get_year_samples(first_year)
    store.get_year_samples(last_year)
    years = required_years(first_year, last_year, kind)
    columns: Dict[int, np.ndarray] = {year: np.asarray(store.get_year_samples(year), dtype=float) for year in years}
    lengths = {year: column.shape[0] for year, column in columns.items()}
    if len(set(lengths.values())) != 1:
        raise DrawLengthMismatchError(lengths, kind)

    first, last = columns[first_year], columns[last_year]
    if kind == "difference":
        values = difference(first, last)
    elif kind == "percentdif":
        values = percent_difference(first, last, zero_policy, first_year)
    elif kind == "growthrate":
        values = growth_rate(first, last, first_year, last_year, zero_policy)
    else:
        values = linear_growth(years, np.column_stack([columns[year] for year in years]), zero_policy)

    excluded = np.isnan(values)
    values.setflags(write=False)
    excluded.setflags(write=False)
    return ChangeResult(kind=kind, first_year=first_year, last_year=last_year, values=values, excluded=excluded)


def required_years(first_year: int, last_year: int, kind: MetricKind) -> list[int]:
    """Years a metric reads: endpoints only, or the full window for ``lineargrowth``."""
    if kind == "lineargrowth":
        return list(range(first_year, last_year + 1))
    return [first_year, last_year]


def _paired(first, last, kind: str) -> tuple[np.ndarray, np.ndarray]:
    first_arr = np.asarray(first, dtype=float)
    last_arr = np.asarray(last, dtype=float)
    if first_arr.ndim != 1 or last_arr.ndim != 1:
        raise ValueError(f"{kind}: draw sequences must be one-dimensional.")
    if first_arr.shape[0] != last_arr.shape[0]:
        raise DrawLengthMismatchError({"first": first_arr.shape[0], "last": last_arr.shape[0]}, kind)
    return first_arr, last_arr


def _check_policy(zero_policy: str) -> None:
    if zero_policy not in ZERO_POLICIES:
        raise ValueError(f"zero_policy must be one of {ZERO_POLICIES}, got '{zero_policy}'.")


def _apply_zero_policy(
    values: np.ndarray,
    faulty: np.ndarray,
    kind: str,
    zero_policy: ZeroPolicy,
    year: Optional[int],
) -> np.ndarray:
    _check_policy(zero_policy)
    if not faulty.any():
        return values
    if zero_policy == "raise":
        raise DivisionByZeroError(kind, np.flatnonzero(faulty), year)
    values = values.copy()
    values[faulty] = np.nan
    return values


__all__ = [
    "ZERO_POLICIES",
    "compute_change",
    "difference",
    "growth_rate",
    "linear_growth",
    "percent_difference",
    "required_years",
]
