"""Reduce posterior draw vectors to point estimates and credible bounds."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .errors import EmptyInputError
from .records import Summary, YearSummary
from .store import PosteriorStore

# Hazen plotting positions (R quantile type 5): linear interpolation between
# adjacent order statistics placed at (k - 0.5) / N.
DEFAULT_PERCENTILE_METHOD = "hazen"


def summarize(
    values: Sequence[float] | np.ndarray,
    lower_percentile: float = 2.5,
    upper_percentile: float = 97.5,
    method: str = DEFAULT_PERCENTILE_METHOD,
) -> Summary:
    """Summarize a posterior sample of a scalar quantity.

    Args:
        values: Posterior draws.
        lower_percentile: Lower credible bound, in percent.
        upper_percentile: Upper credible bound, in percent.
        method: ``numpy.percentile`` interpolation method.

    Returns:
        Summary with mean, median and the two credible bounds.
    """
    if not 0.0 <= lower_percentile < upper_percentile <= 100.0:
        raise ValueError(
            f"Percentiles must satisfy 0 <= lower < upper <= 100, got ({lower_percentile}, {upper_percentile})."
        )

    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1:
        raise ValueError(f"Expected a one-dimensional sample, got shape {arr.shape}.")
    if arr.size == 0:
        raise EmptyInputError("Cannot summarize an empty posterior sample.")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Posterior sample contains NaN/inf values.")

    lower, upper = np.percentile(arr, [lower_percentile, upper_percentile], method=method)
    return Summary(
        mean=float(arr.mean()),
        median=float(np.median(arr)),
        lower=float(lower),
        upper=float(upper),
        n_draws=int(arr.size),
        lower_percentile=float(lower_percentile),
        upper_percentile=float(upper_percentile),
    )


def summarize_years(
    store: PosteriorStore,
    lower_percentile: float = 2.5,
    upper_percentile: float = 97.5,
    method: str = DEFAULT_PERCENTILE_METHOD,
) -> List[YearSummary]:
    """Per-year occupancy summaries with convergence flags, in year order."""
    results: List[YearSummary] = []
    for year in store.years:
        results.append(
            YearSummary(
                year=year,
                summary=summarize(store.get_year_samples(year), lower_percentile, upper_percentile, method),
                rhat=store.rhat(year),
                converged=store.is_converged(year),
            )
        )
    return results


__all__ = ["DEFAULT_PERCENTILE_METHOD", "summarize", "summarize_years"]
