"""Shared data records for occupancy-change reporting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Tuple

import numpy as np

MetricKind = Literal["difference", "percentdif", "growthrate", "lineargrowth"]
ALL_METRICS: Tuple[MetricKind, ...] = ("difference", "percentdif", "growthrate", "lineargrowth")

ZeroPolicy = Literal["raise", "exclude"]


@dataclass(frozen=True, eq=False)
class ChangeResult:
    """Per-draw values of one change statistic over a year window."""

    kind: MetricKind
    first_year: int
    last_year: int
    values: np.ndarray
    excluded: np.ndarray

    @property
    def n_draws(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_excluded(self) -> int:
        return int(self.excluded.sum())

    @property
    def valid_values(self) -> np.ndarray:
        """Draws not flagged by the zero-denominator policy."""
        return self.values[~self.excluded]


@dataclass(frozen=True)
class Summary:
    """Point estimates and credible bounds of a posterior sample."""

    mean: float
    median: float
    lower: float
    upper: float
    n_draws: int
    lower_percentile: float = 2.5
    upper_percentile: float = 97.5

    @property
    def width(self) -> float:
        return self.upper - self.lower


@dataclass(frozen=True)
class YearSummary:
    """Posterior summary of occupancy in a single year."""

    year: int
    summary: Summary
    rhat: Optional[float]
    converged: bool
