"""Occupancy-change reports over one or more year windows."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .errors import InvalidRangeError, UnconvergedYearError
from .metrics import ZERO_POLICIES, compute_change, required_years
from .records import ALL_METRICS, ChangeResult, MetricKind, Summary, ZeroPolicy
from .store import PosteriorStore
from .summary import DEFAULT_PERCENTILE_METHOD, summarize

YearWindow = Tuple[int, int]


@dataclass
class ReportConfig:
    """Configuration for `compute_report`."""

    zero_policy: ZeroPolicy = "raise"
    lower_percentile: float = 2.5
    upper_percentile: float = 97.5
    method: str = DEFAULT_PERCENTILE_METHOD
    require_converged: bool = False

    def validate(self) -> None:
        if self.zero_policy not in ZERO_POLICIES:
            raise ValueError(f"zero_policy must be one of {ZERO_POLICIES}, got '{self.zero_policy}'.")
        if not 0.0 <= self.lower_percentile < self.upper_percentile <= 100.0:
            raise ValueError("Credible percentiles must satisfy 0 <= lower < upper <= 100.")


@dataclass(frozen=True)
class ChangeEntry:
    """Summary of one metric plus the draws it was computed from."""

    summary: Summary
    result: ChangeResult


@dataclass(frozen=True)
class ChangeReport:
    """Change metrics for a single (first_year, last_year) window."""

    first_year: int
    last_year: int
    entries: Mapping[MetricKind, ChangeEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __getitem__(self, kind: MetricKind) -> ChangeEntry:
        return self.entries[kind]

    def __iter__(self) -> Iterator[MetricKind]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def kinds(self) -> Tuple[MetricKind, ...]:
        return tuple(self.entries)

    def to_frame(self) -> pd.DataFrame:
        """One row per metric, ready for display or CSV export."""
        rows: List[Dict[str, object]] = []
        for kind, entry in self.entries.items():
            summary = entry.summary
            rows.append(
                {
                    "metric": kind,
                    "first_year": self.first_year,
                    "last_year": self.last_year,
                    "mean": summary.mean,
                    "median": summary.median,
                    "lower": summary.lower,
                    "upper": summary.upper,
                    "lower_percentile": summary.lower_percentile,
                    "upper_percentile": summary.upper_percentile,
                    "n_draws": summary.n_draws,
                    "n_excluded": entry.result.n_excluded,
                }
            )
        return pd.DataFrame(rows)


def compute_report(
    store: PosteriorStore,
    first_year: int,
    last_year: int,
    kinds: Iterable[MetricKind],
    config: Optional[ReportConfig] = None,
) -> ChangeReport:
    """Compute and summarize each requested change metric over a window.

    Args:
        store: Posterior draws of annual occupancy.
        first_year: Start of the window.
        last_year: End of the window; must be later than ``first_year``.
        kinds: Metric kinds to compute.
        config: Optional configuration overriding defaults.

    Returns:
        ChangeReport with one entry per requested kind, in canonical order.
    """
    cfg = config or ReportConfig()
    cfg.validate()

    requested = set(kinds)
    if not requested:
        raise ValueError("Request at least one change metric.")
    unknown = requested.difference(ALL_METRICS)
    if unknown:
        raise ValueError(f"Unknown change metric(s): {', '.join(sorted(unknown))}.")
    if first_year >= last_year:
        raise InvalidRangeError(first_year, last_year)

    store.get_year_samples(first_year)
    store.get_year_samples(last_year)

    entries: Dict[MetricKind, ChangeEntry] = {}
    for kind in ALL_METRICS:
        if kind not in requested:
            continue
        if cfg.require_converged:
            _require_converged(store, required_years(first_year, last_year, kind), kind)
        result = compute_change(store, first_year, last_year, kind, cfg.zero_policy)
        summary = summarize(
            result.valid_values,
            lower_percentile=cfg.lower_percentile,
            upper_percentile=cfg.upper_percentile,
            method=cfg.method,
        )
        entries[kind] = ChangeEntry(summary=summary, result=result)

    return ChangeReport(first_year=first_year, last_year=last_year, entries=entries)


def compute_windows(
    store: PosteriorStore,
    windows: Sequence[YearWindow],
    kinds: Iterable[MetricKind],
    config: Optional[ReportConfig] = None,
) -> List[ChangeReport]:
    """Independent reports for several windows, e.g. full period and last decade."""
    kind_set = set(kinds)
    return [compute_report(store, first, last, kind_set, config) for first, last in windows]


def trailing_window(store: PosteriorStore, n_years: int) -> YearWindow:
    """Window covering the last ``n_years`` modeled years, endpoints inclusive."""
    if n_years < 2:
        raise ValueError("A trailing window needs at least two years.")
    last_year = store.years[-1]
    first_year = max(last_year - n_years + 1, store.years[0])
    if first_year >= last_year:
        raise InvalidRangeError(first_year, last_year)
    return first_year, last_year


def _require_converged(store: PosteriorStore, years: Sequence[int], kind: MetricKind) -> None:
    failing = [year for year in years if not store.is_converged(year)]
    if failing:
        raise UnconvergedYearError(failing, kind)


__all__ = [
    "ChangeEntry",
    "ChangeReport",
    "ReportConfig",
    "YearWindow",
    "compute_report",
    "compute_windows",
    "trailing_window",
]
