"""Occupancy-change metrics computed from paired posterior draws."""

from .errors import (
    DivisionByZeroError,
    DrawLengthMismatchError,
    EmptyInputError,
    InvalidRangeError,
    MissingYearError,
    TrendError,
    UnconvergedYearError,
)
from .metrics import compute_change, difference, growth_rate, linear_growth, percent_difference
from .records import ALL_METRICS, ChangeResult, MetricKind, Summary, YearSummary, ZeroPolicy
from .report import ChangeEntry, ChangeReport, ReportConfig, compute_report, compute_windows, trailing_window
from .store import PosteriorStore, load_store
from .summary import summarize, summarize_years

__all__ = [
    "ALL_METRICS",
    "ChangeEntry",
    "ChangeReport",
    "ChangeResult",
    "DivisionByZeroError",
    "DrawLengthMismatchError",
    "EmptyInputError",
    "InvalidRangeError",
    "MetricKind",
    "MissingYearError",
    "PosteriorStore",
    "ReportConfig",
    "Summary",
    "TrendError",
    "UnconvergedYearError",
    "YearSummary",
    "ZeroPolicy",
    "compute_change",
    "compute_report",
    "compute_windows",
    "difference",
    "growth_rate",
    "linear_growth",
    "load_store",
    "percent_difference",
    "summarize",
    "summarize_years",
    "trailing_window",
]
