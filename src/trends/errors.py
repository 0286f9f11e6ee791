"""Error kinds raised while deriving occupancy-change statistics."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Tuple


class TrendError(Exception):
    """Base class for local computation errors in the trends package."""


class MissingYearError(TrendError, LookupError):
    """A requested year is absent from the posterior store."""

    def __init__(self, year: int, available: Sequence[int] = ()) -> None:
        self.year = year
        self.available: Tuple[int, ...] = tuple(available)
        span = f" (store covers {self.available[0]}–{self.available[-1]})" if self.available else ""
        super().__init__(f"Year {year} was not modeled{span}.")


class InvalidRangeError(TrendError, ValueError):
    """The requested year window is empty or reversed."""

    def __init__(self, first_year: int, last_year: int, kind: Optional[str] = None) -> None:
        self.first_year = first_year
        self.last_year = last_year
        self.kind = kind
        prefix = f"{kind}: " if kind else ""
        super().__init__(f"{prefix}first_year ({first_year}) must be strictly before last_year ({last_year}).")


class DivisionByZeroError(TrendError, ZeroDivisionError):
    """A ratio-based metric met a zero denominator for one or more draws."""

    def __init__(self, kind: str, draw_indices: Sequence[int], year: Optional[int] = None) -> None:
        self.kind = kind
        self.year = year
        self.draw_indices: Tuple[int, ...] = tuple(int(idx) for idx in draw_indices)
        where = f" in year {year}" if year is not None else ""
        shown = ", ".join(str(idx) for idx in self.draw_indices[:10])
        more = "…" if len(self.draw_indices) > 10 else ""
        super().__init__(
            f"{kind}: zero denominator{where} for {len(self.draw_indices)} draw(s) [{shown}{more}]."
        )


class EmptyInputError(TrendError, ValueError):
    """A reducer or store received zero draws."""


class DrawLengthMismatchError(TrendError, ValueError):
    """Paired year vectors do not hold the same number of draws."""

    def __init__(self, lengths: Mapping[Any, int], kind: Optional[str] = None) -> None:
        self.lengths = dict(lengths)
        self.kind = kind
        detail = ", ".join(f"{year}: {n}" for year, n in self.lengths.items())
        prefix = f"{kind}: " if kind else ""
        super().__init__(f"{prefix}draw counts differ across years ({detail}).")


class UnconvergedYearError(TrendError, ValueError):
    """A year needed by a metric did not pass the R-hat threshold."""

    def __init__(self, years: Sequence[int], kind: str) -> None:
        self.years: Tuple[int, ...] = tuple(years)
        self.kind = kind
        joined = ", ".join(str(year) for year in self.years)
        super().__init__(f"{kind}: posterior has not converged for year(s) {joined}.")


__all__ = [
    "DivisionByZeroError",
    "DrawLengthMismatchError",
    "EmptyInputError",
    "InvalidRangeError",
    "MissingYearError",
    "TrendError",
    "UnconvergedYearError",
]
