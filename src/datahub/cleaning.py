"""Load occurrence exports and validate them into typed records."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .config import DEFAULT_COLUMNS, OccurrenceColumns
from .records import CleaningResult, OccurrenceRecord

TIME_OFFSET = r"(T[\d:.]+)(?:Z|[+-]\d{2}(?::?\d{2})?)$"


@dataclass
class CleaningConfig:
    """Filters applied by `clean_occurrences`."""

    first_year: Optional[int] = None
    last_year: Optional[int] = None
    max_uncertainty_m: Optional[float] = None
    columns: OccurrenceColumns = field(default_factory=lambda: OccurrenceColumns(**DEFAULT_COLUMNS))

    def validate(self) -> None:
        if self.first_year is not None and self.last_year is not None and self.last_year < self.first_year:
            raise ValueError("last_year cannot be earlier than first_year.")
        if self.max_uncertainty_m is not None and self.max_uncertainty_m <= 0:
            raise ValueError("max_uncertainty_m must be strictly positive.")


def load_occurrences(
    path: Path,
    columns: OccurrenceColumns = DEFAULT_COLUMNS,
    separator: Optional[str] = None,
) -> pd.DataFrame:
    """Read an occurrence export, checking the required columns are present."""
    if not path.exists():
        raise FileNotFoundError(f"Missing occurrence file {path}. Run `python main.py fetch` to download it first.")

    if separator is None:
        frame = pd.read_csv(path, sep=None, engine="python")
    else:
        frame = pd.read_csv(path, sep=separator)

    required = {columns["species"], columns["site"], columns["date"]}
    missing = required - set(frame.columns)
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(sorted(missing))}")

    print(f"[datahub] Loaded {len(frame)} occurrence rows from {path}")
    return frame


def clean_occurrences(frame: pd.DataFrame, config: Optional[CleaningConfig] = None) -> CleaningResult:
    """Drop unusable rows and convert the rest into `OccurrenceRecord`s.

    Rows are dropped, in order, for missing fields, unparseable dates, years
    outside the configured window, coordinate uncertainty above the limit and
    exact (species, site, date) duplicates.
    """
    cfg = config or CleaningConfig()
    cfg.validate()
    cols = cfg.columns
    dropped: Dict[str, int] = {}

    df = pd.DataFrame(
        {
            "species": frame[cols["species"]].astype("string").str.strip(),
            "site": frame[cols["site"]].astype("string").str.strip(),
            "date": frame[cols["date"]],
        }
    )
    uncertainty_col = cols.get("uncertainty")
    if uncertainty_col and uncertainty_col in frame.columns:
        df["uncertainty"] = pd.to_numeric(frame[uncertainty_col], errors="coerce")

    keep = df["species"].notna() & df["site"].notna() & df["date"].notna()
    keep &= (df["species"] != "") & (df["site"] != "")
    df = _drop(df, keep, "missing_fields", dropped)

    # Offsets are dropped so each record keeps the recorder's local calendar date.
    local = df["date"].astype(str).str.strip().str.replace(TIME_OFFSET, r"\1", regex=True)
    df["date"] = pd.to_datetime(local, errors="coerce", format="ISO8601")
    df = _drop(df, df["date"].notna(), "bad_date", dropped)

    years = df["date"].dt.year
    in_range = pd.Series(True, index=df.index)
    if cfg.first_year is not None:
        in_range &= years >= cfg.first_year
    if cfg.last_year is not None:
        in_range &= years <= cfg.last_year
    df = _drop(df, in_range, "out_of_range", dropped)

    if cfg.max_uncertainty_m is not None and "uncertainty" in df.columns:
        precise = df["uncertainty"].isna() | (df["uncertainty"] <= cfg.max_uncertainty_m)
        df = _drop(df, precise, "uncertainty", dropped)

    df["date"] = df["date"].dt.date
    df = _drop(df, ~df.duplicated(subset=["species", "site", "date"]), "duplicate", dropped)

    records: List[OccurrenceRecord] = [
        OccurrenceRecord(species=str(row.species), site=str(row.site), date=row.date)
        for row in df.itertuples(index=False)
    ]
    for reason, count in dropped.items():
        if count:
            print(f"[datahub] Dropped {count} row(s): {reason}")
    print(f"[datahub] Kept {len(records)} cleaned records")
    return CleaningResult(records=tuple(records), dropped=dropped)


def _drop(df: pd.DataFrame, keep: pd.Series, reason: str, dropped: Dict[str, int]) -> pd.DataFrame:
    keep = keep.fillna(False).astype(bool)
    dropped[reason] = int((~keep).sum())
    return df[keep].copy()


__all__ = ["CleaningConfig", "clean_occurrences", "load_occurrences"]
