"""Static configuration for occurrence download, cleaning and output paths."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, TypedDict


class OccurrenceColumns(TypedDict):
    species: str
    site: str
    date: str
    uncertainty: Optional[str]


class OccurrenceSourceConfig(TypedDict):
    folder_name: str
    file_name: str
    separator: Optional[str]


# Default directories used by the Typer CLI; callers may override these.
DEFAULT_RAW_ROOT = Path("data/raw")
DEFAULT_MODEL_ROOT = Path("data/models")
DEFAULT_REPORT_ROOT = Path("data/reports")

# ---------------------------------------------------------------------------
# Occurrence payloads. Column names follow the GBIF simple download layout; the
# site column must already hold a grid-cell identifier.

DEFAULT_COLUMNS: OccurrenceColumns = {
    "species": "species",
    "site": "site",
    "date": "eventDate",
    "uncertainty": "coordinateUncertaintyInMeters",
}

OCCURRENCES: OccurrenceSourceConfig = {
    "folder_name": "occurrences",
    "file_name": "records.csv",
    # None lets pandas sniff comma vs tab separated exports.
    "separator": None,
}


__all__ = [
    "DEFAULT_COLUMNS",
    "DEFAULT_MODEL_ROOT",
    "DEFAULT_RAW_ROOT",
    "DEFAULT_REPORT_ROOT",
    "OCCURRENCES",
    "OccurrenceColumns",
    "OccurrenceSourceConfig",
]
