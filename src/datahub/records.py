"""Typed records passed between the cleaning, visit and modeling stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Tuple

import numpy as np


@dataclass(frozen=True)
class OccurrenceRecord:
    """A single validated species-site-date observation."""

    species: str
    site: str
    date: date

    @property
    def year(self) -> int:
        return self.date.year


@dataclass(frozen=True, eq=False)
class VisitTable:
    """Visits (site × date) with focal-species detections.

    A visit is any site-date on which at least one taxon of the target group
    was recorded; ``list_length`` counts the distinct taxa on that list.
    """

    focal_species: str
    sites: Tuple[str, ...]
    years: Tuple[int, ...]
    site_idx: np.ndarray
    year_idx: np.ndarray
    list_length: np.ndarray
    detected: np.ndarray

    @property
    def n_visits(self) -> int:
        return int(self.detected.shape[0])


@dataclass(frozen=True)
class CleaningResult:
    """Records that survived cleaning, plus the number dropped per reason."""

    records: Tuple[OccurrenceRecord, ...]
    dropped: Dict[str, int] = field(default_factory=dict)

    @property
    def n_dropped(self) -> int:
        return sum(self.dropped.values())


@dataclass(frozen=True)
class SpeciesMetrics:
    """Data-sufficiency metrics of the focal species (Pocock et al. 2019)."""

    focal_species: str
    n_visits: int
    n_detections: int
    prop_abs: float
    p90: float
    naive_occupancy: Dict[int, float]
