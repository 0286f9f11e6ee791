"""High-level orchestration from an occurrence export to a species visit table."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .cleaning import CleaningConfig, clean_occurrences, load_occurrences
from .config import DEFAULT_COLUMNS, OccurrenceColumns
from .records import CleaningResult, SpeciesMetrics, VisitTable
from .visits import format_visits, passes_rules_of_thumb, species_metrics


@dataclass(frozen=True)
class SpeciesRequest:
    """Describe which species to prepare and how to filter its records."""

    focal_species: str
    first_year: Optional[int] = None
    last_year: Optional[int] = None
    max_uncertainty_m: Optional[float] = None
    min_years_per_site: int = 2

    @classmethod
    def from_flags(
        cls,
        species: str,
        first_year: Optional[int],
        last_year: Optional[int],
        max_uncertainty_m: Optional[float],
        min_years_per_site: int,
    ) -> "SpeciesRequest":
        """Translate CLI flags into a normalized request."""
        name = species.strip()
        if not name:
            raise ValueError("Provide the focal species via --species.")
        if min_years_per_site < 1:
            raise ValueError("--min-years-per-site must be at least 1.")
        request = cls(name, first_year, last_year, max_uncertainty_m, min_years_per_site)
        request.cleaning_config().validate()
        return request

    def cleaning_config(self, columns: OccurrenceColumns = DEFAULT_COLUMNS) -> CleaningConfig:
        return CleaningConfig(
            first_year=self.first_year,
            last_year=self.last_year,
            max_uncertainty_m=self.max_uncertainty_m,
            columns=columns,
        )


@dataclass(frozen=True)
class PreparedSpecies:
    """Everything the modeling stage needs for one focal species."""

    cleaning: CleaningResult
    visits: VisitTable
    metrics: SpeciesMetrics
    reliable: bool


def prepare_species(
    request: SpeciesRequest,
    occurrences_path: Path,
    columns: OccurrenceColumns = DEFAULT_COLUMNS,
    separator: Optional[str] = None,
) -> PreparedSpecies:
    """
    Run the data stage: load the export, clean it, format visits and check the rules of thumb.
    """
    frame = load_occurrences(occurrences_path, columns=columns, separator=separator)
    cleaning = clean_occurrences(frame, request.cleaning_config(columns))
    visits = format_visits(cleaning.records, request.focal_species, request.min_years_per_site)
    metrics = species_metrics(visits)
    reliable = passes_rules_of_thumb(metrics)

    verdict = "passes" if reliable else "fails"
    print(
        f"[datahub] {request.focal_species}: prop_abs={metrics.prop_abs:.3f} P90={metrics.p90:.1f} "
        f"→ {verdict} the EqualWt rules of thumb"
    )
    return PreparedSpecies(cleaning=cleaning, visits=visits, metrics=metrics, reliable=reliable)


__all__ = ["PreparedSpecies", "SpeciesRequest", "prepare_species"]
