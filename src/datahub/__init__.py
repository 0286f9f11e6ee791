from .cleaning import CleaningConfig, clean_occurrences, load_occurrences
from .io import download_occurrences
from .pipeline import PreparedSpecies, SpeciesRequest, prepare_species
from .records import CleaningResult, OccurrenceRecord, SpeciesMetrics, VisitTable
from .visits import detection_history, format_visits, passes_rules_of_thumb, species_metrics

__all__ = [
    "CleaningConfig",
    "CleaningResult",
    "OccurrenceRecord",
    "PreparedSpecies",
    "SpeciesMetrics",
    "SpeciesRequest",
    "VisitTable",
    "clean_occurrences",
    "detection_history",
    "download_occurrences",
    "format_visits",
    "load_occurrences",
    "passes_rules_of_thumb",
    "prepare_species",
    "species_metrics",
]
