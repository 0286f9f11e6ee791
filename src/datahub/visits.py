"""Visit formatting and data-sufficiency checks for a focal species."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Set, Tuple

import numpy as np

from .records import OccurrenceRecord, SpeciesMetrics, VisitTable

# EqualWt rules of thumb from Pocock et al. (2019): minimum P90 for a reliable
# trend, depending on how rarely the species appears on lists.
RARE_PROP_ABS = 0.990
RARE_MIN_P90 = 3.1
COMMON_MIN_P90 = 6.7


def format_visits(
    records: Iterable[OccurrenceRecord],
    focal_species: str,
    min_years_per_site: int = 2,
) -> VisitTable:
    """Turn target-group records into visits with focal-species detections.

    Every site-date with at least one record is a visit. Sites recorded in
    fewer than ``min_years_per_site`` distinct years are dropped. The year axis
    spans every calendar year between the first and last visit, so years
    without visits are still modeled.
    """
    if min_years_per_site < 1:
        raise ValueError("min_years_per_site must be at least 1.")

    record_list = list(records)
    if not record_list:
        raise ValueError("No records supplied for visit formatting.")
    if focal_species not in {record.species for record in record_list}:
        raise ValueError(f"Focal species '{focal_species}' does not occur in the cleaned records.")

    years_by_site: Dict[str, Set[int]] = defaultdict(set)
    for record in record_list:
        years_by_site[record.site].add(record.year)
    kept_sites = sorted(site for site, years in years_by_site.items() if len(years) >= min_years_per_site)
    if not kept_sites:
        raise ValueError(f"No site was recorded in at least {min_years_per_site} distinct years.")
    kept = set(kept_sites)

    lists: Dict[Tuple[str, date], Set[str]] = defaultdict(set)
    for record in record_list:
        if record.site in kept:
            lists[(record.site, record.date)].add(record.species)

    visit_keys = sorted(lists)
    first_year = min(visit_date.year for _, visit_date in visit_keys)
    last_year = max(visit_date.year for _, visit_date in visit_keys)
    years = tuple(range(first_year, last_year + 1))
    site_index = {site: idx for idx, site in enumerate(kept_sites)}

    site_idx = np.asarray([site_index[site] for site, _ in visit_keys], dtype=int)
    year_idx = np.asarray([visit_date.year - first_year for _, visit_date in visit_keys], dtype=int)
    list_length = np.asarray([len(lists[key]) for key in visit_keys], dtype=int)
    detected = np.asarray([int(focal_species in lists[key]) for key in visit_keys], dtype=int)

    print(
        f"[datahub] {focal_species}: {len(visit_keys)} visits across {len(kept_sites)} sites, "
        f"{years[0]}–{years[-1]} ({int(detected.sum())} detections)"
    )
    return VisitTable(
        focal_species=focal_species,
        sites=tuple(kept_sites),
        years=years,
        site_idx=site_idx,
        year_idx=year_idx,
        list_length=list_length,
        detected=detected,
    )


def species_metrics(visits: VisitTable) -> SpeciesMetrics:
    """Compute prop_abs, P90 and naive occupancy for the focal species.

    ``prop_abs`` is the proportion of visits without the focal species and
    ``p90`` the 90th percentile, across modeled years, of the number of visits
    per year on which it was detected.
    """
    n_visits = visits.n_visits
    if n_visits == 0:
        raise ValueError("Visit table is empty.")

    detected = visits.detected.astype(bool)
    n_detections = int(detected.sum())
    per_year = np.bincount(visits.year_idx[detected], minlength=len(visits.years))

    naive: Dict[int, float] = {}
    for offset, year in enumerate(visits.years):
        in_year = visits.year_idx == offset
        if not in_year.any():
            continue
        visited_sites = np.unique(visits.site_idx[in_year])
        occupied_sites = np.unique(visits.site_idx[in_year & detected])
        naive[year] = float(occupied_sites.size / visited_sites.size)

    return SpeciesMetrics(
        focal_species=visits.focal_species,
        n_visits=n_visits,
        n_detections=n_detections,
        prop_abs=1.0 - n_detections / n_visits,
        p90=float(np.percentile(per_year, 90)),
        naive_occupancy=naive,
    )


def passes_rules_of_thumb(metrics: SpeciesMetrics) -> bool:
    """Whether the data are expected to support a reliable occupancy trend."""
    if metrics.prop_abs >= RARE_PROP_ABS:
        return metrics.p90 >= RARE_MIN_P90
    return metrics.p90 >= COMMON_MIN_P90


def detection_history(visits: VisitTable) -> List[Dict[str, object]]:
    """Rows of (site, year, visits, detections) for inspection or export."""
    counts: Dict[Tuple[int, int], List[int]] = defaultdict(lambda: [0, 0])
    for site, year, hit in zip(visits.site_idx, visits.year_idx, visits.detected):
        bucket = counts[(int(site), int(year))]
        bucket[0] += 1
        bucket[1] += int(hit)
    return [
        {
            "site": visits.sites[site],
            "year": visits.years[year],
            "visits": n_visits,
            "detections": n_hits,
        }
        for (site, year), (n_visits, n_hits) in sorted(counts.items())
    ]


__all__ = [
    "COMMON_MIN_P90",
    "RARE_MIN_P90",
    "RARE_PROP_ABS",
    "detection_history",
    "format_visits",
    "passes_rules_of_thumb",
    "species_metrics",
]
