"""End-to-end species walkthrough: records → visits → model → change reports."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from src.datahub import PreparedSpecies, SpeciesRequest, detection_history, prepare_species
from src.occupancy import OccupancyFitter, PriorConfig
from src.trends import (
    ALL_METRICS,
    ChangeReport,
    MetricKind,
    PosteriorStore,
    ReportConfig,
    YearSummary,
    compute_windows,
    load_store,
    summarize_years,
    trailing_window,
)
from src.trends.report import YearWindow

from experiments.plots import (
    PlotSaveConfig,
    plot_change_distributions,
    plot_change_summaries,
    plot_occupancy_trend,
    plot_rhat,
    year_summary_frame,
)


@dataclass(frozen=True)
class WalkthroughResult:
    prepared: PreparedSpecies
    store: PosteriorStore
    years: List[YearSummary]
    reports: List[ChangeReport]
    posterior_path: Path


def default_windows(store: PosteriorStore, trailing_years: int = 10) -> List[YearWindow]:
    """Full modeled period plus the trailing window, when it is a distinct sub-window."""
    windows: List[YearWindow] = [(store.years[0], store.years[-1])]
    if len(store.years) > trailing_years:
        windows.append(trailing_window(store, trailing_years))
    return windows


def reports_table(reports: Sequence[ChangeReport]) -> pd.DataFrame:
    frames = [report.to_frame() for report in reports]
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)


def print_reports(reports: Sequence[ChangeReport]) -> None:
    for report in reports:
        print(f"[trends] Change {report.first_year}–{report.last_year}")
        for kind, entry in report.entries.items():
            summary = entry.summary
            excluded = f" ({entry.result.n_excluded} draws excluded)" if entry.result.n_excluded else ""
            print(
                f"  {kind:<13} mean={summary.mean:.4f} median={summary.median:.4f} "
                f"{summary.upper_percentile - summary.lower_percentile:g}% CI=({summary.lower:.4f}, {summary.upper:.4f})"
                f"{excluded}"
            )


def run_change_report(
    posterior_path: Path,
    windows: Optional[Sequence[YearWindow]] = None,
    kinds: Sequence[MetricKind] = ALL_METRICS,
    config: Optional[ReportConfig] = None,
    trailing_years: int = 10,
    rhat_threshold: float = 1.1,
) -> List[ChangeReport]:
    """Recompute change reports from a saved posterior without refitting."""
    store = load_store(posterior_path, rhat_threshold=rhat_threshold)
    resolved = list(windows) if windows else default_windows(store, trailing_years)
    reports = compute_windows(store, resolved, kinds, config)
    print_reports(reports)
    return reports


def run_species_walkthrough(
    occurrences_path: Path,
    request: SpeciesRequest,
    model_root: Path,
    report_root: Path,
    windows: Optional[Sequence[YearWindow]] = None,
    kinds: Sequence[MetricKind] = ALL_METRICS,
    report_config: Optional[ReportConfig] = None,
    trailing_years: int = 10,
    priors: Optional[PriorConfig] = None,
    draws: int = 1000,
    tune: int = 1000,
    chains: int = 3,
    cores: Optional[int] = None,
    random_seed: Optional[int] = None,
    plot_config: Optional[PlotSaveConfig] = None,
    show_plots: bool = False,
) -> WalkthroughResult:
    prepared = prepare_species(request, occurrences_path)
    if not prepared.reliable:
        print(f"[datahub] Warning: {request.focal_species} data may not support a reliable trend; fitting anyway.")

    fitter = OccupancyFitter(
        priors=priors,
        draws=draws,
        tune=tune,
        chains=chains,
        cores=cores,
        random_seed=random_seed,
    )
    fitter.fit(prepared.visits)
    slug = request.focal_species.replace(" ", "_")
    posterior_path = fitter.save(model_root / f"{slug}.nc")
    store = fitter.posterior_store()

    year_summaries = summarize_years(store)
    resolved = list(windows) if windows else default_windows(store, trailing_years)
    reports = compute_windows(store, resolved, kinds, report_config)
    print_reports(reports)

    report_root.mkdir(parents=True, exist_ok=True)
    reports_table(reports).to_csv(report_root / f"{slug}_change.csv", index=False)
    year_summary_frame(year_summaries).to_csv(report_root / f"{slug}_occupancy.csv", index=False)
    pd.DataFrame(detection_history(prepared.visits)).to_csv(report_root / f"{slug}_detections.csv", index=False)
    print(f"[trends] Saved tables → {report_root}")

    if plot_config or show_plots:
        plot_occupancy_trend(
            year_summaries,
            request.focal_species,
            naive_occupancy=prepared.metrics.naive_occupancy,
            save_to=plot_config.for_plot("occupancy") if plot_config else None,
        )
        plot_rhat(
            year_summaries,
            request.focal_species,
            store.rhat_threshold,
            save_to=plot_config.for_plot("rhat") if plot_config else None,
        )
        plot_change_summaries(
            reports,
            request.focal_species,
            save_to=plot_config.for_plot("change_summary") if plot_config else None,
        )
        for report in reports:
            plot_change_distributions(
                report,
                request.focal_species,
                save_to=(
                    plot_config.for_plot(f"change_{report.first_year}_{report.last_year}") if plot_config else None
                ),
            )

    return WalkthroughResult(
        prepared=prepared,
        store=store,
        years=year_summaries,
        reports=reports,
        posterior_path=posterior_path,
    )
