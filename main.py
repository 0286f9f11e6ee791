from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import typer

from experiments.occupancy_walkthrough import reports_table, run_change_report, run_species_walkthrough
from experiments.plots import PlotSaveConfig
from src.datahub import SpeciesRequest, download_occurrences
from src.datahub.config import DEFAULT_MODEL_ROOT, DEFAULT_RAW_ROOT, DEFAULT_REPORT_ROOT, OCCURRENCES
from src.trends import ALL_METRICS, MetricKind, ReportConfig

app = typer.Typer()

DEFAULT_OCCURRENCES = DEFAULT_RAW_ROOT / OCCURRENCES["folder_name"] / OCCURRENCES["file_name"]


def parse_windows(values: List[str]) -> List[Tuple[int, int]]:
    """Parse ``FIRST:LAST`` window options."""
    windows: List[Tuple[int, int]] = []
    for value in values:
        first, sep, last = value.partition(":")
        if not sep:
            raise ValueError(f"Window '{value}' must look like FIRST:LAST, e.g. 1970:2023.")
        try:
            windows.append((int(first), int(last)))
        except ValueError as exc:
            raise ValueError(f"Window '{value}' must contain integer years.") from exc
    return windows


def parse_metrics(values: List[str]) -> List[MetricKind]:
    unknown = [value for value in values if value not in ALL_METRICS]
    if unknown:
        raise ValueError(f"Unknown metric(s) {', '.join(unknown)}; choose from {', '.join(ALL_METRICS)}.")
    return [value for value in ALL_METRICS if value in values]


def build_report_config(exclude_zero_draws: bool, lower: float, upper: float, require_converged: bool) -> ReportConfig:
    config = ReportConfig(
        zero_policy="exclude" if exclude_zero_draws else "raise",
        lower_percentile=lower,
        upper_percentile=upper,
        require_converged=require_converged,
    )
    config.validate()
    return config


@app.command()
def fetch(
    url: str = typer.Option(..., "--url", help="Occurrence export to download (CSV or TSV)."),
    dest: Path = typer.Option(DEFAULT_OCCURRENCES, "--dest", help="Where to store the export."),
    sha256: Optional[str] = typer.Option(None, "--sha256", help="Expected checksum of the export."),
    force: bool = typer.Option(False, "--force", help="Redownload even if the file exists."),
) -> None:
    """
    Download an occurrence export and cache it under data/raw.
    """
    download_occurrences(url, dest, force=force, expected_sha=sha256)


@app.command()
def walkthrough(
    species: str = typer.Option(..., "--species", help="Focal species name as it appears in the export."),
    occurrences: Path = typer.Option(DEFAULT_OCCURRENCES, "--occurrences", help="Cleaned-input occurrence file."),
    first_year: Optional[int] = typer.Option(None, "--first-year", help="Drop records before this year."),
    last_year: Optional[int] = typer.Option(None, "--last-year", help="Drop records after this year."),
    max_uncertainty: Optional[float] = typer.Option(
        None, "--max-uncertainty", help="Drop records with coordinate uncertainty above this (metres)."
    ),
    min_years_per_site: int = typer.Option(2, "--min-years-per-site", help="Keep sites recorded in this many years."),
    window: List[str] = typer.Option(
        [],
        "--window",
        help="FIRST:LAST change windows (defaults to the full period and the last decade).",
    ),
    metric: List[str] = typer.Option(list(ALL_METRICS), "--metric", help="Change metrics to report.", show_default=True),
    exclude_zero_draws: bool = typer.Option(
        False, "--exclude-zero-draws", help="Exclude draws with a zero denominator instead of failing."
    ),
    lower: float = typer.Option(2.5, "--lower", help="Lower credible percentile."),
    upper: float = typer.Option(97.5, "--upper", help="Upper credible percentile."),
    require_converged: bool = typer.Option(False, "--require-converged", help="Fail on years with high R-hat."),
    draws: int = typer.Option(1000, "--draws", help="Posterior draws per chain."),
    tune: int = typer.Option(1000, "--tune", help="Tuning steps per chain."),
    chains: int = typer.Option(3, "--chains", help="Number of MCMC chains."),
    cores: Optional[int] = typer.Option(None, "--cores", help="Processes used for sampling."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for the sampler."),
    model_root: Path = typer.Option(DEFAULT_MODEL_ROOT, "--model-root", help="Directory for posterior files."),
    report_root: Path = typer.Option(DEFAULT_REPORT_ROOT, "--report-root", help="Directory for CSV tables."),
    plots_root: Optional[Path] = typer.Option(
        None,
        "--plots-root",
        help="Directory where plots should be saved (subfolders are created automatically).",
    ),
    plots_tag: Optional[str] = typer.Option(
        None,
        "--plots-tag",
        help="Folder suffix for this run (defaults to timestamp).",
    ),
    save_static: bool = typer.Option(True, help="Write static PNG snapshots when saving plots."),
    save_html: bool = typer.Option(True, help="Write interactive HTML plots when saving."),
    show_plots: bool = typer.Option(False, "--show-plots", help="Open plots instead of only saving them."),
) -> None:
    """
    Clean records, fit the occupancy model for one species and report occupancy change.
    """
    try:
        request = SpeciesRequest.from_flags(species, first_year, last_year, max_uncertainty, min_years_per_site)
        windows = parse_windows(window)
        kinds = parse_metrics(metric)
        config = build_report_config(exclude_zero_draws, lower, upper, require_converged)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    save_config: Optional[PlotSaveConfig] = None
    if plots_root:
        tag = plots_tag or datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        base_dir = plots_root / request.focal_species.replace(" ", "_")
        save_config = PlotSaveConfig(base_dir=base_dir, run_tag=tag, save_static=save_static, save_html=save_html)
        print(f"[plots] Saving figures under {base_dir / tag}")

    run_species_walkthrough(
        occurrences,
        request,
        model_root=model_root,
        report_root=report_root,
        windows=windows,
        kinds=kinds,
        report_config=config,
        draws=draws,
        tune=tune,
        chains=chains,
        cores=cores,
        random_seed=seed,
        plot_config=save_config,
        show_plots=show_plots,
    )


@app.command()
def change(
    posterior: Path = typer.Option(..., "--posterior", exists=True, dir_okay=False, help="Saved NetCDF posterior."),
    window: List[str] = typer.Option([], "--window", help="FIRST:LAST change windows."),
    metric: List[str] = typer.Option(list(ALL_METRICS), "--metric", help="Change metrics to report.", show_default=True),
    exclude_zero_draws: bool = typer.Option(False, "--exclude-zero-draws"),
    lower: float = typer.Option(2.5, "--lower"),
    upper: float = typer.Option(97.5, "--upper"),
    require_converged: bool = typer.Option(False, "--require-converged"),
    rhat_threshold: float = typer.Option(1.1, "--rhat-threshold", help="R-hat above which a year is unconverged."),
    output: Optional[Path] = typer.Option(None, "--output", help="Optional CSV destination."),
) -> None:
    """
    Recompute change reports from a saved posterior.
    """
    try:
        windows = parse_windows(window)
        kinds = parse_metrics(metric)
        config = build_report_config(exclude_zero_draws, lower, upper, require_converged)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    reports = run_change_report(posterior, windows, kinds, config, rhat_threshold=rhat_threshold)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        reports_table(reports).to_csv(output, index=False)
        print(f"[trends] Saved table → {output}")


if __name__ == "__main__":
    app()
