"""Plots of occupancy-change reports."""

from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd
import plotly.express as px

from src.trends.report import ChangeReport
from .save_config import PlotSaveDestinations, emit_figure


def plot_change_summaries(
    reports: Sequence[ChangeReport],
    species: str,
    save_to: Optional[PlotSaveDestinations] = None,
) -> None:
    """Mean change with credible interval, one panel per metric, one bar per window."""
    if not reports:
        return

    df = pd.concat([report.to_frame() for report in reports], ignore_index=True)
    if df.empty:
        return
    df["window"] = df["first_year"].astype(str) + "–" + df["last_year"].astype(str)

    fig = px.bar(
        df,
        x="mean",
        y="window",
        facet_col="metric",
        orientation="h",
        error_x=df["upper"] - df["mean"],
        error_x_minus=df["mean"] - df["lower"],
        title=f"{species} – occupancy change",
        labels={"mean": "Posterior mean change", "window": "Years"},
    )
    fig.update_xaxes(matches=None)
    emit_figure(fig, save_to)


def plot_change_distributions(
    report: ChangeReport,
    species: str,
    save_to: Optional[PlotSaveDestinations] = None,
) -> None:
    """Histograms of the per-draw change values of each metric in a report."""
    rows = []
    for kind, entry in report.entries.items():
        for value in entry.result.valid_values:
            rows.append({"metric": kind, "value": float(value)})
    if not rows:
        return

    fig = px.histogram(
        pd.DataFrame(rows),
        x="value",
        facet_col="metric",
        nbins=50,
        title=f"{species} – change {report.first_year}–{report.last_year}",
        labels={"value": "Change"},
    )
    fig.update_xaxes(matches=None)
    emit_figure(fig, save_to)


__all__ = ["plot_change_distributions", "plot_change_summaries"]
