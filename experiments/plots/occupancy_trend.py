"""Annual occupancy and convergence plots."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from src.trends.records import YearSummary
from .save_config import PlotSaveDestinations, emit_figure


def year_summary_frame(summaries: Sequence[YearSummary]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "year": [item.year for item in summaries],
            "mean": [item.summary.mean for item in summaries],
            "lower": [item.summary.lower for item in summaries],
            "upper": [item.summary.upper for item in summaries],
            "rhat": [item.rhat for item in summaries],
            "converged": [item.converged for item in summaries],
        }
    )


def plot_occupancy_trend(
    summaries: Sequence[YearSummary],
    species: str,
    naive_occupancy: Optional[Mapping[int, float]] = None,
    save_to: Optional[PlotSaveDestinations] = None,
) -> None:
    """Posterior mean occupancy per year with its credible band."""
    if not summaries:
        return

    df = year_summary_frame(summaries)
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=pd.concat([df["year"], df["year"][::-1]]),
            y=pd.concat([df["upper"], df["lower"][::-1]]),
            fill="toself",
            line=dict(width=0),
            opacity=0.3,
            name="95% CI",
            hoverinfo="skip",
        )
    )
    fig.add_trace(go.Scatter(x=df["year"], y=df["mean"], mode="lines+markers", name="Posterior mean"))

    unconverged = df[~df["converged"]]
    if not unconverged.empty:
        fig.add_trace(
            go.Scatter(
                x=unconverged["year"],
                y=unconverged["mean"],
                mode="markers",
                marker=dict(symbol="x", size=10),
                name="R-hat above threshold",
            )
        )
    if naive_occupancy:
        years = sorted(naive_occupancy)
        fig.add_trace(
            go.Scatter(
                x=years,
                y=[naive_occupancy[year] for year in years],
                mode="markers",
                name="Naive occupancy",
            )
        )

    fig.update_layout(
        title=f"{species} – occupancy",
        xaxis_title="Year",
        yaxis_title="Proportion of sites occupied",
        yaxis=dict(range=[0.0, 1.0]),
    )
    emit_figure(fig, save_to)


def plot_rhat(
    summaries: Sequence[YearSummary],
    species: str,
    threshold: float,
    save_to: Optional[PlotSaveDestinations] = None,
) -> None:
    """Gelman-Rubin statistic per year against the convergence threshold."""
    df = year_summary_frame(summaries).dropna(subset=["rhat"])
    if df.empty:
        return

    fig = px.scatter(
        df,
        x="year",
        y="rhat",
        color="converged",
        title=f"{species} – R-hat of annual occupancy",
        labels={"year": "Year", "rhat": "R-hat", "converged": "Converged"},
    )
    fig.add_hline(y=threshold, line_dash="dash")
    emit_figure(fig, save_to)


__all__ = ["plot_occupancy_trend", "plot_rhat", "year_summary_frame"]
