"""Plotting utilities for walkthrough results."""

from .change_summary import plot_change_distributions, plot_change_summaries
from .occupancy_trend import plot_occupancy_trend, plot_rhat, year_summary_frame
from .save_config import PlotSaveConfig, PlotSaveDestinations, emit_figure

__all__ = [
    "plot_change_distributions",
    "plot_change_summaries",
    "plot_occupancy_trend",
    "plot_rhat",
    "year_summary_frame",
    "PlotSaveConfig",
    "PlotSaveDestinations",
    "emit_figure",
]
