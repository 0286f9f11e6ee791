"""Occupancy-detection modeling helpers producing posterior occupancy draws."""

from .builders import OccupancyDataset, PriorConfig, build_dataset, build_model
from .fitting import OccupancyFitter, fit_occupancy

__all__ = [
    "OccupancyDataset",
    "OccupancyFitter",
    "PriorConfig",
    "build_dataset",
    "build_model",
    "fit_occupancy",
]
