"""Dataset builders and PyMC model construction helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pymc as pm
import pytensor.tensor as pt

from src.datahub.records import VisitTable


@dataclass(frozen=True)
class PriorConfig:
    """Prior hyper-parameters for the occupancy-detection model."""

    init_sigma: float = 2.0
    walk_scale: float = 1.0
    site_scale: float = 1.0
    detection_sigma: float = 2.0
    detection_scale: float = 1.0
    list_length_sigma: float = 1.0

    def validate(self) -> None:
        scales = (
            self.init_sigma,
            self.walk_scale,
            self.site_scale,
            self.detection_sigma,
            self.detection_scale,
            self.list_length_sigma,
        )
        if any(scale <= 0 for scale in scales):
            raise ValueError("Prior scales must be strictly positive.")


@dataclass(frozen=True, eq=False)
class OccupancyDataset:
    focal_species: str
    years: Sequence[int]
    sites: Sequence[str]
    visit_site_year: np.ndarray
    visit_year: np.ndarray
    detected: np.ndarray
    log_list_length: np.ndarray
    site_year_site: np.ndarray
    site_year_year: np.ndarray
    site_year_detected: np.ndarray

    @property
    def n_site_years(self) -> int:
        return int(self.site_year_site.shape[0])


def build_dataset(visits: VisitTable) -> OccupancyDataset:
    """Convert a visit table into arrays ready for PyMC."""
    if visits.n_visits == 0:
        raise ValueError("No visits supplied for occupancy modeling.")
    n_years = len(visits.years)
    if n_years < 2:
        raise ValueError("Occupancy trends need visits spanning at least two years.")
    if np.any(visits.list_length < 1):
        raise ValueError("Every visit must record at least one taxon.")

    pairs = visits.site_idx.astype(int) * n_years + visits.year_idx.astype(int)
    unique_pairs, visit_site_year = np.unique(pairs, return_inverse=True)
    detections = np.bincount(visit_site_year, weights=visits.detected, minlength=unique_pairs.size)

    return OccupancyDataset(
        focal_species=visits.focal_species,
        years=tuple(visits.years),
        sites=tuple(visits.sites),
        visit_site_year=visit_site_year.astype(int).reshape(-1),
        visit_year=visits.year_idx.astype(int),
        detected=visits.detected.astype(int),
        log_list_length=np.log(visits.list_length.astype(float)),
        site_year_site=(unique_pairs // n_years).astype(int),
        site_year_year=(unique_pairs % n_years).astype(int),
        site_year_detected=detections > 0,
    )


def build_model(dataset: OccupancyDataset, priors: PriorConfig) -> pm.Model:
    """Create the PyMC occupancy-detection model.

    Occupancy follows a random walk on the logit scale across years with a
    site random effect; detection has a year intercept and a list-length
    slope. The latent occupancy state is summed out of the likelihood, and
    ``psi_fs`` records the expected proportion of occupied sites per year.
    """
    priors.validate()
    n_sites, n_years = len(dataset.sites), len(dataset.years)
    coords = {"year": list(dataset.years), "site": list(dataset.sites)}
    flat_site_year = dataset.site_year_site * n_years + dataset.site_year_year

    with pm.Model(coords=coords) as model:
        sigma_walk = pm.HalfNormal("sigma_walk", sigma=priors.walk_scale)
        a = pm.GaussianRandomWalk(
            "a",
            sigma=sigma_walk,
            init_dist=pm.Normal.dist(0.0, priors.init_sigma),
            dims="year",
        )
        sigma_site = pm.HalfNormal("sigma_site", sigma=priors.site_scale)
        eta_raw = pm.Normal("eta_raw", 0.0, 1.0, dims="site")
        eta = pm.Deterministic("eta", sigma_site * eta_raw, dims="site")

        mu_p = pm.Normal("mu_p", 0.0, priors.detection_sigma)
        sigma_p = pm.HalfNormal("sigma_p", sigma=priors.detection_scale)
        alpha_p = pm.Normal("alpha_p", mu=mu_p, sigma=sigma_p, dims="year")
        beta_ll = pm.Normal("beta_ll", 0.0, priors.list_length_sigma)

        # Detection log-likelihood per visit, accumulated per site-year.
        logit_p = alpha_p[dataset.visit_year] + beta_ll * dataset.log_list_length
        y = dataset.detected
        ll_visit = -y * pm.math.log1pexp(-logit_p) - (1 - y) * pm.math.log1pexp(logit_p)
        ll_det = pt.inc_subtensor(pt.zeros(dataset.n_site_years)[dataset.visit_site_year], ll_visit)

        logit_psi = a[dataset.site_year_year] + eta[dataset.site_year_site]
        occupied = -pm.math.log1pexp(-logit_psi) + ll_det
        unoccupied = -pm.math.log1pexp(logit_psi)
        marginal = pt.switch(dataset.site_year_detected, occupied, pt.logaddexp(occupied, unoccupied))
        pm.Potential("likelihood", marginal.sum())

        conditional = pt.exp(occupied - marginal)
        psi_grid = pm.math.sigmoid(a[None, :] + eta[:, None]).flatten()
        psi_grid = pt.set_subtensor(psi_grid[flat_site_year], conditional)
        pm.Deterministic("psi_fs", psi_grid.reshape((n_sites, n_years)).mean(axis=0), dims="year")
    return model
