"""Occupancy-detection model fitting based on PyMC."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import arviz as az
import pymc as pm
from arviz import InferenceData

from src.datahub.records import VisitTable
from src.trends.store import DEFAULT_RHAT_THRESHOLD, PosteriorStore

from .builders import OccupancyDataset, PriorConfig, build_dataset, build_model


class OccupancyFitter:
    """Fits the occupancy model for one species and exposes its posterior."""

    def __init__(
        self,
        priors: Optional[PriorConfig] = None,
        draws: int = 1000,
        tune: int = 1000,
        chains: int = 3,
        cores: Optional[int] = None,
        target_accept: float = 0.9,
        random_seed: Optional[int] = None,
        rhat_threshold: float = DEFAULT_RHAT_THRESHOLD,
    ) -> None:
        self.priors = priors or PriorConfig()
        self.draws = draws
        self.tune = tune
        self.chains = chains
        self.cores = cores
        self.target_accept = target_accept
        self.random_seed = random_seed
        self.rhat_threshold = rhat_threshold
        self._idata: Optional[InferenceData] = None
        self._years: Sequence[int] = ()
        self._species: Optional[str] = None

    def fit(self, visits: VisitTable | OccupancyDataset) -> InferenceData:
        """Sample the posterior for the provided visits."""
        dataset = visits if isinstance(visits, OccupancyDataset) else build_dataset(visits)
        model = build_model(dataset, self.priors)
        print(
            f"[occupancy] Fitting {dataset.focal_species}: {len(dataset.sites)} sites, "
            f"{dataset.years[0]}–{dataset.years[-1]}, {self.chains}×{self.draws} draws"
        )
        with model:
            self._idata = pm.sample(
                draws=self.draws,
                tune=self.tune,
                chains=self.chains,
                cores=self.cores,
                target_accept=self.target_accept,
                random_seed=self.random_seed,
                return_inferencedata=True,
                progressbar=False,
            )
        self._years = tuple(dataset.years)
        self._species = dataset.focal_species
        return self._idata

    @property
    def idata(self) -> InferenceData:
        if self._idata is None:
            raise RuntimeError("OccupancyFitter.fit() must be called before accessing the posterior.")
        return self._idata

    @property
    def focal_species(self) -> Optional[str]:
        return self._species

    def posterior_store(self) -> PosteriorStore:
        """Annual occupancy draws with R-hat based convergence flags."""
        store = PosteriorStore.from_inference_data(self.idata, var_name="psi_fs", rhat_threshold=self.rhat_threshold)
        failing = [year for year in store.years if not store.is_converged(year)]
        if failing:
            joined = ", ".join(str(year) for year in failing)
            print(f"[occupancy] R-hat above {self.rhat_threshold} for year(s): {joined}")
        return store

    def save(self, path: Path) -> Path:
        """Persist the posterior as NetCDF so reports can be rerun without refitting."""
        path.parent.mkdir(parents=True, exist_ok=True)
        az.to_netcdf(self.idata, str(path))
        print(f"[occupancy] Saved posterior → {path}")
        return path


def fit_occupancy(
    visits: VisitTable,
    priors: PriorConfig | None = None,
    draws: int = 1000,
    tune: int = 1000,
    chains: int = 3,
    cores: int | None = None,
    target_accept: float = 0.9,
    random_seed: int | None = None,
) -> PosteriorStore:
    """Fit the model and return its posterior store in one call."""
    fitter = OccupancyFitter(
        priors=priors,
        draws=draws,
        tune=tune,
        chains=chains,
        cores=cores,
        target_accept=target_accept,
        random_seed=random_seed,
    )
    fitter.fit(visits)
    return fitter.posterior_store()


__all__ = ["OccupancyFitter", "fit_occupancy"]
