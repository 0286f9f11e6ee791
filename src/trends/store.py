"""Read-only container for paired per-year posterior occupancy draws."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple, cast

import arviz as az
import numpy as np
import pandas as pd
import xarray as xr
from arviz import InferenceData

from .errors import DrawLengthMismatchError, EmptyInputError, MissingYearError

DEFAULT_RHAT_THRESHOLD = 1.1


class PosteriorStore:
    """Posterior draws of annual occupancy, keyed by year.

    Draw ``i`` of every year comes from the same joint posterior sample, so
    change statistics must be computed per draw index rather than from
    marginal summaries. Vectors are frozen on construction.
    """

    def __init__(
        self,
        samples: Mapping[int, Sequence[float] | np.ndarray],
        rhat: Optional[Mapping[int, float]] = None,
        rhat_threshold: float = DEFAULT_RHAT_THRESHOLD,
    ) -> None:
        if not samples:
            raise ValueError("PosteriorStore needs at least one modeled year.")
        if not np.isfinite(rhat_threshold) or rhat_threshold < 1.0:
            raise ValueError("rhat_threshold must be a finite value >= 1.0.")

        vectors: Dict[int, np.ndarray] = {}
        for year, draws in sorted(samples.items(), key=lambda item: int(item[0])):
            arr = np.array(draws, dtype=float)
            if arr.ndim != 1:
                raise ValueError(f"Draws for year {year} must be one-dimensional, got shape {arr.shape}.")
            if not np.all(np.isfinite(arr)):
                raise ValueError(f"Draws for year {year} contain non-finite values.")
            if np.any((arr < 0.0) | (arr > 1.0)):
                raise ValueError(f"Draws for year {year} fall outside [0, 1].")
            arr.setflags(write=False)
            vectors[int(year)] = arr

        lengths = {year: arr.shape[0] for year, arr in vectors.items()}
        if len(set(lengths.values())) != 1:
            raise DrawLengthMismatchError(lengths)
        n_draws = next(iter(lengths.values()))
        if n_draws == 0:
            raise EmptyInputError("PosteriorStore received zero posterior draws.")

        self._samples = vectors
        self._years: Tuple[int, ...] = tuple(vectors)
        self._n_draws = int(n_draws)
        self._rhat: Dict[int, float] = {int(year): float(value) for year, value in (rhat or {}).items()}
        self.rhat_threshold = float(rhat_threshold)

    @property
    def years(self) -> Tuple[int, ...]:
        """Modeled years in ascending order."""
        return self._years

    @property
    def n_draws(self) -> int:
        """Posterior sample size shared by every year."""
        return self._n_draws

    def __contains__(self, year: object) -> bool:
        try:
            self._key(year)
        except MissingYearError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._years)

    def get_year_samples(self, year: int) -> np.ndarray:
        """Return the read-only draw vector for ``year``."""
        return self._samples[self._key(year)]

    def _key(self, year) -> int:
        # Lookups are exact: 2000.0 matches 2000, 2000.9 matches nothing.
        try:
            key = int(year)
        except (TypeError, ValueError, OverflowError):
            raise MissingYearError(year, self._years) from None
        if key != year or key not in self._samples:
            raise MissingYearError(year, self._years)
        return key

    def stacked(self, years: Iterable[int]) -> np.ndarray:
        """Draw matrix of shape ``(n_draws, len(years))`` with paired rows."""
        columns = [self.get_year_samples(year) for year in years]
        if not columns:
            return np.empty((self._n_draws, 0), dtype=float)
        return np.column_stack(columns)

    def rhat(self, year: int) -> Optional[float]:
        """Gelman-Rubin statistic for ``year``, or None if it was not supplied."""
        return self._rhat.get(self._key(year))

    def is_converged(self, year: int) -> bool:
        """True when R-hat is known, finite and at most ``rhat_threshold``."""
        value = self.rhat(year)
        if value is None or not np.isfinite(value):
            return False
        return value <= self.rhat_threshold

    def converged_years(self) -> Tuple[int, ...]:
        return tuple(year for year in self._years if self.is_converged(year))

    @classmethod
    def from_inference_data(
        cls,
        idata: InferenceData,
        var_name: str = "psi_fs",
        year_dim: str = "year",
        rhat_threshold: float = DEFAULT_RHAT_THRESHOLD,
    ) -> "PosteriorStore":
        """Build a store from a fitted model's posterior group.

        ``chain`` and ``draw`` are stacked into one draw axis in the same order
        for every year, which keeps the joint-sample pairing intact.
        """
        posterior_group = getattr(idata, "posterior", None)
        if posterior_group is None or var_name not in posterior_group:
            raise ValueError(f"Posterior does not contain the expected '{var_name}' variable.")

        posterior = cast(xr.Dataset, posterior_group)[var_name]
        if year_dim not in posterior.dims:
            raise ValueError(f"'{var_name}' has no '{year_dim}' dimension (dims: {posterior.dims}).")

        stacked = posterior.stack(sample=("chain", "draw")).transpose("sample", year_dim)
        values = np.asarray(stacked.values, dtype=float)
        years = [int(year) for year in np.asarray(posterior[year_dim].values)]

        rhat_ds = az.rhat(idata, var_names=[var_name])
        rhat_da = cast(xr.DataArray, rhat_ds[var_name])
        rhat_values = np.asarray(rhat_da.transpose(year_dim).values, dtype=float)

        samples = {year: values[:, idx] for idx, year in enumerate(years)}
        rhat = {year: float(rhat_values[idx]) for idx, year in enumerate(years)}
        return cls(samples, rhat=rhat, rhat_threshold=rhat_threshold)

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        rhat: Optional[Mapping[int, float]] = None,
        rhat_threshold: float = DEFAULT_RHAT_THRESHOLD,
    ) -> "PosteriorStore":
        """Build a store from a wide table: one row per draw, one column per year."""
        samples = {int(column): frame[column].to_numpy(dtype=float) for column in frame.columns}
        return cls(samples, rhat=rhat, rhat_threshold=rhat_threshold)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({year: self._samples[year] for year in self._years})


def load_store(path, var_name: str = "psi_fs", rhat_threshold: float = DEFAULT_RHAT_THRESHOLD) -> PosteriorStore:
    """Read a NetCDF posterior written by ``OccupancyFitter.save``."""
    idata = az.from_netcdf(str(path))
    return PosteriorStore.from_inference_data(idata, var_name=var_name, rhat_threshold=rhat_threshold)


__all__ = ["DEFAULT_RHAT_THRESHOLD", "PosteriorStore", "load_store"]
