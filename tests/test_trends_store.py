"""Tests for the posterior store of annual occupancy draws."""

from __future__ import annotations

from pathlib import Path
import sys

import arviz as az
import numpy as np
import pandas as pd
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.trends.errors import DrawLengthMismatchError, EmptyInputError, MissingYearError
from src.trends.store import PosteriorStore, load_store


# ---------------------------------------------------------------------------
# Construction and lookup


def test_store_exposes_years_and_draws() -> None:
    store = PosteriorStore({2001: [0.3, 0.4], 2000: [0.1, 0.2]})
    assert store.years == (2000, 2001)
    assert store.n_draws == 2
    assert len(store) == 2
    assert 2000 in store
    assert np.allclose(store.get_year_samples(2001), [0.3, 0.4])


def test_year_samples_are_read_only() -> None:
    draws = np.array([0.1, 0.2, 0.3])
    store = PosteriorStore({2000: draws, 2001: draws})
    samples = store.get_year_samples(2000)
    with pytest.raises(ValueError):
        samples[0] = 0.9
    # The caller's array is copied, so later mutation cannot leak in.
    draws[0] = 0.9
    assert store.get_year_samples(2000)[0] == pytest.approx(0.1)


def test_missing_year_raises() -> None:
    store = PosteriorStore({2000: [0.1], 2001: [0.2]})
    with pytest.raises(MissingYearError) as excinfo:
        store.get_year_samples(1999)
    assert excinfo.value.year == 1999
    assert isinstance(excinfo.value, LookupError)


def test_store_does_not_interpolate_gaps() -> None:
    store = PosteriorStore({2000: [0.1], 2002: [0.3]})
    with pytest.raises(MissingYearError):
        store.get_year_samples(2001)


def test_stacked_pairs_draws_by_row() -> None:
    store = PosteriorStore({2000: [0.1, 0.2], 2001: [0.3, 0.4], 2002: [0.5, 0.6]})
    matrix = store.stacked([2000, 2002])
    assert matrix.shape == (2, 2)
    assert np.allclose(matrix[1], [0.2, 0.6])


def test_store_rejects_unequal_draw_counts() -> None:
    with pytest.raises(DrawLengthMismatchError) as excinfo:
        PosteriorStore({2000: [0.1, 0.2], 2001: [0.3]})
    assert excinfo.value.lengths == {2000: 2, 2001: 1}


def test_store_rejects_bad_values() -> None:
    with pytest.raises(ValueError):
        PosteriorStore({2000: [0.1, 1.2]})
    with pytest.raises(ValueError):
        PosteriorStore({2000: [0.1, float("nan")]})
    with pytest.raises(ValueError):
        PosteriorStore({})


def test_store_rejects_empty_samples() -> None:
    with pytest.raises(EmptyInputError):
        PosteriorStore({2000: [], 2001: []})


# ---------------------------------------------------------------------------
# Convergence flags


def test_is_converged_uses_threshold() -> None:
    store = PosteriorStore(
        {2000: [0.1], 2001: [0.2], 2002: [0.3], 2003: [0.4]},
        rhat={2000: 1.02, 2001: 1.25, 2002: float("nan")},
    )
    assert store.is_converged(2000) is True
    assert store.is_converged(2001) is False
    assert store.is_converged(2002) is False
    assert store.is_converged(2003) is False
    assert store.rhat(2003) is None
    assert store.converged_years() == (2000,)


def test_is_converged_unknown_year() -> None:
    store = PosteriorStore({2000: [0.1]}, rhat={2000: 1.0})
    with pytest.raises(MissingYearError):
        store.is_converged(2010)


def test_custom_threshold() -> None:
    store = PosteriorStore({2000: [0.1]}, rhat={2000: 1.05}, rhat_threshold=1.01)
    assert store.is_converged(2000) is False
    with pytest.raises(ValueError):
        PosteriorStore({2000: [0.1]}, rhat_threshold=0.9)


# ---------------------------------------------------------------------------
# Builders


def _idata(values: np.ndarray, years: list[int]):
    return az.from_dict(
        posterior={"psi_fs": values},
        coords={"year": years},
        dims={"psi_fs": ["year"]},
    )


def test_from_inference_data_stacks_chains_in_order() -> None:
    rng = np.random.default_rng(7)
    values = rng.uniform(0.2, 0.8, size=(2, 500, 3))
    store = PosteriorStore.from_inference_data(_idata(values, [2010, 2011, 2012]))

    assert store.years == (2010, 2011, 2012)
    assert store.n_draws == 1000
    assert np.allclose(store.get_year_samples(2011), values[:, :, 1].reshape(-1))
    assert store.converged_years() == (2010, 2011, 2012)


def test_from_inference_data_flags_disagreeing_chains() -> None:
    rng = np.random.default_rng(11)
    values = np.empty((2, 200, 2))
    values[0] = rng.uniform(0.05, 0.15, size=(200, 2))
    values[1] = rng.uniform(0.85, 0.95, size=(200, 2))
    store = PosteriorStore.from_inference_data(_idata(values, [2000, 2001]))
    assert store.is_converged(2000) is False
    assert store.rhat(2000) > 1.1


def test_from_inference_data_requires_variable() -> None:
    values = np.full((1, 10, 2), 0.5)
    idata = az.from_dict(posterior={"other": values}, coords={"year": [1, 2]}, dims={"other": ["year"]})
    with pytest.raises(ValueError):
        PosteriorStore.from_inference_data(idata)


def test_frame_round_trip() -> None:
    frame = pd.DataFrame({2000: [0.1, 0.2], 2001: [0.3, 0.4]})
    store = PosteriorStore.from_frame(frame, rhat={2000: 1.0, 2001: 1.0})
    assert store.years == (2000, 2001)
    pd.testing.assert_frame_equal(store.to_frame(), frame)


def test_load_store_reads_netcdf(tmp_path: Path) -> None:
    rng = np.random.default_rng(3)
    values = rng.uniform(0.2, 0.4, size=(2, 100, 2))
    path = tmp_path / "posterior.nc"
    az.to_netcdf(_idata(values, [2020, 2021]), str(path))

    store = load_store(path)
    assert store.years == (2020, 2021)
    assert np.allclose(store.get_year_samples(2020), values[:, :, 0].reshape(-1))


def test_fractional_years_are_not_truncated() -> None:
    store = PosteriorStore({2000: [0.2], 2001: [0.3], 2003: [0.4]})
    with pytest.raises(MissingYearError) as excinfo:
        store.get_year_samples(2000.9)
    assert excinfo.value.year == 2000.9
    with pytest.raises(MissingYearError):
        store.rhat(2000.9)
    assert 2000.9 not in store
    assert "2000" not in store
    # Integral floats and numpy integers still name a modeled year.
    assert 2000.0 in store
    assert store.get_year_samples(np.int64(2001))[0] == pytest.approx(0.3)
