import numpy as np
import pandas as pd
import pytest
import rioxarray  # noqa: F401
import xarray as xr


def make_grid(values, west=-90.0, north=15.0, res=0.5):
    """Wrap a (y, x) or (band, y, x) array in a north-up EPSG:4326 DataArray."""
    values = np.asarray(values, dtype=float)
    n_rows, n_cols = values.shape[-2:]
    x = west + res * (np.arange(n_cols) + 0.5)
    y = north - res * (np.arange(n_rows) + 0.5)
    if values.ndim == 2:
        da = xr.DataArray(values, coords={"y": y, "x": x}, dims=("y", "x"))
    else:
        names = [f"bio_{i}" for i in range(1, values.shape[0] + 1)]
        da = xr.DataArray(values, coords={"band": names, "y": y, "x": x}, dims=("band", "y", "x"))
    return da.rio.write_crs("EPSG:4326")


def climate_values(n_bands=19, n_rows=20, n_cols=24, seed=0):
    """Smooth gradients across the grid plus a little noise, one per band."""
    rng = np.random.default_rng(seed)
    rows, cols = np.meshgrid(np.arange(n_rows), np.arange(n_cols), indexing="ij")
    bands = []
    for k in range(n_bands):
        gradient = (k % 3 + 1) * cols / n_cols - (k % 2) * rows / n_rows
        bands.append(10 * gradient + rng.normal(0, 0.1, size=(n_rows, n_cols)))
    return np.stack(bands)


@pytest.fixture
def make_raster():
    return make_grid


@pytest.fixture
def climate_stack():
    return make_grid(climate_values())


@pytest.fixture
def occurrence_frame():
    return pd.DataFrame({
        "decimalLongitude": [-84.0, -83.5, -84.2],
        "decimalLatitude": [10.0, 9.8, 10.3],
        "scientificName": ["Pharomachrus mocinno"] * 3,
        "dateIdentified": ["2019-03-02", None, "2021-07-15"],
        "occurrenceID": ["https://example.org/obs/1", "URN:catalog:2", None],
        "gbifID": [101, 102, 103],
    })
