"""Presence-only Maxent model fitted on a bioclimatic raster stack."""

import logging

import elapid as ela
import numpy as np
import pandas as pd
import rioxarray  # noqa: F401
import xarray as xr

from data_processing.background_generator import BackgroundGenerator
from data_processing.bioclim_extractor import extract_values_at_points
from utils.exceptions import BandMismatch, InsufficientData

logger = logging.getLogger(__name__)


def band_names(stack):
    return [str(name) for name in stack["band"].values]


def align_band_names(stack, reference_names):
    """
    Rename the bands of stack, by position, to reference_names.

    Used to give the future stack the names of the stack the model was fitted on.
    """
    names = band_names(stack)
    if len(names) != len(reference_names):
        raise BandMismatch(
            f"Cannot align {len(names)} bands to {len(reference_names)} reference names"
        )
    renamed = stack.assign_coords(band=list(reference_names))
    logger.info(f"Renamed bands {names[0]}..{names[-1]} to {reference_names[0]}..{reference_names[-1]}")
    return renamed


def select_bands(stack, feature_names):
    """
    Return stack with its bands reordered to feature_names.

    The band sets must be identical; order in the input does not matter.
    """
    names = band_names(stack)
    missing = sorted(set(feature_names) - set(names))
    extra = sorted(set(names) - set(feature_names))
    if missing or extra or len(names) != len(feature_names):
        raise BandMismatch(f"Stack bands do not match model features (missing {missing}, unexpected {extra})")
    return stack.sel(band=list(feature_names))


class MaxentSuitabilityModel:
    """
    Maxent habitat suitability model.

    Presence cells come from occurrence coordinates, background cells are drawn
    at random from the climate stack. The feature order is fixed by the stack
    the model is fitted on.
    """

    def __init__(self, feature_types="lqh", beta_multiplier=1.0, transform="cloglog"):
        self.feature_types = feature_types
        self.beta_multiplier = beta_multiplier
        self.transform = transform
        self.estimator = None
        self.feature_names = None
        self.n_presence = 0
        self.n_background = 0

    @property
    def is_fitted(self):
        return self.estimator is not None

    def annotate(self, stack, presence_coords, background_coords):
        """
        Build the feature table and class labels for fitting.

        Returns:
            Tuple (x, y): DataFrame of band values and a Series of 1/0 labels
        """
        names = band_names(stack)
        presence_values = extract_values_at_points(stack, presence_coords["lon"], presence_coords["lat"])
        background_values = extract_values_at_points(stack, background_coords["lon"], background_coords["lat"])

        presence = pd.DataFrame(presence_values, columns=names)
        valid = presence.notna().all(axis=1)
        if not valid.all():
            logger.warning(f"Dropping {int((~valid).sum())} presence points on cells without climate data")
        presence = presence[valid]

        background = pd.DataFrame(background_values, columns=names).dropna()

        x = pd.concat([presence, background], ignore_index=True)
        y = pd.Series([1] * len(presence) + [0] * len(background), name="class")
        return x, y

    def fit(self, stack, presence_coords, rng, n_background=10000):
        """
        Fit the model on a climate stack and presence coordinates.

        Args:
            stack: xarray.DataArray (band, y, x) of current climate
            presence_coords: DataFrame with lon and lat columns
            rng: numpy.random.Generator for the background draw and the solver seed
            n_background: Number of background cells

        Returns:
            self
        """
        background = BackgroundGenerator(stack, rng).generate_background_points(n_background)
        x, y = self.annotate(stack, presence_coords, background)

        self.n_presence = int(y.sum())
        self.n_background = int(len(y) - y.sum())
        if self.n_presence < 2 or self.n_background < 2:
            raise InsufficientData(
                f"Need at least 2 presence and 2 background samples, "
                f"got {self.n_presence} and {self.n_background}"
            )

        random_state = int(rng.integers(2**31 - 1))
        logger.info(f"Fitting Maxent on {self.n_presence} presence and {self.n_background} background samples")
        self.estimator = ela.MaxentModel(
            feature_types=self.feature_types,
            beta_multiplier=self.beta_multiplier,
            transform=self.transform,
            random_state=random_state
        )
        self.estimator.fit(x, y)
        self.feature_names = list(x.columns)
        return self

    def predict(self, stack):
        """
        Predict suitability for every cell of a climate stack.

        Cells missing in any band stay missing.

        Args:
            stack: xarray.DataArray (band, y, x) carrying the fit-time band names

        Returns:
            xarray.DataArray (y, x) on the grid of stack
        """
        if not self.is_fitted:
            raise RuntimeError("Model has not been fitted yet")

        aligned = select_bands(stack, self.feature_names).transpose("band", "y", "x")
        n_bands, n_rows, n_cols = aligned.shape
        table = pd.DataFrame(
            aligned.values.reshape(n_bands, n_rows * n_cols).T,
            columns=self.feature_names
        )
        valid = table.notna().all(axis=1).to_numpy()

        scores = np.full(n_rows * n_cols, np.nan, dtype=float)
        if valid.any():
            scores[valid] = np.asarray(self.estimator.predict(table[valid])).reshape(-1)

        suitability = xr.DataArray(
            scores.reshape(n_rows, n_cols),
            coords={"y": aligned["y"].values, "x": aligned["x"].values},
            dims=("y", "x"),
            name="suitability"
        )
        if aligned.rio.crs is not None:
            suitability = suitability.rio.write_crs(aligned.rio.crs)
        logger.info(f"Predicted suitability for {int(valid.sum())} cells")
        return suitability

    def save(self, path):
        """Save the fitted model to disk."""
        if not self.is_fitted:
            raise RuntimeError("Model has not been fitted yet")
        ela.save_object(self, path)

    @classmethod
    def load(cls, path):
        """Load a fitted model from disk."""
        return ela.load_object(path)
