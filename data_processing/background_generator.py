"""Module for generating background (pseudo-absence) points."""

import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class BackgroundGenerator:
    """Class for drawing random background cells from a raster mask."""

    def __init__(self, mask, rng):
        """
        Initialize the background generator.

        Args:
            mask: xarray.DataArray (y, x) or (band, y, x); cells missing in any band are excluded
            rng: numpy.random.Generator used for every draw
        """
        self.mask = mask
        self.rng = rng

    def valid_cells(self):
        """
        Return the row/column indices of cells with data.

        Returns:
            Tuple of integer arrays (rows, cols)
        """
        values = np.asarray(self.mask.values, dtype=float)
        if values.ndim == 3:
            valid = np.isfinite(values).all(axis=0)
        else:
            valid = np.isfinite(values)
        return np.nonzero(valid)

    def generate_background_points(self, n_points):
        """
        Draw cell centres at random, without replacement, from the valid cells.

        If the mask has fewer valid cells than requested, every valid cell is returned.

        Args:
            n_points: Number of background points requested

        Returns:
            DataFrame with lon, lat columns and the row/col cell indices
        """
        rows, cols = self.valid_cells()
        n_valid = len(rows)
        if n_valid == 0:
            logger.warning("Mask has no valid cells; no background points generated")
            return pd.DataFrame(columns=["lon", "lat", "row", "col"])

        if n_points > n_valid:
            logger.warning(
                f"Could only generate {n_valid}/{n_points} background points "
                f"(mask has {n_valid} valid cells)"
            )
            n_points = n_valid

        picked = self.rng.choice(n_valid, size=n_points, replace=False)
        rows, cols = rows[picked], cols[picked]

        background_df = pd.DataFrame({
            "lon": self.mask["x"].values[cols],
            "lat": self.mask["y"].values[rows],
            "row": rows,
            "col": cols
        })
        logger.info(f"Generated {len(background_df)} background points")
        return background_df
