"""Change in suitability between the current and future projections."""

import logging

import numpy as np
import rioxarray  # noqa: F401
import xarray as xr

logger = logging.getLogger(__name__)


def compute_difference(current, future):
    """
    Subtract current from future suitability cell by cell.

    A cell missing in either input is missing in the result. The two rasters
    must share the same grid.
    """
    current, future = xr.align(current, future, join="exact")
    difference = future - current
    difference.name = "suitability_difference"
    if current.rio.crs is not None:
        difference = difference.rio.write_crs(current.rio.crs)
    logger.info(
        f"Suitability difference range: {float(difference.min()):.3f} to {float(difference.max()):.3f}"
    )
    return difference


def binarize(raster, threshold):
    """
    Classify cells as 1 where value >= threshold, else 0.

    Missing cells stay missing.
    """
    classified = xr.where(raster >= threshold, 1.0, 0.0)
    classified = classified.where(raster.notnull(), np.nan)
    classified.name = f"{raster.name or 'raster'}_binary"
    if raster.rio.crs is not None:
        classified = classified.rio.write_crs(raster.rio.crs)
    return classified


def count_suitable(binary):
    """Number of cells classified as 1."""
    return int((binary == 1).sum())
