"""Deduplication of occurrence coordinates and the training/evaluation split."""

import logging

import numpy as np
import pandas as pd

from utils.exceptions import InsufficientData

logger = logging.getLogger(__name__)


def unique_coordinates(points_df, lat_col='decimalLatitude', lon_col='decimalLongitude'):
    """
    Return the distinct (longitude, latitude) pairs in first-seen order.

    Args:
        points_df: DataFrame with coordinate columns

    Returns:
        DataFrame with columns lon and lat and a fresh RangeIndex
    """
    coords = pd.DataFrame({
        "lon": points_df[lon_col].to_numpy(dtype=float),
        "lat": points_df[lat_col].to_numpy(dtype=float)
    })
    return coords.drop_duplicates().reset_index(drop=True)


def train_test_split_coordinates(coords, train_proportion, rng, min_records=10):
    """
    Randomly partition coordinates into disjoint training and evaluation sets.

    The training set holds round(train_proportion * n) rows, rounding halves up.

    Args:
        coords: DataFrame of unique coordinates
        train_proportion: Share of rows used for training, in (0, 1)
        rng: numpy.random.Generator, seeded once by the caller
        min_records: Minimum number of rows accepted

    Returns:
        Tuple (train, test) of DataFrames indexed by their position in coords
    """
    if not 0 < train_proportion < 1:
        raise ValueError(f"train_proportion must be in (0, 1), got {train_proportion}")

    n = len(coords)
    if n < min_records:
        logger.error(f"Only {n} unique coordinates, at least {min_records} are required")
        raise InsufficientData(f"{n} unique coordinates is below the minimum of {min_records}")

    n_train = int(np.floor(train_proportion * n + 0.5))
    train_idx = np.sort(rng.choice(n, size=n_train, replace=False))
    test_mask = np.ones(n, dtype=bool)
    test_mask[train_idx] = False

    train = coords.iloc[train_idx]
    test = coords.iloc[np.flatnonzero(test_mask)]
    logger.info(f"Split {n} coordinates into {len(train)} training and {len(test)} evaluation points")
    return train, test
