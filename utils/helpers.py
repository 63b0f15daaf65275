"""Helper functions for the species distribution projection pipeline."""

from dataclasses import dataclass

import geopandas as gpd

from utils.exceptions import NoData


@dataclass(frozen=True)
class StudyArea:
    """Axis-aligned rectangle in longitude/latitude (EPSG:4326)."""

    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float

    def as_extent(self):
        """Return the extent as [min_lon, max_lon, min_lat, max_lat]."""
        return [self.min_lon, self.max_lon, self.min_lat, self.max_lat]

    def as_bbox(self):
        """Return the extent as (min_lon, min_lat, max_lon, max_lat) for raster clipping."""
        return (self.min_lon, self.min_lat, self.max_lon, self.max_lat)


def create_study_area(points_df, offset_degree=5.0, lat_col='decimalLatitude', lon_col='decimalLongitude'):
    """
    Create a study area around a set of points padded by an offset.

    Args:
        points_df: DataFrame containing latitude and longitude columns
        offset_degree: Padding in degrees added on every side of the point extent

    Returns:
        StudyArea covering all points with a margin of exactly offset_degree
    """
    if offset_degree < 0:
        raise ValueError(f"offset_degree must be non-negative, got {offset_degree}")

    if points_df is None or len(points_df) == 0:
        raise NoData("Cannot delimit a study area without occurrence points")

    return StudyArea(
        min_lon=float(points_df[lon_col].min()) - offset_degree,
        max_lon=float(points_df[lon_col].max()) + offset_degree,
        min_lat=float(points_df[lat_col].min()) - offset_degree,
        max_lat=float(points_df[lat_col].max()) + offset_degree,
    )


def points_to_gdf(df, lat_col='decimalLatitude', lon_col='decimalLongitude'):
    """
    Convert a DataFrame with latitude and longitude columns to a GeoDataFrame.

    The original coordinate columns are kept next to the geometry.

    Args:
        df: DataFrame with latitude and longitude columns
        lat_col: Name of the latitude column
        lon_col: Name of the longitude column

    Returns:
        GeoDataFrame with Point geometry in EPSG:4326
    """
    geometry = gpd.points_from_xy(df[lon_col], df[lat_col])
    return gpd.GeoDataFrame(df.copy(), geometry=geometry, crs="EPSG:4326")
