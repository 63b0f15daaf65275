"""Module for downloading bioclimatic layers and cropping them to the study area."""

import logging
import os
import zipfile

import numpy as np
import pandas as pd
import requests
import rioxarray
import xarray as xr
from rioxarray.exceptions import NoDataInBounds
from tqdm import tqdm

from config import N_BIOCLIM_VARS, WORLDCLIM_BASE_URL, WORLDCLIM_FUTURE_URL
from utils.exceptions import AcquisitionFailed, MissingFile, NoData

logger = logging.getLogger(__name__)


class BioclimExtractor:
    """Class for building current and future bioclimatic raster stacks."""

    def __init__(self, climate_dir, climate_params, session=None,
                 base_url=WORLDCLIM_BASE_URL, future_url=WORLDCLIM_FUTURE_URL):
        """
        Initialize the bioclimatic layer extractor.

        Args:
            climate_dir: Directory used to cache downloaded files
            climate_params: Dictionary with variable, resolution, scenario, gcm, period, timeout
            session: requests.Session used for downloads
            base_url: URL template of the current climate archive
            future_url: URL template of the future climate GeoTIFF
        """
        self.climate_dir = climate_dir
        self.params = climate_params
        self.session = session or requests.Session()
        self.base_url = base_url
        self.future_url = future_url

    def download(self, url, cache_file):
        """
        Download url to cache_file unless it is already cached.

        Returns:
            Path of the cached file
        """
        if os.path.exists(cache_file):
            logger.info(f"Loading {os.path.basename(cache_file)} from cache")
            return cache_file

        os.makedirs(os.path.dirname(cache_file) or ".", exist_ok=True)
        logger.info(f"Downloading {url}")
        partial_file = cache_file + ".part"
        try:
            with self.session.get(url, stream=True, timeout=self.params.get("timeout", 600)) as response:
                response.raise_for_status()
                with open(partial_file, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=1 << 20):
                        f.write(chunk)
        except requests.RequestException as e:
            logger.error(f"Error downloading {url}: {str(e)}")
            if os.path.exists(partial_file):
                os.remove(partial_file)
            raise AcquisitionFailed(f"Download failed: {url}") from e

        os.replace(partial_file, cache_file)
        return cache_file

    def current_band_names(self):
        return [f"{self.params['variable']}_{i}" for i in range(1, N_BIOCLIM_VARS + 1)]

    def load_current_stack(self, study_area):
        """
        Download the current climate layers and crop them to the study area.

        Args:
            study_area: StudyArea to crop to

        Returns:
            xarray.DataArray with dims (band, y, x) and named bands
        """
        res = self.params["resolution"]
        var = self.params["variable"]
        url = self.base_url.format(res=res, var=var)
        archive = self.download(url, os.path.join(self.climate_dir, os.path.basename(url)))

        extract_dir = os.path.join(self.climate_dir, f"wc2.1_{res}_{var}")
        if not os.path.isdir(extract_dir):
            try:
                with zipfile.ZipFile(archive, 'r') as zip_ref:
                    zip_ref.extractall(extract_dir)
            except zipfile.BadZipFile as e:
                logger.error(f"Corrupt climate archive {archive}: {str(e)}")
                os.remove(archive)
                raise AcquisitionFailed(f"Corrupt climate archive: {archive}") from e

        layers = []
        names = self.current_band_names()
        for i, name in enumerate(tqdm(names, desc="Loading BIO layers", dynamic_ncols=True), start=1):
            layer_file = os.path.join(extract_dir, f"wc2.1_{res}_{var}_{i}.tif")
            if not os.path.exists(layer_file):
                raise MissingFile(f"Climate layer not found: {layer_file}")
            layer = rioxarray.open_rasterio(layer_file, masked=True).squeeze("band", drop=True)
            layers.append(crop_to_study_area(layer, study_area))

        stack = xr.concat(layers, dim=pd.Index(names, name="band"))
        stack = stack.rio.write_crs(layers[0].rio.crs or "EPSG:4326")
        stack.name = "current_climate"
        logger.info(f"Current climate stack: {len(names)} bands, grid {stack.sizes['y']}x{stack.sizes['x']}")
        return stack

    def load_future_stack(self, study_area, reference=None):
        """
        Download the future climate layers and crop them to the study area.

        Band names are taken from the file and generally differ from the
        current stack's names; see modeling.maxent_model.align_band_names.

        Args:
            study_area: StudyArea to crop to
            reference: Optional current stack whose grid the result must share

        Returns:
            xarray.DataArray with dims (band, y, x)
        """
        url = self.future_url.format(
            res=self.params["resolution"],
            var=self.params["variable"],
            gcm=self.params["gcm"],
            ssp=self.params["scenario"],
            period=self.params["period"]
        )
        cache_file = self.download(url, os.path.join(self.climate_dir, os.path.basename(url)))

        raw = rioxarray.open_rasterio(cache_file, masked=True)
        stem = os.path.splitext(os.path.basename(cache_file))[0]
        long_names = raw.attrs.get("long_name")
        if isinstance(long_names, (list, tuple)) and len(long_names) == raw.sizes["band"]:
            names = [str(n) for n in long_names]
        else:
            names = [f"{stem}_{int(b)}" for b in raw["band"].values]
        raw = raw.assign_coords(band=names)

        stack = crop_to_study_area(raw, study_area)
        if reference is not None:
            stack = match_grid(stack, reference)
        stack.name = "future_climate"
        logger.info(
            f"Future climate stack ({self.params['gcm']}, {self.params['scenario']}, "
            f"{self.params['period']}): {stack.sizes['band']} bands"
        )
        return stack


def extract_values_at_points(raster, lons, lats):
    """
    Extract raster values at point locations from the nearest cell.

    Points outside the raster extent get NaN.

    Args:
        raster: xarray.DataArray with dims (y, x) or (band, y, x)
        lons, lats: Sequences of point coordinates

    Returns:
        numpy array of shape (n_points,) or (n_points, n_bands)
    """
    lons = np.asarray(lons, dtype=float)
    lats = np.asarray(lats, dtype=float)
    if len(lons) == 0:
        shape = (0, raster.sizes["band"]) if "band" in raster.dims else (0,)
        return np.empty(shape)

    minx, miny, maxx, maxy = raster.rio.bounds()
    inside = (lons >= minx) & (lons <= maxx) & (lats >= miny) & (lats <= maxy)

    sampled = raster.sel(
        x=xr.DataArray(lons, dims="points"),
        y=xr.DataArray(lats, dims="points"),
        method="nearest"
    )
    if "band" in sampled.dims:
        values = sampled.transpose("points", "band").values.astype(float)
        values[~inside, :] = np.nan
    else:
        values = sampled.values.astype(float)
        values[~inside] = np.nan
    return values


def crop_to_study_area(data_array, study_area):
    """Crop a raster to the study area's bounding box."""
    min_lon, min_lat, max_lon, max_lat = study_area.as_bbox()
    try:
        return data_array.rio.clip_box(minx=min_lon, miny=min_lat, maxx=max_lon, maxy=max_lat)
    except NoDataInBounds as e:
        raise NoData(f"Raster has no cells inside study area {study_area.as_extent()}") from e


def match_grid(stack, reference):
    """
    Put stack on the same grid as reference.

    Returns stack unchanged when the grids already agree.
    """
    same_shape = stack.sizes["y"] == reference.sizes["y"] and stack.sizes["x"] == reference.sizes["x"]
    if same_shape and np.allclose(stack["x"].values, reference["x"].values) \
            and np.allclose(stack["y"].values, reference["y"].values):
        return stack.assign_coords(x=reference["x"].values, y=reference["y"].values)

    logger.warning("Future climate grid differs from the current grid, reprojecting")
    return stack.rio.reproject_match(reference)
