import os
import zipfile

import numpy as np
import pytest
import requests

from data_processing.bioclim_extractor import (
    BioclimExtractor,
    crop_to_study_area,
    extract_values_at_points,
    match_grid,
)
from utils.exceptions import AcquisitionFailed, NoData
from utils.helpers import StudyArea

CLIMATE_PARAMS = {
    "variable": "bio",
    "resolution": "10m",
    "scenario": "ssp585",
    "gcm": "EC-Earth3-Veg",
    "period": "2061-2080",
    "timeout": 5
}

STUDY_AREA = StudyArea(min_lon=-88.0, max_lon=-80.0, min_lat=6.0, max_lat=12.0)


class FakeResponse:
    def __init__(self, content=b"", status=200):
        self.content = content
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Error")

    def iter_content(self, chunk_size=1):
        yield self.content


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.urls = []

    def get(self, url, **kwargs):
        self.urls.append(url)
        return self.response


class NoNetworkSession:
    def get(self, url, **kwargs):
        raise AssertionError(f"unexpected download of {url}")


def write_current_archive(climate_dir, make_raster, values):
    os.makedirs(climate_dir, exist_ok=True)
    archive = os.path.join(climate_dir, "wc2.1_10m_bio.zip")
    with zipfile.ZipFile(archive, "w") as zf:
        for i in range(values.shape[0]):
            name = f"wc2.1_10m_bio_{i + 1}.tif"
            path = os.path.join(climate_dir, name)
            make_raster(values[i]).rio.to_raster(path)
            zf.write(path, arcname=name)
            os.remove(path)
    return archive


def write_future_tif(climate_dir, make_raster, values):
    path = os.path.join(climate_dir, "wc2.1_10m_bioc_EC-Earth3-Veg_ssp585_2061-2080.tif")
    stack = make_raster(values).assign_coords(band=np.arange(1, values.shape[0] + 1))
    stack.rio.to_raster(path)
    return path


def test_download_writes_file(tmp_path):
    session = FakeSession(FakeResponse(b"raster bytes"))
    extractor = BioclimExtractor(str(tmp_path), CLIMATE_PARAMS, session=session)

    path = extractor.download("https://example.org/layer.tif", str(tmp_path / "sub" / "layer.tif"))

    assert open(path, "rb").read() == b"raster bytes"
    assert session.urls == ["https://example.org/layer.tif"]


def test_download_uses_cache(tmp_path):
    cached = tmp_path / "layer.tif"
    cached.write_bytes(b"cached")
    extractor = BioclimExtractor(str(tmp_path), CLIMATE_PARAMS, session=NoNetworkSession())

    assert extractor.download("https://example.org/layer.tif", str(cached)) == str(cached)


def test_download_failure_is_fatal(tmp_path):
    extractor = BioclimExtractor(str(tmp_path), CLIMATE_PARAMS, session=FakeSession(FakeResponse(status=404)))

    with pytest.raises(AcquisitionFailed):
        extractor.download("https://example.org/missing.tif", str(tmp_path / "missing.tif"))
    assert os.listdir(tmp_path) == []


def test_current_stack_is_named_and_cropped(tmp_path, make_raster):
    values = np.stack([np.full((20, 24), float(i)) for i in range(1, 20)])
    write_current_archive(str(tmp_path), make_raster, values)
    extractor = BioclimExtractor(str(tmp_path), CLIMATE_PARAMS, session=NoNetworkSession())

    stack = extractor.load_current_stack(STUDY_AREA)

    assert [str(b) for b in stack["band"].values] == [f"bio_{i}" for i in range(1, 20)]
    assert stack.rio.crs.to_epsg() == 4326
    minx, miny, maxx, maxy = stack.rio.bounds()
    assert minx >= -88.5 and maxx <= -79.5 and miny >= 5.5 and maxy <= 12.5
    np.testing.assert_allclose(stack.sel(band="bio_7").values, 7.0)


def test_future_stack_matches_current_grid(tmp_path, make_raster):
    values = np.stack([np.full((20, 24), float(i)) for i in range(1, 20)])
    write_current_archive(str(tmp_path), make_raster, values)
    write_future_tif(str(tmp_path), make_raster, values + 1)
    extractor = BioclimExtractor(str(tmp_path), CLIMATE_PARAMS, session=NoNetworkSession())

    current = extractor.load_current_stack(STUDY_AREA)
    future = extractor.load_future_stack(STUDY_AREA, reference=current)

    assert future.shape == current.shape
    np.testing.assert_array_equal(future["x"].values, current["x"].values)
    np.testing.assert_array_equal(future["y"].values, current["y"].values)
    names = [str(b) for b in future["band"].values]
    assert names[0] == "wc2.1_10m_bioc_EC-Earth3-Veg_ssp585_2061-2080_1"
    np.testing.assert_allclose(future.isel(band=0).values, 2.0)


def test_crop_outside_raster_is_no_data(make_raster):
    with pytest.raises(NoData):
        crop_to_study_area(make_raster(np.ones((5, 5))), StudyArea(100.0, 110.0, 40.0, 50.0))


def test_match_grid_reprojects_offset_grid(make_raster):
    reference = make_raster(np.ones((2, 6, 6)))
    offset = make_raster(np.ones((2, 8, 8)), west=-90.5, north=15.5)

    matched = match_grid(offset, reference)

    assert matched.shape == reference.shape
    np.testing.assert_allclose(matched["x"].values, reference["x"].values)


def test_extract_values_at_points(make_raster):
    raster = make_raster(np.arange(12, dtype=float).reshape(3, 4))
    x = raster["x"].values
    y = raster["y"].values

    values = extract_values_at_points(raster, [x[1], x[3] + 0.1, 50.0], [y[0], y[2], 0.0])

    assert values[0] == 1.0
    assert values[1] == 11.0
    assert np.isnan(values[2])


def test_extract_values_from_stack(make_raster):
    raster = make_raster(np.stack([np.zeros((3, 3)), np.ones((3, 3))]))

    values = extract_values_at_points(raster, [raster["x"].values[0]], [raster["y"].values[0]])

    assert values.shape == (1, 2)
    np.testing.assert_array_equal(values[0], [0.0, 1.0])
