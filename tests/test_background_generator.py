import numpy as np

from data_processing.background_generator import BackgroundGenerator


def test_points_fall_on_valid_cells(make_raster):
    values = np.ones((10, 12))
    values[:, :6] = np.nan
    mask = make_raster(values)

    points = BackgroundGenerator(mask, np.random.default_rng(3)).generate_background_points(40)

    assert len(points) == 40
    assert not points[["row", "col"]].duplicated().any()
    assert (points["col"] >= 6).all()
    assert np.isfinite(values[points["row"], points["col"]]).all()
    assert (points["lon"] > -87.0).all()


def test_request_larger_than_mask_returns_every_valid_cell(make_raster):
    values = np.full((4, 4), np.nan)
    values[1, 1] = values[2, 3] = values[0, 0] = 1.0

    points = BackgroundGenerator(make_raster(values), np.random.default_rng(0)).generate_background_points(100)

    assert len(points) == 3


def test_stack_mask_requires_every_band(make_raster):
    values = np.ones((2, 3, 3))
    values[0, 0, 0] = np.nan
    values[1, 2, 2] = np.nan

    points = BackgroundGenerator(make_raster(values), np.random.default_rng(0)).generate_background_points(50)

    assert len(points) == 7


def test_empty_mask(make_raster):
    points = BackgroundGenerator(make_raster(np.full((3, 3), np.nan)), np.random.default_rng(0)) \
        .generate_background_points(5)

    assert points.empty


def test_same_seed_same_points(make_raster):
    mask = make_raster(np.ones((20, 20)))

    a = BackgroundGenerator(mask, np.random.default_rng(11)).generate_background_points(30)
    b = BackgroundGenerator(mask, np.random.default_rng(11)).generate_background_points(30)

    assert a.equals(b)
