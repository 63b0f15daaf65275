import numpy as np
import pandas as pd
import pytest

from modeling.evaluation import evaluate_suitability, roc_from_scores
from utils.exceptions import EmptySample


def test_identical_distributions_give_auc_near_half():
    rng = np.random.default_rng(42)

    result = roc_from_scores(rng.uniform(size=5000), rng.uniform(size=5000))

    assert result.auc == pytest.approx(0.5, abs=0.03)


def test_perfect_separation():
    result = roc_from_scores([0.8, 0.9, 0.95], [0.1, 0.2, 0.3, 0.4])

    assert result.auc == pytest.approx(1.0)
    assert 0.4 < result.best_threshold <= 0.8
    assert result.n_presence == 3
    assert result.n_background == 4


def test_auc_bounded_and_curve_monotonic():
    rng = np.random.default_rng(0)

    result = roc_from_scores(rng.beta(2, 5, 300), rng.beta(5, 2, 300))

    assert 0.0 <= result.auc <= 1.0
    assert result.auc < 0.5
    assert np.all(np.diff(result.fpr) >= 0)
    assert np.all(np.diff(result.tpr) >= 0)
    assert result.fpr[0] == 0 and result.tpr[-1] == 1


def test_missing_scores_are_dropped():
    result = roc_from_scores([0.9, np.nan, 0.7], [0.1, np.nan])

    assert result.n_presence == 2
    assert result.n_background == 1


@pytest.mark.parametrize("presence,background", [([], [0.1, 0.2]), ([0.5], []), ([np.nan], [0.2])])
def test_empty_sample(presence, background):
    with pytest.raises(EmptySample):
        roc_from_scores(presence, background)


def test_evaluate_suitability_on_gradient(make_raster):
    cols = np.tile(np.linspace(0, 1, 20), (10, 1))
    suitability = make_raster(cols)
    suitability.values[0, :3] = np.nan
    x = suitability["x"].values
    y = suitability["y"].values
    test_points = pd.DataFrame({"lon": x[-4:], "lat": y[2:6]})

    result = evaluate_suitability(suitability, test_points, suitability, np.random.default_rng(1), n_background=100)

    assert result.n_presence == 4
    assert result.n_background == 100
    assert result.auc > 0.8
    assert set(result.to_dict()) == {"auc", "n_presence", "n_background", "best_threshold"}


def test_evaluate_points_outside_raster(make_raster):
    suitability = make_raster(np.full((5, 5), 0.5))
    outside = pd.DataFrame({"lon": [10.0, 20.0], "lat": [50.0, 60.0]})

    with pytest.raises(EmptySample):
        evaluate_suitability(suitability, outside, suitability, np.random.default_rng(0), n_background=10)
