"""ROC evaluation of a suitability raster against presence and background points."""

import logging
from dataclasses import dataclass

import numpy as np
from sklearn.metrics import auc, roc_curve

from data_processing.background_generator import BackgroundGenerator
from data_processing.bioclim_extractor import extract_values_at_points
from utils.exceptions import EmptySample

logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
    """ROC curve and summary statistics."""

    fpr: np.ndarray
    tpr: np.ndarray
    thresholds: np.ndarray
    auc: float
    n_presence: int
    n_background: int

    @property
    def best_threshold(self):
        """Threshold maximising sensitivity + specificity."""
        idx = int(np.argmax(self.tpr - self.fpr))
        return float(min(self.thresholds[idx], 1.0))

    def to_dict(self):
        return {
            "auc": self.auc,
            "n_presence": self.n_presence,
            "n_background": self.n_background,
            "best_threshold": self.best_threshold
        }


def roc_from_scores(presence_scores, background_scores):
    """
    Build the ROC curve from presence and background scores.

    Args:
        presence_scores: Predicted values at presence points
        background_scores: Predicted values at background points

    Returns:
        EvaluationResult
    """
    presence_scores = np.asarray(presence_scores, dtype=float)
    background_scores = np.asarray(background_scores, dtype=float)
    presence_scores = presence_scores[np.isfinite(presence_scores)]
    background_scores = background_scores[np.isfinite(background_scores)]

    if len(presence_scores) == 0 or len(background_scores) == 0:
        raise EmptySample(
            f"Cannot evaluate with {len(presence_scores)} presence and "
            f"{len(background_scores)} background scores"
        )

    y_true = np.concatenate([np.ones(len(presence_scores)), np.zeros(len(background_scores))])
    y_score = np.concatenate([presence_scores, background_scores])
    fpr, tpr, thresholds = roc_curve(y_true, y_score)

    return EvaluationResult(
        fpr=fpr,
        tpr=tpr,
        thresholds=thresholds,
        auc=float(auc(fpr, tpr)),
        n_presence=len(presence_scores),
        n_background=len(background_scores)
    )


def evaluate_suitability(suitability, test_coords, mask, rng, n_background=1000):
    """
    Evaluate a suitability raster with held-out presences and random background cells.

    Args:
        suitability: xarray.DataArray (y, x) of predicted suitability
        test_coords: DataFrame with lon and lat of evaluation presences
        mask: Raster whose non-missing cells define where background is drawn
        rng: numpy.random.Generator for the background draw
        n_background: Number of background points

    Returns:
        EvaluationResult
    """
    presence_scores = extract_values_at_points(suitability, test_coords["lon"], test_coords["lat"])
    n_missing = int(np.isnan(presence_scores).sum())
    if n_missing:
        logger.warning(f"{n_missing} evaluation points fall on cells without a prediction")

    background = BackgroundGenerator(mask, rng).generate_background_points(n_background)
    background_scores = extract_values_at_points(suitability, background["lon"], background["lat"])

    result = roc_from_scores(presence_scores, background_scores)
    logger.info(
        f"AUC = {result.auc:.3f} ({result.n_presence} presence, {result.n_background} background)"
    )
    return result
