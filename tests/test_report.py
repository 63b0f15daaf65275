import folium
import numpy as np

from modeling.evaluation import roc_from_scores
from utils.helpers import StudyArea
from visualization.report import build_report, render_report


def test_render_report_builds_table_of_contents():
    page = render_report([("one", "First", "<p>a</p>"), ("two", "Second & last", "<p>b</p>")], title="Title")

    assert '<a href="#one">First</a>' in page
    assert '<a href="#two">Second &amp; last</a>' in page
    assert page.index('id="one"') < page.index('id="two"')


def test_build_report_writes_html(tmp_path):
    rng = np.random.default_rng(0)
    evaluation = roc_from_scores(rng.uniform(0.4, 1, 50), rng.uniform(0, 0.6, 200))
    context = {
        "species": "Pharomachrus mocinno",
        "parameters": {"species": "Pharomachrus mocinno", "offset_degree": 5.0},
        "n_records": 60,
        "n_unique": 50,
        "n_train": 40,
        "n_test": 10,
        "n_fit_background": 1000,
        "study_area": StudyArea(-89.2, -78.5, 4.8, 15.3),
        "evaluation": evaluation,
        "threshold": 0.5,
        "difference_threshold": 0.5,
        "continuous_map": folium.Map(),
        "binary_map": folium.Map(),
    }

    path = build_report(context, str(tmp_path / "out" / "report.html"))

    page = open(path, encoding="utf-8").read()
    assert "Contents" in page
    assert "data:image/png;base64," in page
    assert f"AUC = {evaluation.auc:.3f}" in page
    assert page.count("<iframe") == 2
    assert "-89.20, -78.50, 4.80, 15.30" in page
