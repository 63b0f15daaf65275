"""HTML report with the ROC chart and the interactive suitability maps."""

import base64
import html
import io
import logging
import os

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_roc(result, title="ROC curve"):
    """
    Plot the ROC curve of an EvaluationResult with its AUC.

    Returns:
        matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=(5, 5))
    ax.plot(result.fpr, result.tpr, color="#b61458", lw=2, label=f"AUC = {result.auc:.3f}")
    ax.plot([0, 1], [0, 1], color="gray", lw=1, linestyle="--", label="Random")
    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1)
    ax.set_xlabel("False positive rate")
    ax.set_ylabel("True positive rate")
    ax.set_title(title)
    ax.legend(loc="lower right")
    return fig


def figure_to_base64(fig):
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=150, bbox_inches="tight")
    plt.close(fig)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def map_iframe(fmap, height=600):
    """Embed a folium map as a self-contained iframe."""
    document = html.escape(fmap.get_root().render())
    return (
        f'<iframe srcdoc="{document}" style="width:100%; height:{height}px; border:none;" '
        f'loading="lazy"></iframe>'
    )


def parameter_table(params):
    rows = "\n".join(
        f"<tr><td>{html.escape(str(key))}</td><td>{html.escape(str(value))}</td></tr>"
        for key, value in params.items()
    )
    return f"<table>\n{rows}\n</table>"


PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; max-width: 1100px; margin: 2em auto; line-height: 1.5; }}
nav {{ background: #f4f4f4; padding: 0.5em 1.5em; }}
table {{ border-collapse: collapse; }}
td {{ border: 1px solid #ddd; padding: 0.2em 0.8em; }}
</style>
</head>
<body>
<h1>{title}</h1>
<nav>
<h2>Contents</h2>
<ol>
{toc}
</ol>
</nav>
{body}
</body>
</html>
"""


def render_report(sections, title):
    """
    Assemble sections into one HTML page with a table of contents.

    Args:
        sections: List of (anchor, heading, html_content) tuples in display order
        title: Page title

    Returns:
        HTML string
    """
    toc = "\n".join(f'<li><a href="#{anchor}">{html.escape(heading)}</a></li>' for anchor, heading, _ in sections)
    body = "\n".join(
        f'<section id="{anchor}">\n<h2>{html.escape(heading)}</h2>\n{content}\n</section>'
        for anchor, heading, content in sections
    )
    return PAGE_TEMPLATE.format(title=html.escape(title), toc=toc, body=body)


def build_report(context, output_file):
    """
    Write the projection report.

    Args:
        context: Dictionary with species, parameters, counts, study_area,
            evaluation, thresholds, continuous_map and binary_map
        output_file: Path of the HTML file

    Returns:
        Path of the written file
    """
    species = context["species"]
    evaluation = context["evaluation"]
    roc_png = figure_to_base64(plot_roc(evaluation, title=f"ROC curve, {species}"))
    extent = ", ".join(f"{v:.2f}" for v in context["study_area"].as_extent())

    sections = [
        ("parameters", "Parameters", parameter_table(context["parameters"])),
        ("occurrences", "Occurrence records", (
            f"<p>{context['n_records']} georeferenced GBIF records of <i>{html.escape(species)}</i> "
            f"without geospatial issues were retrieved, giving {context['n_unique']} unique coordinates.</p>"
        )),
        ("study-area", "Study area", (
            f"<p>The occurrence extent padded by {context['parameters'].get('offset_degree')} degrees: "
            f"[{extent}] (min lon, max lon, min lat, max lat).</p>"
        )),
        ("model", "Model", (
            f"<p>A Maxent model was fitted on {context['n_train']} training presences and "
            f"{context['n_fit_background']} background cells drawn from the current bioclimatic layers. "
            f"{context['n_test']} presences were held out for evaluation.</p>"
        )),
        ("evaluation", "Evaluation", (
            f"<p>Held-out presences against {evaluation.n_background} random background points: "
            f"AUC = {evaluation.auc:.3f}; the threshold maximising sensitivity plus specificity is "
            f"{evaluation.best_threshold:.3f}.</p>\n"
            f'<img src="data:image/png;base64,{roc_png}" alt="ROC curve">'
        )),
        ("continuous-map", "Current and future suitability", (
            "<p>Current and future suitability and their difference (future minus current). "
            "Each layer has its own colour scale; the difference scale is centred on zero.</p>\n"
            + map_iframe(context["continuous_map"])
        )),
        ("binary-map", "Suitable area", (
            f"<p>Cells with suitability of at least {context['threshold']} are classified as suitable. "
            f"The difference layer is thresholded at {context['difference_threshold']}.</p>\n"
            + map_iframe(context["binary_map"])
        )),
    ]

    document = render_report(sections, title=f"Projected distribution of {species}")
    output_dir = os.path.dirname(output_file)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(document)
    logger.info(f"Report saved to {output_file}")
    return output_file
