"""Interactive folium maps of suitability, binary and difference rasters."""

import html
import logging

import folium
import numpy as np
import rioxarray  # noqa: F401
from branca.colormap import LinearColormap
from matplotlib import colormaps
from matplotlib.colors import to_hex

from data_processing.gbif_extractor import record_source_url

logger = logging.getLogger(__name__)


def color_domain(raster, symmetric=False):
    """
    Return (vmin, vmax) from the raster's own finite values.

    With symmetric=True the domain is centred on zero and spans the larger of |min| and |max|.
    """
    values = np.asarray(raster.values, dtype=float)
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return (-1.0, 1.0) if symmetric else (0.0, 1.0)

    vmin, vmax = float(finite.min()), float(finite.max())
    if symmetric:
        bound = max(abs(vmin), abs(vmax)) or 1.0
        return -bound, bound
    if vmin == vmax:
        return vmin - 0.5, vmax + 0.5
    return vmin, vmax


def raster_to_rgba(raster, cmap_name, vmin, vmax, opacity=0.7):
    """
    Render a (y, x) raster to an RGBA image, north up.

    Missing cells are fully transparent. The raster itself is not modified.

    Returns:
        uint8 array of shape (rows, cols, 4)
    """
    data = np.array(raster.values, dtype=float)
    y = raster["y"].values
    if len(y) > 1 and y[0] < y[-1]:
        data = data[::-1, :]

    norm = np.clip((data - vmin) / (vmax - vmin), 0, 1)
    rgba = colormaps[cmap_name](np.nan_to_num(norm))
    rgba[..., 3] = np.where(np.isnan(data), 0, opacity)
    return (rgba * 255).astype(np.uint8)


def raster_bounds(raster):
    """Return [[south, west], [north, east]] for folium."""
    minx, miny, maxx, maxy = raster.rio.bounds()
    return [[miny, minx], [maxy, maxx]]


def make_legend(cmap_name, vmin, vmax, caption, n_colors=9):
    cmap = colormaps[cmap_name]
    colors = [to_hex(cmap(i / (n_colors - 1))) for i in range(n_colors)]
    return LinearColormap(colors=colors, vmin=vmin, vmax=vmax, caption=caption)


def add_raster_layer(fmap, raster, name, cmap_name, opacity=0.7, symmetric=False, show=True):
    """
    Add a raster as a toggleable image overlay with its own legend.

    Returns:
        The (vmin, vmax) domain used for the colour scale
    """
    vmin, vmax = color_domain(raster, symmetric=symmetric)
    image = raster_to_rgba(raster, cmap_name, vmin, vmax, opacity=opacity)

    folium.raster_layers.ImageOverlay(
        image=image,
        bounds=raster_bounds(raster),
        name=name,
        opacity=1.0,
        interactive=False,
        overlay=True,
        show=show
    ).add_to(fmap)
    make_legend(cmap_name, vmin, vmax, caption=name).add_to(fmap)
    return vmin, vmax


def occurrence_popup(row):
    species = html.escape(str(row.get("scientificName") or ""))
    date = row.get("dateIdentified")
    date = html.escape(str(date)) if isinstance(date, str) and date else "unknown"
    url = record_source_url(row)
    link = f'<a href="{html.escape(url)}" target="_blank">Record source</a>' if url else "No source link"
    return f"<b><i>{species}</i></b><br>Identified: {date}<br>{link}"


def add_occurrence_markers(fmap, occurrences, name="Occurrences"):
    """Add occurrence points with popups as a toggleable layer."""
    group = folium.FeatureGroup(name=name, show=True)
    for _, row in occurrences.iterrows():
        folium.CircleMarker(
            location=[row["decimalLatitude"], row["decimalLongitude"]],
            radius=3,
            color="#b61458",
            fill=True,
            fill_opacity=0.8,
            popup=folium.Popup(occurrence_popup(row), max_width=300)
        ).add_to(group)
    group.add_to(fmap)
    return group


def base_map(map_params):
    fmap = folium.Map(tiles=map_params.get("tiles", "OpenStreetMap"))
    fmap.fit_bounds(map_params["bounds"])
    return fmap


def build_continuous_map(current, future, difference, occurrences, map_params):
    """
    Map of current and future suitability and their difference.

    Args:
        current, future, difference: (y, x) rasters
        occurrences: GeoDataFrame of occurrence records
        map_params: MAP_PARAMS dictionary

    Returns:
        folium.Map
    """
    fmap = base_map(map_params)
    opacity = map_params.get("opacity", 0.7)
    add_raster_layer(fmap, current, "Current suitability", map_params["continuous_cmap"], opacity)
    add_raster_layer(fmap, future, "Future suitability", map_params["continuous_cmap"], opacity, show=False)
    add_raster_layer(fmap, difference, "Suitability change (future - current)",
                     map_params["difference_cmap"], opacity, symmetric=True, show=False)
    add_occurrence_markers(fmap, occurrences)
    folium.LayerControl(collapsed=False).add_to(fmap)
    logger.info("Built continuous suitability map")
    return fmap


def build_binary_map(current_binary, future_binary, difference_binary, occurrences, map_params):
    """Map of the thresholded current, future and difference rasters."""
    fmap = base_map(map_params)
    opacity = map_params.get("opacity", 0.7)
    add_raster_layer(fmap, current_binary, "Current suitable area", map_params["binary_cmap"], opacity)
    add_raster_layer(fmap, future_binary, "Future suitable area", map_params["binary_cmap"], opacity, show=False)
    add_raster_layer(fmap, difference_binary, "Suitability change above threshold",
                     map_params["binary_cmap"], opacity, show=False)
    add_occurrence_markers(fmap, occurrences)
    folium.LayerControl(collapsed=False).add_to(fmap)
    logger.info("Built binary suitability map")
    return fmap
