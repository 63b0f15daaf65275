"""Configuration settings for the species distribution projection pipeline."""

# Target species and GBIF query parameters
SPECIES_PARAMS = {
    "scientific_name": "Pharomachrus mocinno",
    "limit": 2000,                  # Maximum number of occurrence records
    "has_coordinate": True,
    "has_geospatial_issue": False,
    "page_size": 300                # GBIF caps a single request at 300 records
}

# Study area parameters
STUDY_AREA_PARAMS = {
    "offset_degree": 5.0            # Padding added around the occurrence extent (degrees)
}

# Bioclimatic data parameters
CLIMATE_PARAMS = {
    "variable": "bio",
    "resolution": "10m",            # Options: "10m", "5m", "2.5m", "30s"
    "scenario": "ssp585",
    "gcm": "EC-Earth3-Veg",
    "period": "2061-2080",
    "timeout": 600                  # Seconds per download request
}

# Training / evaluation split parameters
SAMPLING_PARAMS = {
    "train_proportion": 0.8,
    "seed": 1964,
    "min_records": 10               # Fewer unique coordinates than this is an error
}

# Maxent model parameters
MODEL_PARAMS = {
    "feature_types": "lqh",         # linear, quadratic, hinge
    "beta_multiplier": 1.0,
    "transform": "cloglog",
    "n_background": 10000           # Background cells drawn from the current stack for fitting
}

# Evaluation parameters
EVALUATION_PARAMS = {
    "n_background": 1000,           # Pseudo-absence points for the ROC curve
    "background_seed": None         # None keeps drawing from the split generator
}

# Projection parameters
PROJECTION_PARAMS = {
    "threshold": 0.5,               # Binarization threshold for suitability rasters
    "difference_threshold": 0.5     # Binarization threshold applied to the difference raster
}

# Interactive map parameters
MAP_PARAMS = {
    "bounds": [[5.0, -92.0], [20.0, -76.0]],   # [[south, west], [north, east]]
    "tiles": "CartoDB positron",
    "opacity": 0.7,
    "continuous_cmap": "viridis",
    "binary_cmap": "Greens",
    "difference_cmap": "RdBu"
}

# File paths and naming templates
FILE_PATHS = {
    "occurrence_file": "data/occurrences.csv",
    "climate_dir": "data/climate",
    "output_dir": "outputs",
    "log_file": "pipeline.log",
    "report_file": "species_projection.html",
    "model_file": "maxent_model.ela",
    "metrics_file": "evaluation_metrics.json",
    "current_raster": "suitability_current.tif",
    "future_raster": "suitability_future.tif",
    "difference_raster": "suitability_difference.tif"
}

# WorldClim 2.1 data
WORLDCLIM_BASE_URL = "https://geodata.ucdavis.edu/climate/worldclim/2_1/base/wc2.1_{res}_{var}.zip"
WORLDCLIM_FUTURE_URL = (
    "https://geodata.ucdavis.edu/cmip6/{res}/{gcm}/{ssp}/wc2.1_{res}_{var}c_{gcm}_{ssp}_{period}.tif"
)
N_BIOCLIM_VARS = 19
