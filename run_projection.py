"""Main module for the species distribution projection pipeline."""

import argparse
import copy
import json
import logging
import os
import sys

import numpy as np

import config
from data_processing.bioclim_extractor import BioclimExtractor
from data_processing.gbif_extractor import GBIFExtractor, load_occurrences
from data_processing.sampling import train_test_split_coordinates, unique_coordinates
from modeling.evaluation import evaluate_suitability
from modeling.maxent_model import MaxentSuitabilityModel, align_band_names, band_names
from modeling.projection import binarize, compute_difference, count_suitable
from utils.exceptions import SDMError
from utils.helpers import create_study_area
from visualization.maps import build_binary_map, build_continuous_map
from visualization.report import build_report

logger = logging.getLogger(__name__)


def default_settings():
    """Return a deep copy of every parameter dictionary in config."""
    return {
        "species": copy.deepcopy(config.SPECIES_PARAMS),
        "study_area": copy.deepcopy(config.STUDY_AREA_PARAMS),
        "climate": copy.deepcopy(config.CLIMATE_PARAMS),
        "sampling": copy.deepcopy(config.SAMPLING_PARAMS),
        "model": copy.deepcopy(config.MODEL_PARAMS),
        "evaluation": copy.deepcopy(config.EVALUATION_PARAMS),
        "projection": copy.deepcopy(config.PROJECTION_PARAMS),
        "map": copy.deepcopy(config.MAP_PARAMS),
        "paths": copy.deepcopy(config.FILE_PATHS),
    }


def setup_logging(log_file):
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def run_pipeline(settings, skip_download=False, occurrence_client=None, session=None):
    """
    Run the complete projection pipeline.

    Args:
        settings: Dictionary of parameter dictionaries, see default_settings()
        skip_download: Re-use the persisted occurrence file instead of querying GBIF
        occurrence_client: Optional replacement for pygbif.occurrences
        session: Optional requests.Session for climate downloads

    Returns:
        Dictionary with the evaluation metrics and output paths
    """
    species_params = settings["species"]
    paths = settings["paths"]
    species = species_params["scientific_name"]
    output_dir = paths["output_dir"]
    os.makedirs(output_dir, exist_ok=True)

    try:
        logger.info("=== Starting Species Distribution Projection ===")
        logger.info(f"Species: {species}")

        # Occurrence acquisition
        if skip_download:
            logger.info("=== Step 1: Re-using persisted occurrence records ===")
        else:
            logger.info("=== Step 1: Extracting Occurrence Records from GBIF ===")
            extractor_kwargs = {"client": occurrence_client} if occurrence_client is not None else {}
            GBIFExtractor(species, paths["occurrence_file"], species_params, **extractor_kwargs).process_and_save()

        # Occurrence loading
        logger.info("=== Step 2: Loading Occurrence Records ===")
        occurrences = load_occurrences(paths["occurrence_file"])

        # Study area
        logger.info("=== Step 3: Delimiting Study Area ===")
        study_area = create_study_area(occurrences, settings["study_area"]["offset_degree"])
        logger.info(f"Study area extent: {study_area.as_extent()}")

        # Climate acquisition
        logger.info("=== Step 4: Loading Current and Future Bioclimatic Layers ===")
        bioclim = BioclimExtractor(paths["climate_dir"], settings["climate"], session=session)
        current_climate = bioclim.load_current_stack(study_area)
        future_climate = bioclim.load_future_stack(study_area, reference=current_climate)

        # Sampling split
        logger.info("=== Step 5: Splitting Training and Evaluation Points ===")
        sampling = settings["sampling"]
        rng = np.random.default_rng(sampling["seed"])
        coords = unique_coordinates(occurrences)
        train, test = train_test_split_coordinates(
            coords, sampling["train_proportion"], rng, min_records=sampling["min_records"]
        )

        # Model fit
        logger.info("=== Step 6: Fitting Maxent Model ===")
        model_params = settings["model"]
        model = MaxentSuitabilityModel(
            feature_types=model_params["feature_types"],
            beta_multiplier=model_params["beta_multiplier"],
            transform=model_params["transform"]
        )
        model.fit(current_climate, train, rng, n_background=model_params["n_background"])
        model_file = os.path.join(output_dir, paths["model_file"])
        model.save(model_file)
        logger.info(f"Model saved to {model_file}")

        # Current prediction
        logger.info("=== Step 7: Predicting Current Suitability ===")
        current_suitability = model.predict(current_climate)

        # Evaluation
        logger.info("=== Step 8: Evaluating Model ===")
        evaluation_params = settings["evaluation"]
        if evaluation_params.get("background_seed") is not None:
            evaluation_rng = np.random.default_rng(evaluation_params["background_seed"])
        else:
            evaluation_rng = rng
        evaluation = evaluate_suitability(
            current_suitability, test, current_climate, evaluation_rng,
            n_background=evaluation_params["n_background"]
        )

        # Future prediction
        logger.info("=== Step 9: Predicting Future Suitability ===")
        future_climate = align_band_names(future_climate, band_names(current_climate))
        future_suitability = model.predict(future_climate)

        # Difference and thresholds
        logger.info("=== Step 10: Computing Suitability Change ===")
        projection = settings["projection"]
        difference = compute_difference(current_suitability, future_suitability)
        current_binary = binarize(current_suitability, projection["threshold"])
        future_binary = binarize(future_suitability, projection["threshold"])
        difference_binary = binarize(difference, projection["difference_threshold"])
        logger.info(
            f"Suitable cells: {count_suitable(current_binary)} current, "
            f"{count_suitable(future_binary)} future"
        )

        raster_outputs = {
            "current_raster": current_suitability,
            "future_raster": future_suitability,
            "difference_raster": difference,
        }
        for key, raster in raster_outputs.items():
            raster_file = os.path.join(output_dir, paths[key])
            raster.rio.to_raster(raster_file)
            logger.info(f"Raster saved to {raster_file}")

        metrics = {
            "species": species,
            "study_area": study_area.as_extent(),
            "n_records": len(occurrences),
            "n_unique": len(coords),
            "n_train": len(train),
            "n_test": len(test),
            **evaluation.to_dict()
        }
        metrics_file = os.path.join(output_dir, paths["metrics_file"])
        with open(metrics_file, "w") as f:
            json.dump(metrics, f, indent=2)
        logger.info(f"Evaluation metrics saved to {metrics_file}")

        # Visualization
        logger.info("=== Step 11: Rendering Maps and Report ===")
        map_params = settings["map"]
        continuous_map = build_continuous_map(
            current_suitability, future_suitability, difference, occurrences, map_params
        )
        binary_map = build_binary_map(
            current_binary, future_binary, difference_binary, occurrences, map_params
        )
        climate = settings["climate"]
        report_file = build_report(
            {
                "species": species,
                "parameters": {
                    "species": species,
                    "offset_degree": settings["study_area"]["offset_degree"],
                    "resolution": climate["resolution"],
                    "scenario": climate["scenario"],
                    "gcm": climate["gcm"],
                    "period": climate["period"],
                    "train_proportion": sampling["train_proportion"],
                    "seed": sampling["seed"],
                },
                "n_records": len(occurrences),
                "n_unique": len(coords),
                "n_train": len(train),
                "n_test": len(test),
                "n_fit_background": model.n_background,
                "study_area": study_area,
                "evaluation": evaluation,
                "threshold": projection["threshold"],
                "difference_threshold": projection["difference_threshold"],
                "continuous_map": continuous_map,
                "binary_map": binary_map,
            },
            os.path.join(output_dir, paths["report_file"])
        )

        logger.info("=== Pipeline completed successfully ===")
        metrics["report_file"] = report_file
        return metrics

    except Exception as e:
        logger.error(f"Error in pipeline: {str(e)}")
        raise


def main(argv=None):
    parser = argparse.ArgumentParser(description="Species Distribution Projection Pipeline")
    parser.add_argument("--species", help="Scientific name of the target species")
    parser.add_argument("--output", help="Output directory for results")
    parser.add_argument("--offset", type=float, help="Study area padding in degrees")
    parser.add_argument("--resolution", choices=["10m", "5m", "2.5m", "30s"], help="WorldClim resolution")
    parser.add_argument("--scenario", help="Shared socio-economic pathway, e.g. ssp585")
    parser.add_argument("--gcm", help="Global climate model, e.g. EC-Earth3-Veg")
    parser.add_argument("--period", help="Future time window, e.g. 2061-2080")
    parser.add_argument("--seed", type=int, help="Random seed for the training/evaluation split")
    parser.add_argument(
        "--skip-download",
        action="store_true",
        help="Re-use the persisted occurrence file instead of querying GBIF"
    )

    args = parser.parse_args(argv)

    settings = default_settings()
    if args.species:
        settings["species"]["scientific_name"] = args.species
    if args.output:
        settings["paths"]["output_dir"] = args.output
    if args.offset is not None:
        settings["study_area"]["offset_degree"] = args.offset
    for key in ("resolution", "scenario", "gcm", "period"):
        if getattr(args, key):
            settings["climate"][key] = getattr(args, key)
    if args.seed is not None:
        settings["sampling"]["seed"] = args.seed

    setup_logging(settings["paths"]["log_file"])

    try:
        run_pipeline(settings, skip_download=args.skip_download)
    except SDMError:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
