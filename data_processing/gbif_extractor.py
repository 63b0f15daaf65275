"""Module for extracting species occurrence data from GBIF."""

import logging
import os

import pandas as pd
import requests
from pygbif import occurrences
from tqdm import tqdm

from utils.exceptions import AcquisitionFailed, MissingFile, ParseError
from utils.helpers import points_to_gdf

logger = logging.getLogger(__name__)

OCCURRENCE_FIELDS = [
    "decimalLongitude",
    "decimalLatitude",
    "scientificName",
    "dateIdentified",
    "occurrenceID",
    "gbifID",
    "eventDate",
    "country",
    "basisOfRecord",
    "datasetName",
    "references"
]

GBIF_OCCURRENCE_URL = "https://www.gbif.org/occurrence/{}"


class GBIFExtractor:
    """Class for extracting occurrence records of one species from GBIF."""

    def __init__(self, scientific_name, output_file, gbif_params, client=occurrences):
        """
        Initialize the GBIF extractor.

        Args:
            scientific_name: Scientific name of the target species
            output_file: Path of the CSV file the records are persisted to
            gbif_params: Dictionary with limit, page_size and the quality filters
            client: Object exposing search(**params) like pygbif.occurrences
        """
        self.scientific_name = scientific_name
        self.output_file = output_file
        self.gbif_params = gbif_params
        self.client = client

    def build_query(self, offset, page_limit):
        return {
            "scientificName": self.scientific_name,
            "hasCoordinate": self.gbif_params.get("has_coordinate", True),
            "hasGeospatialIssue": self.gbif_params.get("has_geospatial_issue", False),
            "limit": page_limit,
            "offset": offset
        }

    def query_gbif(self):
        """
        Query the GBIF API page by page until the record limit or the last page.

        Returns:
            DataFrame with one row per occurrence record
        """
        limit = self.gbif_params["limit"]
        page_size = self.gbif_params.get("page_size", 300)
        logger.info(f"Querying GBIF for species: {self.scientific_name} (limit {limit})")

        records = []
        offset = 0
        with tqdm(total=limit, desc=f"Fetching {self.scientific_name}", dynamic_ncols=True) as pbar:
            while offset < limit:
                page_limit = min(page_size, limit - offset)
                try:
                    response = self.client.search(**self.build_query(offset, page_limit))
                except requests.RequestException as e:
                    logger.error(f"Error querying GBIF for {self.scientific_name}: {str(e)}")
                    raise AcquisitionFailed(f"GBIF query failed for {self.scientific_name}") from e

                results = response.get("results") or []
                for record in results:
                    records.append({field: record.get(field) for field in OCCURRENCE_FIELDS})
                pbar.update(len(results))

                if not results or response.get("endOfRecords", True):
                    break
                offset += len(results)

        logger.info(f"Retrieved {len(records)} occurrence records for {self.scientific_name}")
        return pd.DataFrame(records, columns=OCCURRENCE_FIELDS)

    def process_and_save(self):
        """
        Query GBIF and write the records to the output CSV, overwriting any prior file.

        Returns:
            DataFrame with the persisted records
        """
        occurrence_df = self.query_gbif()

        if occurrence_df.empty:
            logger.warning(f"No occurrence records found for {self.scientific_name}")

        output_dir = os.path.dirname(self.output_file)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        occurrence_df.to_csv(self.output_file, index=False)
        logger.info(f"Results saved to {self.output_file}")

        return occurrence_df


def record_source_url(row):
    """Return a link to the source of an occurrence record."""
    for field in ("references", "occurrenceID"):
        value = row.get(field)
        if isinstance(value, str) and value.startswith("http"):
            return value
    gbif_id = row.get("gbifID")
    if pd.notna(gbif_id):
        return GBIF_OCCURRENCE_URL.format(int(gbif_id))
    return None


def load_occurrences(input_file, lat_col="decimalLatitude", lon_col="decimalLongitude"):
    """
    Read persisted occurrence records into a point GeoDataFrame.

    Args:
        input_file: Path to the CSV written by GBIFExtractor.process_and_save
        lat_col: Name of the latitude column
        lon_col: Name of the longitude column

    Returns:
        GeoDataFrame in EPSG:4326 keeping the longitude/latitude columns
    """
    if not os.path.exists(input_file):
        logger.error(f"Occurrence file not found: {input_file}")
        raise MissingFile(f"Occurrence file not found: {input_file}")

    try:
        df = pd.read_csv(input_file)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        logger.error(f"Error reading occurrence file {input_file}: {str(e)}")
        raise ParseError(f"Could not parse occurrence file {input_file}") from e

    missing = [col for col in (lat_col, lon_col) if col not in df.columns]
    if missing:
        raise ParseError(f"Occurrence file {input_file} lacks columns: {missing}")

    for col in (lat_col, lon_col):
        original = df[col]
        df[col] = pd.to_numeric(original, errors="coerce")
        malformed = df[col].isna() & original.notna()
        if malformed.any():
            raise ParseError(
                f"Non-numeric values in column {col} of {input_file} "
                f"(rows {df.index[malformed].tolist()[:5]})"
            )

    null_coords = df[lat_col].isna() | df[lon_col].isna()
    if null_coords.any():
        logger.warning(f"Dropping {int(null_coords.sum())} records without coordinates")
        df = df[~null_coords].reset_index(drop=True)

    logger.info(f"Loaded {len(df)} occurrence records from {input_file}")
    return points_to_gdf(df, lat_col=lat_col, lon_col=lon_col)
