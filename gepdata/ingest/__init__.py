"""
Ingestion of model definitions and scenario files for the GEP data service.
"""

from .loader import (
    ID_COLUMN,
    MAX_FEATURE_ID,
    read_document,
    load_model,
    load_countries,
    filter_columns,
    load_scenario_records,
    find_documents,
)
from .pipeline import IngestionReport, ingest_model, ingest_directory

__all__ = [
    "ID_COLUMN",
    "MAX_FEATURE_ID",
    "read_document",
    "load_model",
    "load_countries",
    "filter_columns",
    "load_scenario_records",
    "find_documents",
    "IngestionReport",
    "ingest_model",
    "ingest_directory",
]
