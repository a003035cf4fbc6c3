"""
Filter catalogue for the GEP data service.

This module provides the filter, model and scenario data classes, query-string
decoding of filter requests, and range bound derivation.
"""

from .models import (
    FilterType,
    RangeBounds,
    FilterDefinition,
    FilterCatalogue,
    Model,
    ScenarioDetail,
    FeatureRecord,
    Country,
    FilterRequest,
    parse_filter_request_json,
)
from .params import parse_query_pairs, parse_filter_request_query
from .bounds import (
    IngestionWarning,
    representative_value,
    scan_bounds,
    derive_scenario_filters,
)

__all__ = [
    "FilterType",
    "RangeBounds",
    "FilterDefinition",
    "FilterCatalogue",
    "Model",
    "ScenarioDetail",
    "FeatureRecord",
    "Country",
    "FilterRequest",
    "parse_filter_request_json",
    "parse_query_pairs",
    "parse_filter_request_query",
    "IngestionWarning",
    "representative_value",
    "scan_bounds",
    "derive_scenario_filters",
]
