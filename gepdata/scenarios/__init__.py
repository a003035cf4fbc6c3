"""
Scenario listing and aggregation for the GEP data service.
"""

from .aggregator import (
    SUMMARY_FIELDS,
    ScenarioResult,
    serialize_feature_types,
    feature_projection,
    aggregate,
)
from .service import (
    LISTING_YEAR_DEFAULT,
    FEATURE_YEAR_DEFAULT,
    load_scenario_context,
    list_scenario,
    get_feature,
)

__all__ = [
    "SUMMARY_FIELDS",
    "ScenarioResult",
    "serialize_feature_types",
    "feature_projection",
    "aggregate",
    "LISTING_YEAR_DEFAULT",
    "FEATURE_YEAR_DEFAULT",
    "load_scenario_context",
    "list_scenario",
    "get_feature",
]
