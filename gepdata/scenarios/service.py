"""
Scenario operations behind the HTTP routes.

Listing and single-feature lookups share year resolution but not the default
year: a listing without `year` shows the first timestep, a feature lookup
without `year` shows the last one. Only listings go through the filter
compiler.
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Tuple

from ..database import RecordStore, model_id_for
from ..errors import FeatureNotFound, ModelNotFound
from ..filters import FilterCatalogue, FilterRequest, Model
from ..query import (
    AndNode,
    Column,
    CompiledPredicate,
    FieldRef,
    MatchNode,
    YearDefault,
    compile_predicate,
    resolve_year,
)
from .aggregator import SUMMARY_FIELDS, ScenarioResult, aggregate

LISTING_YEAR_DEFAULT = YearDefault.FIRST
FEATURE_YEAR_DEFAULT = YearDefault.LAST


def load_scenario_context(store: RecordStore, scenario_id: str) -> Tuple[Model, FilterCatalogue]:
    """
    Model of `scenario_id` and the catalogue requests are checked against:
    the scenario's derived catalogue when one was ingested, else the model's
    own filter definitions.
    """
    model = store.get_model(model_id_for(scenario_id))
    if model is None:
        raise ModelNotFound(model_id_for(scenario_id))
    detail = store.get_scenario_detail(scenario_id)
    catalogue = detail.filters if detail is not None else model.filters
    return model, catalogue


def list_scenario(store: RecordStore, scenario_id: str, request: Optional[FilterRequest] = None) -> ScenarioResult:
    sid = scenario_id.lower()
    model, catalogue = load_scenario_context(store, sid)
    predicate = compile_predicate(
        catalogue,
        model.timesteps,
        request or FilterRequest(),
        sid,
        default_year=LISTING_YEAR_DEFAULT,
    )
    return aggregate(store, predicate)


def get_feature(store: RecordStore, scenario_id: str, feature_id: int, year: Any = None) -> Dict[str, Any]:
    sid = scenario_id.lower()
    model, _ = load_scenario_context(store, sid)
    # no tech-code presence check here: a feature not electrified in `year`
    # still reports its summary fields
    predicate = CompiledPredicate(
        scenario_id=sid,
        year=resolve_year(model.timesteps, year, FEATURE_YEAR_DEFAULT),
        node=AndNode((
            MatchNode(FieldRef.column(Column.SCENARIO_ID), sid),
            MatchNode(FieldRef.column(Column.FEATURE_ID), feature_id),
        )),
    )

    projection = {alias: FieldRef.summary(predicate.summary_key(name)) for alias, name in SUMMARY_FIELDS.items()}
    for row in store.query_features(predicate.node, projection):
        return {
            "investmentCost": row.get("investmentCost"),
            "newCapacity": row.get("newCapacity"),
            "electrifiedPopulation": row.get("electrifiedPopulation"),
        }
    raise FeatureNotFound(sid, feature_id)


__all__ = [
    "LISTING_YEAR_DEFAULT",
    "FEATURE_YEAR_DEFAULT",
    "load_scenario_context",
    "list_scenario",
    "get_feature",
]
