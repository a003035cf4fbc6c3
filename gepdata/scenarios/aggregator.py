from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from ..query import TECH_FIELD, Column, CompiledPredicate, FieldRef
from ..values import round_half_away, to_number

logger = logging.getLogger(__name__)

# response field -> summary document field (without year suffix)
SUMMARY_FIELDS: Dict[str, str] = {
    "electrifiedPopulation": "Pop",
    "investmentCost": "InvestmentCost",
    "newCapacity": "NewCapacity",
}


@dataclass
class ScenarioResult:
    id: str
    year: Optional[int]
    feature_types: Dict[int, Optional[str]] = field(default_factory=dict)
    features: List[Dict[str, Any]] = field(default_factory=list)
    summary: Dict[str, float] = field(default_factory=dict)
    summary_by_type: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "featureTypes": serialize_feature_types(self.feature_types),
            "summary": self.summary,
            "summaryByType": self.summary_by_type,
        }


def serialize_feature_types(feature_types: Dict[int, Optional[str]]) -> List[Optional[str]]:
    """
    Flat list indexed by feature id; ids with no matching feature are null.
    """
    if not feature_types:
        return []
    out: List[Optional[str]] = [None] * (max(feature_types) + 1)
    for fid, tech in feature_types.items():
        if fid < 0:
            raise ValueError(f"Feature id [{fid}] cannot index featureTypes.")
        out[fid] = tech
    return out


def feature_projection(predicate: CompiledPredicate) -> Dict[str, FieldRef]:
    proj = {
        "id": FieldRef.column(Column.FEATURE_ID),
        "electrificationTech": FieldRef.summary(predicate.summary_key(TECH_FIELD)),
    }
    for alias, name in SUMMARY_FIELDS.items():
        proj[alias] = FieldRef.summary(predicate.summary_key(name))
    return proj


def _accumulate_value(raw: Any, fid: Any, alias: str) -> float:
    if raw is None:
        return 0.0
    num = to_number(raw)
    if num is None:
        logger.warning("Feature [%s] has a non-numeric %s value [%r]; counted as 0", fid, alias, raw)
        return 0.0
    return num


def aggregate(store, predicate: CompiledPredicate) -> ScenarioResult:
    """
    Run the compiled predicate twice: once for the ordered feature rows, once
    for the scenario-wide sums.
    """
    rows = list(store.query_features(
        predicate.node,
        feature_projection(predicate),
        order_by=FieldRef.column(Column.FEATURE_ID),
    ))

    sums = store.query_aggregate(
        predicate.node,
        {alias: FieldRef.summary(predicate.summary_key(name)) for alias, name in SUMMARY_FIELDS.items()},
    )
    summary = {alias: round_half_away(sums.get(alias)) for alias in SUMMARY_FIELDS}

    feature_types: Dict[int, Optional[str]] = {}
    by_type: Dict[str, Dict[str, float]] = {alias: {} for alias in SUMMARY_FIELDS}
    for row in rows:
        fid = int(row["id"])
        tech = row.get("electrificationTech")
        feature_types[fid] = tech
        for alias in SUMMARY_FIELDS:
            bucket = by_type[alias]
            bucket[tech] = (bucket.get(tech) or 0) + _accumulate_value(row.get(alias), fid, alias)

    return ScenarioResult(
        id=predicate.scenario_id,
        year=predicate.year,
        feature_types=feature_types,
        features=rows,
        summary=summary,
        summary_by_type=by_type,
    )


__all__ = [
    "SUMMARY_FIELDS",
    "ScenarioResult",
    "serialize_feature_types",
    "feature_projection",
    "aggregate",
]
