"""
Range bound derivation.

Runs once per scenario at ingestion time. Range filters need min/max values
that are computed from the scenario's feature rows; options filters pass
through unchanged. Problems with a single filter never abort ingestion: they
are returned as IngestionWarning entries and the filter is left out.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging
import math

from .models import FeatureRecord, FilterCatalogue, FilterDefinition, Model, RangeBounds, ScenarioDetail
from ..values import to_number

logger = logging.getLogger(__name__)

Bounds = Tuple[Optional[float], Optional[float]]


@dataclass(frozen=True)
class IngestionWarning:
    model_id: str
    filter_key: str
    reason: str
    scenario_id: Optional[str] = None

    def __str__(self) -> str:
        where = f" of model [{self.model_id}]"
        if self.scenario_id:
            where += f" (scenario [{self.scenario_id}])"
        return f"{self.reason} for filter [{self.filter_key}]{where}... skipping"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modelId": self.model_id,
            "scenarioId": self.scenario_id,
            "filterKey": self.filter_key,
            "reason": self.reason,
        }


def representative_value(values: Mapping[str, Any], storage_keys: Sequence[str]) -> Optional[float]:
    """
    Lowest numeric value of a record across `storage_keys` (worst case across
    timesteps). Keys that are missing or not numeric are ignored.
    """
    nums = [n for n in (to_number(values.get(k)) for k in storage_keys) if n is not None]
    return min(nums) if nums else None


def scan_bounds(
    records: Iterable[FeatureRecord],
    key_sets: Mapping[str, Sequence[str]],
) -> Dict[str, Bounds]:
    """
    One pass over `records`, returning (min, max) of the representative value
    for every filter in `key_sets`. Filters with no numeric value get (None, None).
    """
    lo: Dict[str, Optional[float]] = {k: None for k in key_sets}
    hi: Dict[str, Optional[float]] = {k: None for k in key_sets}
    for rec in records:
        for fkey, skeys in key_sets.items():
            v = representative_value(rec.filter_values, skeys)
            if v is None:
                continue
            if lo[fkey] is None or v < lo[fkey]:
                lo[fkey] = v
            if hi[fkey] is None or v > hi[fkey]:
                hi[fkey] = v
    return {k: (lo[k], hi[k]) for k in key_sets}


def _finite(v: Any) -> Optional[float]:
    if v is None:
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def derive_scenario_filters(store, model: Model, scenario_id: str) -> Tuple[ScenarioDetail, List[IngestionWarning]]:
    """
    Build the filter catalogue of one scenario.

    All range filters are scanned in a single `raw_filter_bound_scan` call so
    the scenario's records are read once.
    """
    warnings: List[IngestionWarning] = []
    filters: List[FilterDefinition] = []

    range_filters = [f for f in model.filters if f.is_range]
    if range_filters:
        key_sets = {f.key: f.storage_keys(model.timesteps) for f in range_filters}
        bounds = store.raw_filter_bound_scan(scenario_id, key_sets)

        for f in range_filters:
            lo, hi = bounds.get(f.key, (None, None))
            lo, hi = _finite(lo), _finite(hi)
            if lo is None or hi is None:
                warnings.append(IngestionWarning(model.id, f.key, "Invalid (min) and/or (max)", scenario_id))
                continue
            filters.append(f.with_range(RangeBounds(min=float(math.floor(lo)), max=float(math.ceil(hi)))))

    for f in model.filters:
        if f.is_options:
            filters.append(f)
        elif not f.is_range:
            warnings.append(IngestionWarning(model.id, f.key, f"Invalid type [{f.type}]", scenario_id))

    for w in warnings:
        logger.warning("%s", w)

    detail = ScenarioDetail(scenario_id=scenario_id, filters=FilterCatalogue(tuple(filters)).sorted_by_id())
    return detail, warnings


__all__ = [
    "IngestionWarning",
    "representative_value",
    "scan_bounds",
    "derive_scenario_filters",
]
