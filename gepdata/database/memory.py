"""
In-process record store.

Holds an immutable snapshot of countries, models, scenario details and
feature rows. Ingestion builds a new snapshot and swaps it in under a lock, so
a reader sees either the old or the new state of a model, never a mix.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple
import logging
import threading

from ..filters import Country, FeatureRecord, Model, ScenarioDetail, scan_bounds
from ..query import (
    AndNode,
    Column,
    FieldRef,
    MatchNode,
    OptionsNode,
    PredicateNode,
    PresentNode,
    RangeNode,
    Source,
)
from ..values import as_text, to_decimal, to_number
from .base import Bounds, Row, model_id_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    countries: Dict[str, Country] = field(default_factory=dict)
    models: Dict[str, Model] = field(default_factory=dict)
    details: Dict[str, ScenarioDetail] = field(default_factory=dict)
    # scenario id -> rows ordered by feature id
    records: Dict[str, Tuple[FeatureRecord, ...]] = field(default_factory=dict)


def _read(ref: FieldRef, rec: FeatureRecord) -> Any:
    if ref.source == Source.COLUMN:
        if ref.key == Column.SCENARIO_ID.value:
            return rec.scenario_id
        if ref.key == Column.FEATURE_ID.value:
            return rec.feature_id
        raise ValueError(f"Unknown column: {ref.key}")
    if ref.source == Source.SUMMARY:
        return rec.summary.get(ref.key)
    return rec.filter_values.get(ref.key)


def matches(node: PredicateNode, rec: FeatureRecord) -> bool:
    """Evaluate a predicate node against one feature row."""
    if isinstance(node, AndNode):
        return all(matches(n, rec) for n in node.nodes)
    if isinstance(node, MatchNode):
        value = _read(node.field, rec)
        if node.field.source == Source.COLUMN:
            return value == node.value
        return as_text(value) == as_text(node.value)
    if isinstance(node, PresentNode):
        return _read(node.field, rec) is not None
    if isinstance(node, RangeNode):
        num = to_number(_read(node.field, rec))
        if num is None:
            return False
        if node.min is not None and num < node.min:
            return False
        if node.max is not None and num > node.max:
            return False
        return True
    if isinstance(node, OptionsNode):
        return as_text(_read(node.field, rec)) in node.options
    raise ValueError(f"Unsupported predicate node: {type(node).__name__}")


def _order_key(value: Any) -> Tuple[bool, float]:
    num = to_number(value)
    # nulls last
    return (num is None, num if num is not None else 0.0)


def _scenario_scope(node: PredicateNode) -> Optional[str]:
    """Scenario id pinned by a top-level `scenarioId = ...` match, if any."""
    nodes = node.nodes if isinstance(node, AndNode) else (node,)
    for n in nodes:
        if isinstance(n, MatchNode) and n.field == FieldRef.column(Column.SCENARIO_ID):
            return str(n.value)
    return None


class MemoryStore:
    name = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = _Snapshot()

    # ------------------------------------------------------------------
    # catalogue reads
    # ------------------------------------------------------------------

    def count_distinct_model_types(self) -> int:
        return len({m.type for m in self._snapshot.models.values()})

    def count_countries(self) -> int:
        return len(self._snapshot.countries)

    def list_countries(self) -> List[Country]:
        return sorted(self._snapshot.countries.values(), key=lambda c: c.name)

    def get_country(self, country_id: str) -> Optional[Country]:
        return self._snapshot.countries.get(country_id.lower())

    def list_models(self, country_id: str) -> List[Model]:
        prefix = f"{country_id.lower()}-"
        return [m for mid, m in sorted(self._snapshot.models.items()) if mid.startswith(prefix)]

    def get_model(self, model_id: str) -> Optional[Model]:
        return self._snapshot.models.get(model_id.lower())

    def get_scenario_detail(self, scenario_id: str) -> Optional[ScenarioDetail]:
        return self._snapshot.details.get(scenario_id.lower())

    # ------------------------------------------------------------------
    # feature queries
    # ------------------------------------------------------------------

    def _scan(self, predicate: PredicateNode) -> Iterator[FeatureRecord]:
        snap = self._snapshot
        scope = _scenario_scope(predicate)
        if scope is not None:
            candidates: Iterable[FeatureRecord] = snap.records.get(scope, ())
        else:
            candidates = (r for rows in snap.records.values() for r in rows)
        return (r for r in candidates if matches(predicate, r))

    def query_features(
        self,
        predicate: PredicateNode,
        projection: Mapping[str, FieldRef],
        order_by: Optional[FieldRef] = None,
    ) -> Iterable[Row]:
        rows = list(self._scan(predicate))
        if order_by is not None:
            rows.sort(key=lambda r: _order_key(_read(order_by, r)))
        out: List[Row] = []
        for rec in rows:
            row: Row = {}
            for alias, ref in projection.items():
                value = _read(ref, rec)
                row[alias] = value if ref.source == Source.COLUMN else as_text(value)
            out.append(row)
        return out

    def query_aggregate(self, predicate: PredicateNode, aggregate: Mapping[str, FieldRef]) -> Row:
        sums: Dict[str, Optional[Decimal]] = {alias: None for alias in aggregate}
        for rec in self._scan(predicate):
            for alias, ref in aggregate.items():
                dec = to_decimal(_read(ref, rec))
                if dec is None:
                    continue
                sums[alias] = dec if sums[alias] is None else sums[alias] + dec
        return dict(sums)

    def raw_filter_bound_scan(self, scenario_id: str, key_sets: Mapping[str, Sequence[str]]) -> Dict[str, Bounds]:
        return scan_bounds(self._snapshot.records.get(scenario_id.lower(), ()), key_sets)

    # ------------------------------------------------------------------
    # ingestion
    # ------------------------------------------------------------------

    def replace_countries(self, countries: Sequence[Country]) -> None:
        with self._lock:
            snap = self._snapshot
            merged = dict(snap.countries)
            merged.update({c.id: c for c in countries})
            self._snapshot = _Snapshot(merged, snap.models, snap.details, snap.records)

    def replacing(self, model: Model) -> "_MemoryReplacement":
        """
        Start replacing `model`. Rows loaded into the returned handle are only
        visible to its own bound scans until the block exits cleanly.
        """
        return _MemoryReplacement(self, model)

    def replace_model(
        self,
        model: Model,
        records: Sequence[FeatureRecord],
        details: Sequence[ScenarioDetail],
    ) -> None:
        grouped = _group(records)
        with self._lock:
            snap = self._snapshot
            models = dict(snap.models)
            models[model.id] = model
            stale = {sid for sid in set(snap.records) | set(snap.details) if model_id_for(sid) == model.id}
            recs = {sid: rows for sid, rows in snap.records.items() if sid not in stale}
            recs.update(grouped)
            dets = {sid: d for sid, d in snap.details.items() if sid not in stale}
            dets.update({d.scenario_id: d for d in details})
            self._snapshot = _Snapshot(snap.countries, models, dets, recs)
        logger.info("Replaced model [%s]: %d scenarios, %d features", model.id, len(grouped), len(records))


def _group(records: Sequence[FeatureRecord]) -> Dict[str, Tuple[FeatureRecord, ...]]:
    grouped: Dict[str, List[FeatureRecord]] = {}
    for rec in records:
        grouped.setdefault(rec.scenario_id.lower(), []).append(rec)
    return {sid: tuple(sorted(rows, key=lambda r: r.feature_id)) for sid, rows in grouped.items()}


class _MemoryReplacement:
    def __init__(self, store: MemoryStore, model: Model):
        self._store = store
        self.model = model
        self._records: List[FeatureRecord] = []
        self._details: List[ScenarioDetail] = []

    def __enter__(self) -> "_MemoryReplacement":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self._store.replace_model(self.model, self._records, self._details)

    def load_records(self, records: Sequence[FeatureRecord]) -> None:
        self._records.extend(records)

    def add_detail(self, detail: ScenarioDetail) -> None:
        self._details.append(detail)

    def raw_filter_bound_scan(self, scenario_id: str, key_sets: Mapping[str, Sequence[str]]) -> Dict[str, Bounds]:
        sid = scenario_id.lower()
        return scan_bounds((r for r in self._records if r.scenario_id.lower() == sid), key_sets)


__all__ = [
    "MemoryStore",
    "matches",
]
