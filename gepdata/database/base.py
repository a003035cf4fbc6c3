from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..filters import Country, FeatureRecord, Model, ScenarioDetail
from ..query import FieldRef, PredicateNode

Row = Dict[str, Any]
Bounds = Tuple[Optional[float], Optional[float]]


class Replacement(Protocol):
    """
    Handle for an in-flight model replacement. Loaded rows are visible to
    `raw_filter_bound_scan` on the handle only, until the `with` block exits.
    """

    def __enter__(self) -> "Replacement": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def load_records(self, records: Sequence[FeatureRecord]) -> None: ...

    def add_detail(self, detail: ScenarioDetail) -> None: ...

    def raw_filter_bound_scan(self, scenario_id: str, key_sets: Mapping[str, Sequence[str]]) -> Dict[str, Bounds]: ...


class RecordStore(Protocol):
    """
    Read access used by request handling, plus the bulk replace used by
    ingestion. Implementations raise StoreUnavailable on backend failure.
    """

    name: str

    def count_distinct_model_types(self) -> int: ...

    def count_countries(self) -> int: ...

    def list_countries(self) -> List[Country]: ...

    def get_country(self, country_id: str) -> Optional[Country]: ...

    def list_models(self, country_id: str) -> List[Model]: ...

    def get_model(self, model_id: str) -> Optional[Model]: ...

    def get_scenario_detail(self, scenario_id: str) -> Optional[ScenarioDetail]: ...

    def query_features(
        self,
        predicate: PredicateNode,
        projection: Mapping[str, FieldRef],
        order_by: Optional[FieldRef] = None,
    ) -> Iterable[Row]:
        """Rows of `projection` aliases; document fields come back as text."""
        ...

    def query_aggregate(self, predicate: PredicateNode, aggregate: Mapping[str, FieldRef]) -> Row:
        """SUM of each numeric field over matching rows; None when nothing matched."""
        ...

    def raw_filter_bound_scan(self, scenario_id: str, key_sets: Mapping[str, Sequence[str]]) -> Dict[str, Bounds]: ...

    def replace_countries(self, countries: Sequence[Country]) -> None: ...

    def replacing(self, model: Model) -> "Replacement":
        """Context manager swapping a model, its rows and details in one step."""
        ...


def model_id_for(scenario_id: str) -> str:
    """Scenario ids are `<modelId>-<suffix>`."""
    sid = scenario_id.lower()
    idx = sid.rfind("-")
    return sid[:idx] if idx > 0 else sid


__all__ = [
    "Row",
    "Bounds",
    "Replacement",
    "RecordStore",
    "model_id_for",
]
