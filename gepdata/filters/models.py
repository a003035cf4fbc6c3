from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union
import json

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FilterType(str, Enum):
    RANGE = "range"
    OPTIONS = "options"


# ---------------------------------------------------------------------------
# Filter catalogue models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RangeBounds:
    min: float
    max: float

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RangeBounds":
        return cls(min=float(data["min"]), max=float(data["max"]))


@dataclass(frozen=True)
class FilterDefinition:
    """
    One filter of a model. `type` is kept as the raw string so that
    definitions with an unsupported type can be reported during ingestion.
    `range` is only set on derived range filters.
    """
    key: str
    type: str = FilterType.RANGE.value
    timestep: bool = False
    id: Any = None
    label: Optional[str] = None
    options: Optional[Tuple[Any, ...]] = None
    range: Optional[RangeBounds] = None

    @property
    def is_range(self) -> bool:
        return self.type == FilterType.RANGE.value

    @property
    def is_options(self) -> bool:
        return self.type == FilterType.OPTIONS.value

    def storage_key(self, year: Optional[int]) -> str:
        """Key under which this filter's value is stored for `year`."""
        if self.timestep and year is not None:
            return f"{self.key}{year}"
        return self.key

    def storage_keys(self, timesteps: Sequence[int]) -> List[str]:
        """Every key a bound scan has to read for this filter."""
        if self.timestep and timesteps:
            return [f"{self.key}{t}" for t in timesteps]
        return [self.key]

    def with_range(self, bounds: RangeBounds) -> "FilterDefinition":
        return replace(self, range=bounds)

    # camelCase JSON helpers
    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.id is not None:
            out["id"] = self.id
        out["key"] = self.key
        if self.label is not None:
            out["label"] = self.label
        out["type"] = self.type
        out["timestep"] = self.timestep
        if self.options is not None:
            out["options"] = list(self.options)
        if self.range is not None:
            out["range"] = self.range.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterDefinition":
        options = data.get("options")
        rng = data.get("range")
        return cls(
            key=str(data["key"]),
            type=str(data.get("type", FilterType.RANGE.value)),
            timestep=data.get("timestep") is True,
            id=data.get("id"),
            label=data.get("label"),
            options=tuple(options) if isinstance(options, (list, tuple)) else None,
            range=RangeBounds.from_dict(rng) if isinstance(rng, dict) else None,
        )


def _id_sort_key(f: FilterDefinition) -> Tuple[int, float, str]:
    # numeric ids first in numeric order, then string ids, then filters without id
    if f.id is None:
        return (2, 0.0, "")
    if isinstance(f.id, (int, float)) and not isinstance(f.id, bool):
        return (0, float(f.id), "")
    return (1, 0.0, str(f.id))


@dataclass(frozen=True)
class FilterCatalogue:
    """
    Ordered, immutable collection of a model's (or scenario's) filters.
    """
    filters: Tuple[FilterDefinition, ...] = ()

    def __iter__(self) -> Iterator[FilterDefinition]:
        return iter(self.filters)

    def __len__(self) -> int:
        return len(self.filters)

    def find_by_key(self, key: Any) -> Optional[FilterDefinition]:
        for f in self.filters:
            if f.key == key:
                return f
        return None

    def sorted_by_id(self) -> "FilterCatalogue":
        return FilterCatalogue(tuple(sorted(self.filters, key=_id_sort_key)))

    def to_list(self) -> List[Dict[str, Any]]:
        return [f.to_dict() for f in self.filters]

    @classmethod
    def from_list(cls, data: Optional[Sequence[Dict[str, Any]]]) -> "FilterCatalogue":
        return cls(tuple(FilterDefinition.from_dict(d) for d in (data or [])))


# ---------------------------------------------------------------------------
# Models, scenarios, countries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Model:
    id: str
    name: str = ""
    type: str = ""
    country: str = ""
    timesteps: Tuple[int, ...] = ()
    filters: FilterCatalogue = field(default_factory=FilterCatalogue)
    version: Optional[str] = None
    description: Optional[str] = None
    attribution: Any = None
    levers: Any = None
    map: Any = None
    updated_at: Optional[str] = None

    @property
    def has_timesteps(self) -> bool:
        return len(self.timesteps) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attribution": self.attribution,
            "country": self.country,
            "description": self.description,
            "filters": self.filters.to_list(),
            "timesteps": list(self.timesteps) if self.timesteps else None,
            "id": self.id,
            "levers": self.levers,
            "map": self.map,
            "name": self.name,
            "version": self.version,
            "type": self.type,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Model":
        timesteps = tuple(int(t) for t in (data.get("timesteps") or []))
        filters = FilterCatalogue.from_list(data.get("filters"))
        if not timesteps:
            # time-stepped filters make no sense without timesteps
            filters = FilterCatalogue(tuple(replace(f, timestep=False) for f in filters))
        return cls(
            id=str(data["id"]).lower(),
            name=str(data.get("name", "")),
            type=str(data.get("type", "")),
            country=str(data.get("country", "")).lower(),
            timesteps=timesteps,
            filters=filters,
            version=data.get("version"),
            description=data.get("description"),
            attribution=data.get("attribution"),
            levers=data.get("levers"),
            map=data.get("map"),
            updated_at=data.get("updatedAt"),
        )


@dataclass(frozen=True)
class ScenarioDetail:
    """Per-scenario filter catalogue produced at ingestion."""
    scenario_id: str
    filters: FilterCatalogue = field(default_factory=FilterCatalogue)

    def to_dict(self) -> Dict[str, Any]:
        return {"scenarioId": self.scenario_id, "filters": self.filters.to_list()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioDetail":
        return cls(
            scenario_id=str(data["scenarioId"]).lower(),
            filters=FilterCatalogue.from_list(data.get("filters")),
        )


@dataclass(frozen=True)
class FeatureRecord:
    scenario_id: str
    feature_id: int
    summary: Dict[str, Any] = field(default_factory=dict)
    filter_values: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Country:
    id: str
    name: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {**self.extra, "id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Country":
        extra = {k: v for k, v in data.items() if k not in ("id", "name")}
        return cls(id=str(data["id"]).lower(), name=str(data.get("name", "")), extra=extra)


# ---------------------------------------------------------------------------
# Client filter request
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FilterRequest:
    """
    Raw client request. `year` and `filters` are validated by the compiler,
    so they stay untyped here.
    """
    year: Any = None
    filters: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterRequest":
        return cls(year=data.get("year"), filters=data.get("filters"))


def parse_filter_request_json(payload: Union[str, Dict[str, Any]]) -> FilterRequest:
    """
    Accept a JSON string or dict and return a FilterRequest.
    """
    data = json.loads(payload) if isinstance(payload, str) else payload
    return FilterRequest.from_dict(data or {})


# ---------------------------------------------------------------------------
# Public exports
# ---------------------------------------------------------------------------

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
]
