from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Union

# ---------------------------------------------------------------------------
# Field references
# ---------------------------------------------------------------------------

class Source(str, Enum):
    COLUMN = "column"
    SUMMARY = "summary"
    FILTER_VALUES = "filterValues"


class Column(str, Enum):
    SCENARIO_ID = "scenarioId"
    FEATURE_ID = "featureId"


@dataclass(frozen=True)
class FieldRef:
    """
    A readable field of a feature record: a plain column, or a key inside
    one of the two JSON documents (`summary`, `filterValues`).
    """
    source: Source
    key: str

    @classmethod
    def column(cls, name: Column) -> "FieldRef":
        return cls(Source.COLUMN, Column(name).value)

    @classmethod
    def summary(cls, key: str) -> "FieldRef":
        return cls(Source.SUMMARY, key)

    @classmethod
    def filter_value(cls, key: str) -> "FieldRef":
        return cls(Source.FILTER_VALUES, key)


# ---------------------------------------------------------------------------
# Predicate nodes (closed set; adapters translate each variant)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MatchNode:
    """field = value"""
    field: FieldRef
    value: Any


@dataclass(frozen=True)
class PresentNode:
    """field is not null"""
    field: FieldRef


@dataclass(frozen=True)
class RangeNode:
    """min <= numeric(field) <= max; either bound may be open."""
    field: FieldRef
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class OptionsNode:
    """text(field) in options"""
    field: FieldRef
    options: Tuple[str, ...]


@dataclass(frozen=True)
class AndNode:
    nodes: Tuple["PredicateNode", ...] = ()


PredicateNode = Union[MatchNode, PresentNode, RangeNode, OptionsNode, AndNode]


__all__ = [
    "Source",
    "Column",
    "FieldRef",
    "MatchNode",
    "PresentNode",
    "RangeNode",
    "OptionsNode",
    "AndNode",
    "PredicateNode",
]
