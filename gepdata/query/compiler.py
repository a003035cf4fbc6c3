"""
Filter request validation and compilation.

A FilterRequest is checked against a model's filter catalogue and turned into
an AndNode of predicate nodes. Nothing from the request ever reaches a query
string directly; adapters bind every value as a parameter.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from ..errors import InvalidYear, MalformedFilters, MissingFilterValue, UnknownFilterKey
from ..filters import FilterCatalogue, FilterRequest
from ..values import as_text, to_number
from .predicates import AndNode, Column, FieldRef, MatchNode, OptionsNode, PresentNode, RangeNode

TECH_FIELD = "FinalElecCode"


class YearDefault(str, Enum):
    """Which timestep to use when the request carries no year."""
    FIRST = "first"
    LAST = "last"


# ---------------------------------------------------------------------------
# JSON Schema for the `filters` array items
# ---------------------------------------------------------------------------

_SCALAR = {"type": ["string", "number", "integer", "boolean"]}

FILTER_ITEM_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Scenario filter",
    "type": "object",
    "properties": {
        "key": {"type": ["string", "number", "integer"]},
        "min": {"type": ["string", "number", "integer"]},
        "max": {"type": ["string", "number", "integer"]},
        "options": {
            "oneOf": [
                {"type": "array", "items": _SCALAR},
                _SCALAR,
            ]
        },
    },
    "required": ["key"],
}

_ITEM_VALIDATOR = Draft202012Validator(FILTER_ITEM_SCHEMA)


@dataclass(frozen=True)
class CompiledPredicate:
    scenario_id: str
    year: Optional[int]
    node: AndNode

    @property
    def suffix(self) -> str:
        return "" if self.year is None else str(self.year)

    def summary_key(self, name: str) -> str:
        return f"{name}{self.suffix}"


def _coerce_year(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    raise ValueError(raw)


def resolve_year(timesteps: Sequence[int], requested: Any, default: YearDefault) -> Optional[int]:
    """
    Year to use for storage keys, or None when the model has no time dimension.
    """
    if not timesteps:
        return None
    if requested is None or requested == "":
        return timesteps[0] if default == YearDefault.FIRST else timesteps[-1]
    try:
        year = _coerce_year(requested)
    except ValueError:
        raise InvalidYear(requested, timesteps) from None
    if year not in timesteps:
        raise InvalidYear(requested, timesteps)
    return year


def _parse_bound(key: Any, name: str, raw: Any) -> Optional[float]:
    if raw is None:
        return None
    num = to_number(raw)
    if num is None:
        raise MalformedFilters(f'Filter [{key}] has a non-numeric "{name}" value [{raw}].')
    return num


def _check_shape(filters: Any) -> List[Dict[str, Any]]:
    if filters is None:
        return []
    if not isinstance(filters, (list, tuple)):
        raise MalformedFilters("Filters must be an Array.")
    for idx, item in enumerate(filters):
        error = best_match(_ITEM_VALIDATOR.iter_errors(item))
        if error is None:
            continue
        if error.validator == "required":
            raise MalformedFilters('Filter must include "key".')
        raise MalformedFilters(f"Invalid filter at position {idx}: {error.message}")
    return list(filters)


def compile_predicate(
    catalogue: FilterCatalogue,
    timesteps: Sequence[int],
    request: FilterRequest,
    scenario_id: str,
    *,
    default_year: YearDefault = YearDefault.FIRST,
) -> CompiledPredicate:
    """
    Validate `request` and compile it. The first violation found is raised as
    a FilterValidationError subclass.
    """
    year = resolve_year(timesteps, request.year, default_year)
    items = _check_shape(request.filters)

    suffix = "" if year is None else str(year)
    nodes: list = [
        MatchNode(FieldRef.column(Column.SCENARIO_ID), scenario_id),
        PresentNode(FieldRef.summary(f"{TECH_FIELD}{suffix}")),
    ]

    for item in items:
        key = item["key"]
        definition = catalogue.find_by_key(str(key))
        if definition is None:
            raise UnknownFilterKey(key)

        raw_min, raw_max, options = item.get("min"), item.get("max"), item.get("options")
        if options is not None and not isinstance(options, (list, tuple)):
            options = [options]
        if raw_min is None and raw_max is None and not options:
            raise MissingFilterValue(key)
        if options is not None and (raw_min is not None or raw_max is not None):
            raise MalformedFilters(f'Filter [{key}] must use either "options" or "min"/"max", not both.')

        field = FieldRef.filter_value(definition.storage_key(year))
        lo = _parse_bound(key, "min", raw_min)
        hi = _parse_bound(key, "max", raw_max)
        if lo is not None or hi is not None:
            nodes.append(RangeNode(field, min=lo, max=hi))
        if options:
            nodes.append(OptionsNode(field, tuple(as_text(o) for o in options)))

    return CompiledPredicate(scenario_id=scenario_id, year=year, node=AndNode(tuple(nodes)))


__all__ = [
    "TECH_FIELD",
    "YearDefault",
    "FILTER_ITEM_SCHEMA",
    "CompiledPredicate",
    "resolve_year",
    "compile_predicate",
]
