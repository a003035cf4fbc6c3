from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .predicates import (
    AndNode,
    FieldRef,
    MatchNode,
    OptionsNode,
    PredicateNode,
    PresentNode,
    RangeNode,
    Source,
)

# Physical layout of the feature table
SCENARIOS_TABLE = "SCENARIOS"
_COLUMN_NAMES = {
    "scenarioId": "SCENARIO_ID",
    "featureId": "FEATURE_ID",
}
_DOCUMENT_COLUMNS = {
    Source.SUMMARY: "SUMMARY",
    Source.FILTER_VALUES: "FILTER_VALUES",
}


def _quote_identifier(name: str) -> str:
    """
    Quote an identifier. Doubles internal quotes.
    """
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


class _ParamSink:
    """
    Collects params and returns the correct placeholder per paramstyle.
      - 'qmark'    -> ?, params is a list
      - 'pyformat' -> %(p1)s, params is a dict
    """
    def __init__(self, paramstyle: str = "pyformat", *, prefix: str = "p", start_index: int = 1):
        if paramstyle not in {"qmark", "pyformat"}:
            raise ValueError("paramstyle must be 'qmark' or 'pyformat'")
        self.paramstyle = paramstyle
        self.prefix = prefix
        self.next_idx = start_index
        self.params_list: List[Any] = []
        self.params_dict: Dict[str, Any] = {}

    def add(self, value: Any) -> str:
        if self.paramstyle == "qmark":
            self.params_list.append(value)
            return "?"
        else:
            name = f"{self.prefix}{self.next_idx}"
            self.next_idx += 1
            self.params_dict[name] = value
            return f"%({name})s"

    def bundle(self) -> Union[List[Any], Dict[str, Any]]:
        return self.params_list if self.paramstyle == "qmark" else self.params_dict


# -----------------------------------------------------------------------------
# Field expressions
# -----------------------------------------------------------------------------

def _raw_expr(ref: FieldRef, sink: _ParamSink) -> str:
    if ref.source == Source.COLUMN:
        try:
            return _COLUMN_NAMES[ref.key]
        except KeyError:
            raise ValueError(f"Unknown column: {ref.key}") from None
    doc = _DOCUMENT_COLUMNS[ref.source]
    return f"GET({doc}, {sink.add(ref.key)})"


def text_expr(ref: FieldRef, sink: _ParamSink) -> str:
    raw = _raw_expr(ref, sink)
    return raw if ref.source == Source.COLUMN else f"{raw}::STRING"


def number_expr(ref: FieldRef, sink: _ParamSink) -> str:
    if ref.source == Source.COLUMN:
        return _raw_expr(ref, sink)
    return f"TRY_TO_DOUBLE({text_expr(ref, sink)})"


def decimal_expr(ref: FieldRef, sink: _ParamSink) -> str:
    # exact sums; TRY_TO_DOUBLE would reintroduce float noise before rounding
    return f"TRY_TO_NUMBER({text_expr(ref, sink)}, 38, 10)"


# -----------------------------------------------------------------------------
# WHERE builder
# -----------------------------------------------------------------------------

def _build_node_sql(node: PredicateNode, sink: _ParamSink) -> str:
    if isinstance(node, AndNode):
        parts = [_build_node_sql(n, sink) for n in node.nodes]
        if not parts:
            return "1=1"
        if len(parts) == 1:
            return parts[0]
        return "(" + " AND ".join(parts) + ")"

    if isinstance(node, MatchNode):
        return f"{text_expr(node.field, sink)} = {sink.add(node.value)}"

    if isinstance(node, PresentNode):
        return f"{text_expr(node.field, sink)} IS NOT NULL"

    if isinstance(node, RangeNode):
        parts: List[str] = []
        if node.min is not None:
            parts.append(f"{number_expr(node.field, sink)} >= {sink.add(node.min)}")
        if node.max is not None:
            parts.append(f"{number_expr(node.field, sink)} <= {sink.add(node.max)}")
        if not parts:
            return "1=1"
        return parts[0] if len(parts) == 1 else "(" + " AND ".join(parts) + ")"

    if isinstance(node, OptionsNode):
        if not node.options:
            # IN () is always false
            return "1=0"
        col = text_expr(node.field, sink)
        phs = ", ".join(sink.add(str(v)) for v in node.options)
        return f"{col} IN ({phs})"

    raise ValueError(f"Unsupported predicate node: {type(node).__name__}")


def build_where_clause_and_params(
    node: PredicateNode,
    *,
    paramstyle: str = "pyformat",
    include_where_keyword: bool = True,
    sink: Optional[_ParamSink] = None,
) -> Tuple[str, Union[List[Any], Dict[str, Any]]]:
    """
    Returns (where_sql, params). If `include_where_keyword` is True,
    where_sql will be 'WHERE ...'; otherwise it's just the predicate text.
    """
    sink = sink or _ParamSink(paramstyle)
    body = _build_node_sql(node, sink)
    # drop outer parens for prettiness
    if body.startswith("(") and body.endswith(")"):
        body = body[1:-1]
    where_sql = f"WHERE {body}" if include_where_keyword else body
    return where_sql, sink.bundle()


# -----------------------------------------------------------------------------
# SELECT builders
# -----------------------------------------------------------------------------

@dataclass
class SelectBuildResult:
    sql: str
    params: Union[List[Any], Dict[str, Any]]


def build_select_features(
    node: PredicateNode,
    projection: Mapping[str, FieldRef],
    order_by: Optional[FieldRef] = None,
    *,
    paramstyle: str = "pyformat",
) -> SelectBuildResult:
    """
    SELECT <projection> FROM SCENARIOS WHERE <node> [ORDER BY <order_by>].
    Document fields are projected as text.
    """
    if not projection:
        raise ValueError("projection must name at least one field")
    sink = _ParamSink(paramstyle)
    cols = [
        f"{text_expr(ref, sink)} AS {_quote_identifier(alias)}"
        for alias, ref in projection.items()
    ]
    where_sql, _ = build_where_clause_and_params(node, sink=sink)
    sql = f"SELECT {', '.join(cols)} FROM {SCENARIOS_TABLE} {where_sql}"
    if order_by is not None:
        sql += f" ORDER BY {number_expr(order_by, sink)} ASC"
    return SelectBuildResult(sql=sql, params=sink.bundle())


def build_select_sums(
    node: PredicateNode,
    aggregate: Mapping[str, FieldRef],
    *,
    paramstyle: str = "pyformat",
) -> SelectBuildResult:
    """SELECT SUM(<field>) AS <alias>, ... FROM SCENARIOS WHERE <node>."""
    if not aggregate:
        raise ValueError("aggregate must name at least one field")
    sink = _ParamSink(paramstyle)
    cols = [
        f"SUM({decimal_expr(ref, sink)}) AS {_quote_identifier(alias)}"
        for alias, ref in aggregate.items()
    ]
    where_sql, _ = build_where_clause_and_params(node, sink=sink)
    return SelectBuildResult(sql=f"SELECT {', '.join(cols)} FROM {SCENARIOS_TABLE} {where_sql}", params=sink.bundle())


def build_bound_scan(
    scenario_id: str,
    key_sets: Mapping[str, Sequence[str]],
    *,
    paramstyle: str = "pyformat",
) -> Tuple[SelectBuildResult, Dict[str, Tuple[str, str]]]:
    """
    One query computing min/max of every range filter's representative value
    (lowest value across its storage keys) for a scenario.

    Returns the query and a map filter key -> (min alias, max alias). Aliases
    are positional so filter keys never become identifiers.
    """
    if not key_sets:
        raise ValueError("key_sets must name at least one filter")
    sink = _ParamSink(paramstyle)
    cols: List[str] = []
    aliases: Dict[str, Tuple[str, str]] = {}
    for idx, (fkey, skeys) in enumerate(key_sets.items()):
        casts = [number_expr(FieldRef.filter_value(k), sink) for k in skeys]
        rep = casts[0] if len(casts) == 1 else f"LEAST_IGNORE_NULLS({', '.join(casts)})"
        # the representative expression is rendered twice, so its params are bound twice
        casts_max = [number_expr(FieldRef.filter_value(k), sink) for k in skeys]
        rep_max = casts_max[0] if len(casts_max) == 1 else f"LEAST_IGNORE_NULLS({', '.join(casts_max)})"
        lo, hi = f"F{idx}_MIN", f"F{idx}_MAX"
        cols.append(f"MIN({rep}) AS {lo}")
        cols.append(f"MAX({rep_max}) AS {hi}")
        aliases[fkey] = (lo, hi)
    sql = f"SELECT {', '.join(cols)} FROM {SCENARIOS_TABLE} WHERE SCENARIO_ID = {sink.add(scenario_id)}"
    return SelectBuildResult(sql=sql, params=sink.bundle()), aliases


# -----------------------------------------------------------------------------
# Public exports
# -----------------------------------------------------------------------------
__all__ = [
    "SCENARIOS_TABLE",
    "text_expr",
    "number_expr",
    "decimal_expr",
    "build_where_clause_and_params",
    "build_select_features",
    "build_select_sums",
    "build_bound_scan",
    "SelectBuildResult",
]
