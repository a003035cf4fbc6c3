"""
Query module for the GEP data service.

This module provides predicate nodes, filter request compilation, and SQL
generation from predicate nodes.
"""

from .predicates import (
    Source,
    Column,
    FieldRef,
    MatchNode,
    PresentNode,
    RangeNode,
    OptionsNode,
    AndNode,
    PredicateNode,
)
from .compiler import (
    TECH_FIELD,
    YearDefault,
    FILTER_ITEM_SCHEMA,
    CompiledPredicate,
    resolve_year,
    compile_predicate,
)
from .builder import (
    build_where_clause_and_params,
    build_select_features,
    build_select_sums,
    build_bound_scan,
    SelectBuildResult,
)

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
    "TECH_FIELD",
    "YearDefault",
    "FILTER_ITEM_SCHEMA",
    "CompiledPredicate",
    "resolve_year",
    "compile_predicate",
    "build_where_clause_and_params",
    "build_select_features",
    "build_select_sums",
    "build_bound_scan",
    "SelectBuildResult",
]
