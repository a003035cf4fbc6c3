"""
Query-string decoding for the scenario listing endpoint.

Two encodings of `filters` are accepted:
  - a JSON array:  ?filters=[{"key":"Pop","min":10}]
  - bracket notation as produced by `qs.stringify`:
        ?filters[0][key]=Pop&filters[0][min]=10&filters[1][options][]=a
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Tuple
import json
import re

from .models import FilterRequest

_BRACKET_RE = re.compile(r"\[([^\[\]]*)\]")


def _split_key(raw: str) -> List[str]:
    head, sep, _ = raw.partition("[")
    if not sep or not head:
        return [raw]
    tail = raw[len(head):]
    parts = _BRACKET_RE.findall(tail)
    # trailing garbage after the brackets -> treat the whole thing as a plain key
    if "".join(f"[{p}]" for p in parts) != tail:
        return [raw]
    return [head] + parts


def _assign(node: Dict[str, Any], parts: List[str], value: str) -> None:
    part = parts[0]
    if part == "":
        part = str(len(node))  # `[]` appends
    if len(parts) == 1:
        existing = node.get(part)
        if existing is None:
            node[part] = value
        elif isinstance(existing, list):
            existing.append(value)
        elif isinstance(existing, dict):
            existing[str(len(existing))] = value
        else:
            node[part] = [existing, value]
        return
    child = node.get(part)
    if not isinstance(child, dict):
        child = {} if child is None else {"0": child}
        node[part] = child
    _assign(child, parts[1:], value)


def _listify(node: Any) -> Any:
    if isinstance(node, dict):
        node = {k: _listify(v) for k, v in node.items()}
        if node and all(k.isdigit() for k in node):
            return [node[k] for k in sorted(node, key=int)]
    return node


def parse_query_pairs(pairs: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """Decode (key, value) pairs with bracket notation into nested dicts/lists."""
    root: Dict[str, Any] = {}
    for key, value in pairs:
        _assign(root, _split_key(key), value)
    return _listify(root)


def parse_filter_request_query(pairs: Iterable[Tuple[str, str]]) -> FilterRequest:
    """
    Build a FilterRequest from raw query pairs. Shape errors are left for the
    compiler to report.
    """
    data = parse_query_pairs(pairs)
    filters = data.get("filters")
    if isinstance(filters, str):
        try:
            filters = json.loads(filters)
        except ValueError:
            pass
    year = data.get("year")
    if isinstance(year, list):
        year = year[-1] if year else None
    return FilterRequest(year=year, filters=filters)


__all__ = [
    "parse_query_pairs",
    "parse_filter_request_query",
]
