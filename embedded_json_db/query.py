from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from .errors import InvalidQueryTypeError, NotFoundError

COMPARE_OPS = {"eq", "gt", "lt", "gte", "lte"}
OPERATORS = COMPARE_OPS | {"contains", "regex"}
LOGICS = ("AND", "OR")


@dataclass(frozen=True)
class Query:
    """
    One predicate: entries of `table` whose `field` satisfies `op` against `value`.

        Query("people", "age", "gte", 18)
        Query("people", "tags", "contains", "admin")
        Query("people", "name", "regex", r"^An")
    """
    table: str
    field: str
    op: str
    value: Any = None

    def __post_init__(self) -> None:
        if not self.table or not self.field or not self.op:
            raise ValueError("Query: table, field and op are required")


def _comparable(v: Any) -> bool:
    return isinstance(v, (int, float, str, date)) and not isinstance(v, bool)


def _compare(op: str, val: Any, arg: Any) -> bool:
    if not _comparable(arg) or not _comparable(val):
        return False
    try:
        if op == "eq":
            return val == arg
        if op == "gt":
            return val > arg
        if op == "lt":
            return val < arg
        if op == "gte":
            return val >= arg
        if op == "lte":
            return val <= arg
    except TypeError:
        # e.g. number vs string, date vs datetime
        return False
    return False


def match_value(op: str, val: Any, arg: Any) -> bool:
    """Evaluate one operator against one field value. Never raises on bad data."""
    if op in COMPARE_OPS:
        return _compare(op, val, arg)
    if op == "contains":
        return isinstance(val, list) and arg in val
    if op == "regex":
        if not isinstance(val, str):
            return False
        if isinstance(arg, str):
            try:
                arg = re.compile(arg)
            except re.error:
                return False
        if not isinstance(arg, re.Pattern):
            return False
        return arg.search(val) is not None
    return False


def search(entries: Mapping[str, Dict[str, Any]], query: Query) -> Set[str]:
    """Linear scan: ids of entries matching a single predicate (empty set if none)."""
    found: Set[str] = set()
    for rid, entry in entries.items():
        if match_value(query.op, entry.get(query.field), query.value):
            found.add(rid)
    return found


def combine_and(sets: Sequence[Set[str]]) -> Set[str]:
    if not sets:
        return set()
    common = set(sets[0])
    for s in sets[1:]:
        if not common:
            break
        common &= s
    return common


def combine_or(sets: Iterable[Set[str]]) -> Set[str]:
    out: Set[str] = set()
    for s in sets:
        out |= s
    return out


def _as_query_list(queries: Union[Query, Sequence[Query]]) -> List[Query]:
    if isinstance(queries, Query):
        return [queries]
    if isinstance(queries, (list, tuple)):
        for q in queries:
            if not isinstance(q, Query):
                raise InvalidQueryTypeError("Queries must be instances of Query.")
        return list(queries)
    raise InvalidQueryTypeError(
        "Query parameter must be either a list of Query objects, or a single Query object."
    )


def evaluate(
    tables: Mapping[str, Dict[str, Dict[str, Any]]],
    queries: Union[Query, Sequence[Query]],
    logic: str = "AND",
    n: Optional[int] = None,
) -> Optional[Dict[str, Dict[str, Any]]]:
    """
    Run every query, combine the id sets with AND (intersection) or OR
    (union) and resolve them against the first query's table.

    Returns {id: entry} in table order, truncated to `n`, or None when
    nothing matched.
    """
    qs = _as_query_list(queries)
    if logic not in LOGICS:
        raise ValueError(f"logic must be one of {LOGICS}, got {logic!r}")
    if n is not None and n < 1:
        raise ValueError(f"n must be a positive count, got {n!r}")
    if not qs:
        return None

    found: List[Set[str]] = []
    for q in qs:
        if q.table not in tables:
            raise NotFoundError(f"Table {q.table!r} not found.")
        found.append(search(tables[q.table], q))

    ids = combine_and(found) if logic == "AND" else combine_or(found)
    if not ids:
        return None

    target = tables[qs[0].table]
    ret: Dict[str, Dict[str, Any]] = {}
    for rid, entry in target.items():
        if n is not None and len(ret) >= n:
            break
        if rid in ids:
            ret[rid] = entry
    return ret or None
