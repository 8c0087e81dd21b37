"""
Aggregation functions over row collections: pure functions that never raise.

Missing, None and non-numeric cells count as 0 and every aggregation over
an empty collection returns 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from .loaders.utils import Row, display_str, to_number, typed_equal

logger = logging.getLogger(__name__)

MISSING_GROUP_KEY = "undefined"


@dataclass(frozen=True)
class Aggregation:
    field: str
    operation: str
    alias: str | None = None

    @property
    def key(self) -> str:
        return self.alias or f"{self.operation}_{self.field}"


def _values(rows: Iterable[Row], field: str) -> list[float]:
    return [to_number(row.get(field)) for row in rows]


def sum_field(rows: Sequence[Row], field: str) -> float:
    return sum(_values(rows, field))


def avg_field(rows: Sequence[Row], field: str) -> float:
    if not rows:
        return 0
    return sum_field(rows, field) / len(rows)


def max_field(rows: Sequence[Row], field: str) -> float:
    if not rows:
        return 0
    return max(_values(rows, field))


def min_field(rows: Sequence[Row], field: str) -> float:
    if not rows:
        return 0
    return min(_values(rows, field))


def count_field(rows: Sequence[Row], field: str | None = None, value=None) -> int:
    """Row count, or the number of rows where row[field] equals `value`.

    Equality is typed: 1 matches 1.0 but not "1" or True.
    """
    if not field:
        return len(rows)
    return sum(1 for row in rows if typed_equal(row.get(field), value))


def group_by(rows: Iterable[Row], field: str) -> dict[str, list[Row]]:
    """Partition rows by the string form of `field`.

    Keys keep first-occurrence order; rows keep input order within a group.
    Absent values group under "undefined".
    """
    groups: dict[str, list[Row]] = {}
    for row in rows:
        value = row.get(field)
        key = MISSING_GROUP_KEY if value is None else display_str(value)
        groups.setdefault(key, []).append(row)
    return groups


_AGGREGATORS = {
    "sum": sum_field,
    "avg": avg_field,
    "max": max_field,
    "min": min_field,
    "count": lambda rows, field: len(rows),
}


def aggregate(rows: Sequence[Row], field: str, operation: str) -> float:
    func = _AGGREGATORS.get(operation)
    if func is None:
        logger.warning("Unknown aggregation %r on field %r", operation, field)
        return 0
    return func(rows, field)


def group_and_aggregate(
    rows: Sequence[Row],
    group_field: str,
    aggregations: Iterable[Aggregation | dict],
) -> list[dict]:
    """One result row per group with the requested aggregations.

    Parameters
    ----------
    rows : Row collection.
    group_field : Column to partition on.
    aggregations : Aggregation objects or dicts with field, operation and
                   optional alias. Results are keyed by alias, defaulting to
                   "<operation>_<field>".

    Returns
    -------
    List of dicts: {"group": key, <alias>: value, ...}
    """
    requested = [a if isinstance(a, Aggregation) else Aggregation(**a) for a in aggregations]

    results = []
    for key, members in group_by(rows, group_field).items():
        result: dict = {"group": key}
        for agg in requested:
            result[agg.key] = aggregate(members, agg.field, agg.operation)
        results.append(result)
    return results
