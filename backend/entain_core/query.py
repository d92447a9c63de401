from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .models import ORDER_DIRECTIONS, ListFilter


@dataclass(frozen=True)
class EntityTable:
    """Layout of a domain table: ``id``, grouping, name, sequence, visibility, start time."""

    name: str
    grouping_column: str
    sequence_column: str = "number"

    @property
    def columns(self) -> Tuple[str, ...]:
        return (
            "id",
            self.grouping_column,
            "name",
            self.sequence_column,
            "visible",
            "advertised_start_time",
        )

    def select_all(self) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.name}"


RACES_TABLE = EntityTable(name="races", grouping_column="meeting_id")
EVENTS_TABLE = EntityTable(name="events", grouping_column="sport_id")


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _predicates(table: EntityTable, list_filter: Optional[ListFilter]) -> Tuple[List[str], List[Any]]:
    clauses: List[str] = []
    args: List[Any] = []
    if list_filter is None:
        return clauses, args

    ids = list(list_filter.ids or [])
    if ids:
        clauses.append(f"{table.grouping_column} IN ({_placeholders(len(ids))})")
        args.extend(ids)

    if list_filter.visible_only:
        clauses.append("visible = true")

    return clauses, args


def _order_clause(list_filter: Optional[ListFilter]) -> str:
    clause = " ORDER BY advertised_start_time"
    direction = list_filter.order_by if list_filter is not None else None
    # Unknown directions fall back to the default ascending order.
    if direction in ORDER_DIRECTIONS:
        clause += f" {direction}"
    return clause


def apply_filter(
    table: EntityTable,
    query: str,
    list_filter: Optional[ListFilter],
    extra_clauses: Optional[List[str]] = None,
    extra_args: Optional[List[Any]] = None,
) -> Tuple[str, List[Any]]:
    """Append WHERE and ORDER BY clauses for ``list_filter`` to ``query``.

    Every caller-supplied value is bound as a ``?`` placeholder; only column
    names from ``table`` and the fixed order directions reach the SQL text.
    """

    clauses, args = _predicates(table, list_filter)
    clauses.extend(extra_clauses or [])
    args.extend(extra_args or [])

    if clauses:
        query += " WHERE " + " AND ".join(clauses)

    query += _order_clause(list_filter)
    return query, args


def list_query(table: EntityTable, list_filter: Optional[ListFilter] = None) -> Tuple[str, List[Any]]:
    return apply_filter(table, table.select_all(), list_filter)


def get_query(table: EntityTable, record_id: int) -> Tuple[str, List[Any]]:
    """Single-record lookup built on the list query, restricted by primary key."""

    return apply_filter(table, table.select_all(), None, ["id = ?"], [record_id])
