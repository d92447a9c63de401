from __future__ import annotations

import datetime as dt
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

from .errors import MappingError
from .models import Status

RecordT = TypeVar("RecordT")

ROW_WIDTH = 6


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def derive_status(start: dt.datetime, now: dt.datetime) -> Status:
    """A record is CLOSED once its start time is strictly in the past."""

    if start < now:
        return Status.CLOSED
    return Status.OPEN


def to_timestamp(value: Any) -> dt.datetime:
    """Convert a stored start time into an aware UTC datetime.

    SQLite hands back ISO-8601 text, other drivers may return ``datetime``
    objects. Naive values are taken to be UTC.
    """

    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = dt.datetime.fromisoformat(text)
        except ValueError as exc:
            raise MappingError(f"invalid advertised_start_time '{value}'") from exc
    else:
        raise MappingError(f"unsupported advertised_start_time value {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def _as_int(value: Any, column: str) -> int:
    if isinstance(value, bool) or value is None:
        raise MappingError(f"column '{column}' expected an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise MappingError(f"column '{column}' expected an integer, got {value!r}") from exc


def _as_bool(value: Any, column: str) -> bool:
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    raise MappingError(f"column '{column}' expected a boolean, got {value!r}")


def scan_rows(
    rows: Iterable[Sequence[Any]],
    factory: Callable[..., RecordT],
    now: Optional[dt.datetime] = None,
) -> List[RecordT]:
    """Map ``(id, grouping id, name, number, visible, start)`` rows onto records.

    ``factory`` receives the mapped values positionally followed by the
    derived status. Every row in one scan is compared against the same
    instant so the statuses of a single response are consistent. Row order
    is preserved; no rows yields an empty list.
    """

    instant = now or utcnow()
    records: List[RecordT] = []

    for row in rows:
        if len(row) != ROW_WIDTH:
            raise MappingError(f"expected {ROW_WIDTH} columns, got {len(row)}")

        record_id, group_id, name, number, visible, start_raw = row
        if name is None:
            raise MappingError(f"record {record_id!r} has no name")

        start = to_timestamp(start_raw)
        records.append(
            factory(
                _as_int(record_id, "id"),
                _as_int(group_id, "grouping id"),
                str(name),
                _as_int(number, "number"),
                _as_bool(visible, "visible"),
                start,
                derive_status(start, instant),
            )
        )

    return records
