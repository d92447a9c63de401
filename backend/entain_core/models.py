from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from typing import List, Optional, Sequence


class Status(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


ORDER_DIRECTIONS = ("ASC", "DESC")


@dataclass
class ListFilter:
    """Restriction and ordering applied to a list query.

    ``ids`` restricts the grouping column (meeting for races, sport for
    events); an empty sequence means no restriction. ``order_by`` is only
    honoured when it is exactly ``"ASC"`` or ``"DESC"``.
    """

    ids: Sequence[int] = field(default_factory=list)
    visible_only: bool = False
    order_by: Optional[str] = None


@dataclass
class Race:
    id: int
    meeting_id: int
    name: str
    number: int
    visible: bool
    advertised_start_time: dt.datetime
    status: Status  # derived at read time, never stored


@dataclass
class Event:
    id: int
    sport_id: int
    name: str
    number: int
    visible: bool
    advertised_start_time: dt.datetime
    status: Status  # derived at read time, never stored


@dataclass
class ListRacesResponse:
    races: List[Race] = field(default_factory=list)


@dataclass
class ListEventsResponse:
    events: List[Event] = field(default_factory=list)
