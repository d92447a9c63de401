from __future__ import annotations

import abc
import datetime as dt
import logging
import random
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import StoreError
from .mapper import scan_rows, utcnow
from .models import Event, ListFilter, Race
from .query import EVENTS_TABLE, RACES_TABLE, EntityTable, get_query, list_query

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")

# (id, grouping id, name, number, visible, advertised start time)
SeedRow = Tuple[int, int, str, int, bool, dt.datetime]

DEFAULT_SEED_COUNT = 100
# Fixed width so text order matches time order.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

VENUES = ["Flemington", "Randwick", "Ascot", "Caulfield", "Eagle Farm", "Morphettville", "Ellerslie"]
TEAMS = ["Lions", "Swans", "Tigers", "Hawks", "Eagles", "Magpies", "Bulldogs", "Saints"]


@dataclass(frozen=True)
class Found(Generic[RecordT]):
    record: RecordT


@dataclass(frozen=True)
class NotFound:
    id: int


Lookup = Union[Found[RecordT], NotFound]


def format_timestamp(value: dt.datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(dt.timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


class RecordRepository(Generic[RecordT], abc.ABC):
    """Read access to one domain table plus its one-time seeding.

    ``init`` runs the seed step at most once per instance. Concurrent first
    callers wait on the instance lock and every caller sees the outcome of
    that single run, including a failure.
    """

    table: EntityTable
    record_type: Callable[..., RecordT]

    def __init__(
        self,
        engine: Engine,
        seed_rows: Optional[Sequence[SeedRow]] = None,
        seed_count: int = DEFAULT_SEED_COUNT,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.engine = engine
        self.seed_rows = seed_rows
        self.seed_count = seed_count
        self.clock = clock
        self._init_lock = threading.Lock()
        self._init_done = False
        self._init_error: BaseException | None = None

    def init(self) -> None:
        with self._init_lock:
            if not self._init_done:
                try:
                    self.seed()
                except Exception as exc:
                    self._init_error = exc
                finally:
                    self._init_done = True

        if self._init_error is not None:
            raise self._init_error

    def list(self, list_filter: Optional[ListFilter] = None) -> List[RecordT]:
        query, args = list_query(self.table, list_filter)
        return self._fetch(query, args)

    def get(self, record_id: int) -> Lookup[RecordT]:
        query, args = get_query(self.table, record_id)
        records = self._fetch(query, args)
        if not records:
            return NotFound(id=record_id)
        return Found(record=records[0])

    def _fetch(self, query: str, args: List[Any]) -> List[RecordT]:
        try:
            with self.engine.connect() as conn:
                rows = conn.exec_driver_sql(query, tuple(args)).fetchall()
        except SQLAlchemyError as exc:
            raise StoreError(f"query on {self.table.name} failed: {exc}") from exc
        return scan_rows(rows, self.record_type, now=self.clock())

    def seed(self) -> None:
        """Create the table and populate it with example records when empty."""

        columns = self.table.columns
        create = (
            f"CREATE TABLE IF NOT EXISTS {self.table.name} ("
            f"id INTEGER PRIMARY KEY, "
            f"{columns[1]} INTEGER, "
            f"name TEXT, "
            f"{columns[3]} INTEGER, "
            f"visible INTEGER, "
            f"advertised_start_time DATETIME)"
        )
        insert = f"INSERT INTO {self.table.name} ({', '.join(columns)}) VALUES (?, ?, ?, ?, ?, ?)"

        try:
            with self.engine.begin() as conn:
                conn.exec_driver_sql(create)
                existing = conn.exec_driver_sql(f"SELECT COUNT(*) FROM {self.table.name}").scalar()
                if existing:
                    logger.info("Table %s already holds %s rows; skipping seed", self.table.name, existing)
                    return

                rows = list(self.seed_rows) if self.seed_rows is not None else self.generate_rows()
                if rows:
                    conn.exec_driver_sql(
                        insert,
                        [
                            (record_id, group_id, name, number, visible, format_timestamp(start))
                            for record_id, group_id, name, number, visible, start in rows
                        ],
                    )
        except SQLAlchemyError as exc:
            raise StoreError(f"seeding {self.table.name} failed: {exc}") from exc

        logger.info("Seeded %s rows into %s", len(rows), self.table.name)

    def generate_rows(self) -> List[SeedRow]:
        now = self.clock()
        rng = random.Random()
        rows: List[SeedRow] = []
        for record_id in range(1, self.seed_count + 1):
            offset = dt.timedelta(minutes=rng.randint(-2 * 24 * 60, 2 * 24 * 60))
            number = rng.randint(1, 12)
            rows.append(
                (
                    record_id,
                    rng.randint(1, 10),
                    self.generate_name(rng, number),
                    number,
                    rng.random() < 0.5,
                    now + offset,
                )
            )
        return rows

    @abc.abstractmethod
    def generate_name(self, rng: random.Random, number: int) -> str:
        """Name for a generated seed record."""


class RacesRepo(RecordRepository[Race]):
    table = RACES_TABLE
    record_type = Race

    def generate_name(self, rng: random.Random, number: int) -> str:
        return f"{rng.choice(VENUES)} R{number}"


class EventsRepo(RecordRepository[Event]):
    table = EVENTS_TABLE
    record_type = Event

    def generate_name(self, rng: random.Random, number: int) -> str:
        home, away = rng.sample(TEAMS, 2)
        return f"{home} vs {away}"
