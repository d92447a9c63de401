from __future__ import annotations

import datetime as dt
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List

import pytest
from sqlalchemy.engine import Engine

from entain_core import EventsRepo, Found, ListFilter, MappingError, NotFound, RacesRepo, Status, StoreError
from entain_core.repository import RecordRepository

from sample_data import EVENT_ROWS, NOW, RACE_ROWS, fixed_clock


@pytest.fixture
def races(engine: Engine) -> RacesRepo:
    repo = RacesRepo(engine, seed_rows=RACE_ROWS, clock=fixed_clock)
    repo.init()
    return repo


def _ids(records) -> List[int]:
    return [record.id for record in records]


def test_list_without_filter_orders_by_start_time(races: RacesRepo) -> None:
    listed = races.list()

    assert _ids(listed) == [1, 4, 5, 2, 3]
    assert [race.status for race in listed] == [
        Status.CLOSED,
        Status.CLOSED,
        Status.OPEN,
        Status.OPEN,
        Status.OPEN,
    ]


def test_empty_filter_equals_unfiltered_list(races: RacesRepo) -> None:
    assert races.list(ListFilter()) == races.list()
    assert races.list(ListFilter(ids=[], visible_only=False)) == races.list(None)


def test_meeting_filter_only_returns_members(races: RacesRepo) -> None:
    listed = races.list(ListFilter(ids=[1, 3]))

    assert _ids(listed) == [1, 4, 3]
    assert all(race.meeting_id in {1, 3} for race in listed)


def test_visible_only_drops_hidden_races(races: RacesRepo) -> None:
    listed = races.list(ListFilter(visible_only=True))

    assert 2 not in _ids(listed)
    assert all(race.visible for race in listed)


def test_order_directions(races: RacesRepo) -> None:
    descending = races.list(ListFilter(order_by="DESC"))
    ascending = races.list(ListFilter(order_by="ASC"))
    unknown = races.list(ListFilter(order_by="sideways"))

    starts = [race.advertised_start_time for race in descending]
    assert starts == sorted(starts, reverse=True)
    assert ascending == races.list()
    assert unknown == races.list()


def test_status_flips_as_time_passes(engine: Engine) -> None:
    clock = {"now": NOW}
    repo = RacesRepo(engine, seed_rows=RACE_ROWS, clock=lambda: clock["now"])
    repo.init()

    assert isinstance(repo.get(3), Found)
    assert repo.get(3).record.status is Status.OPEN

    clock["now"] = NOW + dt.timedelta(hours=4)
    assert repo.get(3).record.status is Status.CLOSED


def test_get_returns_found_record(races: RacesRepo) -> None:
    outcome = races.get(4)

    assert isinstance(outcome, Found)
    assert outcome.record.name == "Caulfield R4"
    assert outcome.record.meeting_id == 3


def test_get_missing_record_is_not_found(races: RacesRepo) -> None:
    outcome = races.get(999)

    assert outcome == NotFound(id=999)


def test_list_before_init_raises_store_error(engine: Engine) -> None:
    repo = RacesRepo(engine, seed_rows=RACE_ROWS, clock=fixed_clock)

    with pytest.raises(StoreError, match="races"):
        repo.list()


def test_unparseable_stored_timestamp_raises_mapping_error(engine: Engine, races: RacesRepo) -> None:
    with engine.begin() as conn:
        conn.exec_driver_sql(
            "INSERT INTO races (id, meeting_id, name, number, visible, advertised_start_time) VALUES (?, ?, ?, ?, ?, ?)",
            (6, 1, "Broken R6", 6, 1, "next tuesday"),
        )

    with pytest.raises(MappingError):
        races.list()


def test_concurrent_init_seeds_once(engine: Engine) -> None:
    calls: List[int] = []
    barrier = threading.Barrier(12)

    class CountingRepo(RacesRepo):
        def seed(self) -> None:
            calls.append(1)
            time.sleep(0.05)
            super().seed()

    repo = CountingRepo(engine, seed_rows=RACE_ROWS, clock=fixed_clock)

    def call() -> str:
        barrier.wait()
        repo.init()
        return "ok"

    with ThreadPoolExecutor(max_workers=12) as pool:
        results = list(pool.map(lambda _: call(), range(12)))

    assert results == ["ok"] * 12
    assert len(calls) == 1
    assert len(repo.list()) == len(RACE_ROWS)

    repo.init()
    assert len(calls) == 1


def test_concurrent_init_shares_failure(engine: Engine) -> None:
    calls: List[int] = []
    barrier = threading.Barrier(10)

    class FailingRepo(RacesRepo):
        def seed(self) -> None:
            calls.append(1)
            time.sleep(0.05)
            raise StoreError("disk full")

    repo = FailingRepo(engine, clock=fixed_clock)

    def call() -> BaseException:
        barrier.wait()
        with pytest.raises(StoreError) as info:
            repo.init()
        return info.value

    with ThreadPoolExecutor(max_workers=10) as pool:
        errors = list(pool.map(lambda _: call(), range(10)))

    assert len(calls) == 1
    assert all(error is errors[0] for error in errors)

    with pytest.raises(StoreError, match="disk full"):
        repo.init()
    assert len(calls) == 1


def test_init_on_populated_table_keeps_existing_rows(engine: Engine, races: RacesRepo) -> None:
    other = RacesRepo(engine, seed_count=20, clock=fixed_clock)
    other.init()

    assert _ids(other.list()) == [1, 4, 5, 2, 3]


def test_generated_seed_rows(engine: Engine) -> None:
    repo = RacesRepo(engine, seed_count=25, clock=fixed_clock)
    repo.init()

    listed = repo.list()
    assert len(listed) == 25
    assert all(1 <= race.meeting_id <= 10 for race in listed)
    assert all(1 <= race.number <= 12 for race in listed)
    window = dt.timedelta(days=2)
    assert all(NOW - window <= race.advertised_start_time <= NOW + window for race in listed)


def test_events_repo_filters_by_sport(engine: Engine) -> None:
    repo = EventsRepo(engine, seed_rows=EVENT_ROWS, clock=fixed_clock)
    repo.init()

    listed = repo.list(ListFilter(ids=[7], order_by="DESC"))

    assert _ids(listed) == [10, 12]
    assert [event.status for event in listed] == [Status.OPEN, Status.OPEN]
    assert repo.get(11).record.status is Status.CLOSED


def test_past_and_future_races_end_to_end(engine: Engine) -> None:
    now = dt.datetime.now(dt.timezone.utc)
    rows = [
        (1, 4, "Past R1", 1, True, now - dt.timedelta(hours=1)),
        (2, 4, "Future R2", 2, True, now + dt.timedelta(hours=1)),
    ]
    repo = RacesRepo(engine, seed_rows=rows)
    repo.init()

    listed = repo.list(ListFilter(visible_only=True, order_by="DESC"))

    assert [race.name for race in listed] == ["Future R2", "Past R1"]
    assert [race.status for race in listed] == [Status.OPEN, Status.CLOSED]


def test_sub_second_start_is_kept(engine: Engine) -> None:
    now = dt.datetime(2026, 3, 1, 12, 0, 0, 900000, tzinfo=dt.timezone.utc)
    start = now + dt.timedelta(milliseconds=50)
    repo = RacesRepo(engine, seed_rows=[(1, 1, "Flemington R1", 1, True, start)], clock=lambda: now)
    repo.init()

    race = repo.get(1).record

    assert race.advertised_start_time == start
    assert race.status is Status.OPEN


def test_sub_second_starts_keep_chronological_order(engine: Engine) -> None:
    base = NOW - dt.timedelta(microseconds=1)
    rows = [
        (1, 1, "Flemington R1", 1, True, base + dt.timedelta(milliseconds=900)),
        (2, 1, "Randwick R2", 2, True, base + dt.timedelta(seconds=1)),
        (3, 1, "Ascot R3", 3, True, base + dt.timedelta(milliseconds=50)),
    ]
    repo = RacesRepo(engine, seed_rows=rows, clock=fixed_clock)
    repo.init()

    assert _ids(repo.list()) == [3, 1, 2]


def test_record_repository_requires_a_name_generator(engine: Engine) -> None:
    with pytest.raises(TypeError):
        RecordRepository(engine)
