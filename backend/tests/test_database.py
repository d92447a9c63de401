from entain_core import RacesRepo
from entain_core.database import build_engine

from sample_data import RACE_ROWS, fixed_clock


def test_file_database_creates_parent_directory(tmp_path) -> None:
    path = tmp_path / "db" / "racing.db"
    engine = build_engine(f"sqlite+pysqlite:///{path}")
    try:
        repo = RacesRepo(engine, seed_rows=RACE_ROWS, clock=fixed_clock)
        repo.init()

        assert path.exists()
        assert len(repo.list()) == len(RACE_ROWS)
    finally:
        engine.dispose()


def test_file_database_survives_new_repository(tmp_path) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'racing.db'}"
    first = build_engine(url)
    RacesRepo(first, seed_rows=RACE_ROWS, clock=fixed_clock).init()
    first.dispose()

    second = build_engine(url)
    try:
        repo = RacesRepo(second, seed_count=50, clock=fixed_clock)
        repo.init()
        assert [race.id for race in repo.list()] == [1, 4, 5, 2, 3]
    finally:
        second.dispose()
