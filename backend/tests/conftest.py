from __future__ import annotations

from typing import Iterator

import pytest
from sqlalchemy.engine import Engine

from entain_core.database import memory_engine


@pytest.fixture
def engine() -> Iterator[Engine]:
    eng = memory_engine()
    yield eng
    eng.dispose()
