"""
SQLAlchemy engine construction for the racing and sports stores.

SQLite files get their parent directory created on demand; in-memory SQLite
uses ``StaticPool`` so every pooled connection sees the same database.
"""
from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

MEMORY_URL = "sqlite+pysqlite:///:memory:"


def build_engine(url: str) -> Engine:
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    database = parsed.database or ""
    if not database or database == ":memory:":
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    path = Path(database)
    if not path.parent.exists():
        logger.info("Creating database directory %s", path.parent)
        path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args={"check_same_thread": False})


def memory_engine() -> Engine:
    return build_engine(MEMORY_URL)
