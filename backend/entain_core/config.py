from __future__ import annotations

import os
from dataclasses import dataclass


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got '{raw}'") from exc


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from exc


@dataclass
class Settings:
    """Endpoints and stores for the gateway and the backend services."""

    api_endpoint: str = "localhost:8000"
    racing_endpoint: str = "localhost:9000"
    sports_endpoint: str = "localhost:10000"
    racing_database_url: str = "sqlite+pysqlite:///db/racing.db"
    sports_database_url: str = "sqlite+pysqlite:///db/sports.db"
    seed_record_count: int = 100
    gateway_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            api_endpoint=os.getenv("API_ENDPOINT", defaults.api_endpoint),
            racing_endpoint=os.getenv("RACING_ENDPOINT", defaults.racing_endpoint),
            sports_endpoint=os.getenv("SPORTS_ENDPOINT", defaults.sports_endpoint),
            racing_database_url=os.getenv("RACING_DATABASE_URL", defaults.racing_database_url),
            sports_database_url=os.getenv("SPORTS_DATABASE_URL", defaults.sports_database_url),
            seed_record_count=_int_env("SEED_RECORD_COUNT", defaults.seed_record_count),
            gateway_timeout=_float_env("GATEWAY_TIMEOUT_SECONDS", defaults.gateway_timeout),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )


def split_endpoint(endpoint: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts, raising ``ValueError`` when malformed."""

    text = (endpoint or "").strip()
    if not text or "://" in text:
        raise ValueError(f"expected host:port, got '{endpoint}'")

    host, sep, port_text = text.rpartition(":")
    if not sep or not host or not port_text.isdigit():
        raise ValueError(f"expected host:port, got '{endpoint}'")

    port = int(port_text)
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in '{endpoint}'")
    return host.strip("[]"), port
