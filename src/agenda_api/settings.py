from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

DEFAULT_POLL_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/agenda.db'
    - AGENDA_STORAGE_KEY: name of the record holding the agenda collection. Default 'agenda_items'
    - REMINDER_POLL_INTERVAL_SECONDS: reminder scan cadence in seconds. Default 60
    - REMINDER_SCHEDULER_ENABLED: 'false' to disable the background reminder loop (default: true)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: loguru level name, 'INFO' by default
    """

    persistence_backend: str
    sqlite_db_path: str
    storage_key: str
    reminder_poll_interval_seconds: float
    reminder_scheduler_enabled: bool
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_interval(value: str) -> float:
    try:
        seconds = float(value.strip())
    except ValueError:
        return DEFAULT_POLL_INTERVAL_SECONDS
    if seconds <= 0:
        return DEFAULT_POLL_INTERVAL_SECONDS
    return seconds


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/agenda.db").strip(),
        storage_key=_get_env("AGENDA_STORAGE_KEY", "agenda_items").strip(),
        reminder_poll_interval_seconds=_parse_interval(
            _get_env("REMINDER_POLL_INTERVAL_SECONDS", str(DEFAULT_POLL_INTERVAL_SECONDS))
        ),
        reminder_scheduler_enabled=_parse_bool(_get_env("REMINDER_SCHEDULER_ENABLED", "true"), True),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
