# src/taskboard/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object per session, injectable into every component.
- Nothing required at import time; every value has a default.
- Timing knobs (staleness, gc, retry, latency) are configurable so tests and
  demos can run with instant delays.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKBOARD"

DEFAULT_STORAGE_KEY = "tasks-app-data"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str = "taskboard"
    log_level: str = "INFO"

    # ---- Local data paths ----
    data_dir: Path = Path(".local/taskboard")
    store_db_path: Path = Path(".local/taskboard/storage.sqlite3")
    storage_key: str = DEFAULT_STORAGE_KEY

    # ---- Query cache ----
    stale_time_seconds: float = 5 * 60.0
    gc_time_seconds: float = 10 * 60.0
    fetch_retries: int = 1
    retry_delay_seconds: float = 1.0

    # ---- Simulated service ----
    latency_min_seconds: float = 0.3
    latency_max_seconds: float = 0.8
    fetch_latency_seconds: float = 0.5
    fault_rate: float = 0.0
    request_timeout_seconds: float | None = None

    # ---- View ----
    page_size: int = 10

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskboard") or "taskboard"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskboard"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "storage.sqlite3")
        storage_key = _env(_k("STORAGE_KEY"), DEFAULT_STORAGE_KEY) or DEFAULT_STORAGE_KEY

        stale_time = _env_float(_k("STALE_TIME_SECONDS"), 5 * 60.0)
        gc_time = _env_float(_k("GC_TIME_SECONDS"), 10 * 60.0)
        fetch_retries = max(0, _env_int(_k("FETCH_RETRIES"), 1))
        retry_delay = max(0.0, _env_float(_k("RETRY_DELAY_SECONDS"), 1.0))

        latency_min = max(0.0, _env_float(_k("LATENCY_MIN_SECONDS"), 0.3))
        latency_max = max(latency_min, _env_float(_k("LATENCY_MAX_SECONDS"), 0.8))
        fetch_latency = max(0.0, _env_float(_k("FETCH_LATENCY_SECONDS"), 0.5))
        fault_rate = min(1.0, max(0.0, _env_float(_k("FAULT_RATE"), 0.0)))
        request_timeout = _env_optional_float(_k("REQUEST_TIMEOUT_SECONDS"))

        page_size = max(1, _env_int(_k("PAGE_SIZE"), 10))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            store_db_path=store_db_path,
            storage_key=storage_key,
            stale_time_seconds=stale_time,
            gc_time_seconds=gc_time,
            fetch_retries=fetch_retries,
            retry_delay_seconds=retry_delay,
            latency_min_seconds=latency_min,
            latency_max_seconds=latency_max,
            fetch_latency_seconds=fetch_latency,
            fault_rate=fault_rate,
            request_timeout_seconds=request_timeout,
            page_size=page_size,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
