# tests/conftest.py

from __future__ import annotations

import random
from pathlib import Path

import pytest

from taskboard.config import Settings
from taskboard.tasks.task_service import TaskService
from taskboard.tasks.task_store import TaskStore

from .fakes import instant_sleep


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing at a tmp store, with every delay set to zero.

    Built directly rather than from the environment to keep tests isolated.
    """
    return Settings(
        data_dir=tmp_path,
        store_db_path=tmp_path / "storage.sqlite3",
        latency_min_seconds=0.0,
        latency_max_seconds=0.0,
        fetch_latency_seconds=0.0,
        retry_delay_seconds=0.0,
    )


@pytest.fixture()
def store(settings: Settings) -> TaskStore:
    return TaskStore(settings.store_db_path, key=settings.storage_key)


@pytest.fixture()
def service(store: TaskStore) -> TaskService:
    """Real service over a real SQLite store, with instant latency."""
    return TaskService(store, sleep=instant_sleep, rng=random.Random(7))
