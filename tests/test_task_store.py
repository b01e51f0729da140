# tests/test_task_store.py

from __future__ import annotations

import json
import sqlite3
from dataclasses import replace
from pathlib import Path

from taskboard.tasks.defaults import default_tasks
from taskboard.tasks.task_models import TaskStatus
from taskboard.tasks.task_store import LoadSource, TaskStore


def _raw_blob(db: Path, key: str = "tasks-app-data") -> str | None:
    conn = sqlite3.connect(str(db))
    try:
        row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return None if row is None else row[0]
    finally:
        conn.close()


def test_first_load_seeds_and_persists_defaults(tmp_path: Path) -> None:
    db = tmp_path / "storage.sqlite3"
    store = TaskStore(db)

    tasks = store.load()
    assert len(tasks) == 20
    assert store.last_load_source == LoadSource.SEEDED

    blob = _raw_blob(db)
    assert blob is not None
    records = json.loads(blob)
    assert [r["id"] for r in records] == [t.id for t in tasks]
    assert set(records[0]) == {
        "id",
        "title",
        "description",
        "status",
        "dueDate",
        "createdAt",
        "updatedAt",
    }

    assert store.load() == tasks
    assert store.last_load_source == LoadSource.STORED


def test_save_overwrites_and_clear_reseeds(store: TaskStore) -> None:
    tasks = store.load()
    changed = [replace(tasks[0], status=TaskStatus.PENDING, title="Renamed task")]
    store.save(changed)

    assert store.load() == changed

    store.clear()
    reloaded = store.load()
    assert store.last_load_source == LoadSource.SEEDED
    assert reloaded == default_tasks()


def test_corrupt_blob_falls_back_to_defaults_without_raising(tmp_path: Path) -> None:
    db = tmp_path / "storage.sqlite3"
    store = TaskStore(db)
    store.write_raw("{not json")

    assert store.load() == default_tasks()
    assert store.last_load_source == LoadSource.CORRUPT
    # the broken blob is left for inspection, not silently overwritten
    assert _raw_blob(db) == "{not json"


def test_blob_with_bad_record_counts_as_corrupt(store: TaskStore) -> None:
    store.write_raw(json.dumps([{"id": "1", "title": "x"}]))
    assert store.load() == default_tasks()
    assert store.last_load_source == LoadSource.CORRUPT

    store.write_raw(json.dumps({"tasks": []}))
    assert store.load() == default_tasks()
    assert store.last_load_source == LoadSource.CORRUPT


def test_unavailable_storage_degrades_to_in_memory_defaults(tmp_path: Path) -> None:
    # A directory cannot be opened as a SQLite database.
    broken = TaskStore(tmp_path)
    assert not broken.available

    broken.save([])
    assert broken.load() == default_tasks()
    assert broken.last_load_source == LoadSource.UNAVAILABLE
    broken.clear()

    memory_only = TaskStore(None)
    assert memory_only.load() == default_tasks()
    assert memory_only.last_load_source == LoadSource.UNAVAILABLE


def test_custom_key_is_isolated(tmp_path: Path) -> None:
    db = tmp_path / "storage.sqlite3"
    a = TaskStore(db, key="a")
    b = TaskStore(db, key="b")

    a.save(default_tasks()[:1])
    assert len(a.load()) == 1
    assert len(b.load()) == 20
