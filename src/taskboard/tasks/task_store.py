# src/taskboard/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from enum import StrEnum
from pathlib import Path

from ..config import DEFAULT_STORAGE_KEY
from .defaults import default_tasks
from .errors import StorageFault
from .task_models import Task

logger = logging.getLogger(__name__)


class LoadSource(StrEnum):
    """Where the last `load()` result came from."""

    STORED = "stored"
    SEEDED = "seeded"
    CORRUPT = "corrupt"
    UNAVAILABLE = "unavailable"


class TaskStore:
    """
    Durable key-value task store.

    The whole collection lives as one JSON array under a single key in a
    SQLite `kv` table (a local-storage style blob).

    Failure policy: never raise to callers.
    - missing blob   -> seed + persist the default dataset
    - corrupt blob   -> default dataset (the stored blob is left untouched)
    - storage broken -> save() is a no-op, load() returns an in-memory default

    Each method opens its own short-lived SQLite connection.
    """

    def __init__(
        self,
        db_path: str | Path | None = "storage.sqlite3",
        *,
        key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        self._db_path = Path(db_path) if db_path is not None else None
        self._key = key
        self._available = False
        self.last_load_source: LoadSource | None = None

        if self._db_path is None:
            logger.warning("TaskStore has no durable storage; using in-memory defaults")
            return

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
            self._available = True
        except (OSError, sqlite3.Error):
            logger.exception("TaskStore storage unavailable db=%s", self._db_path)
            return

        logger.info("TaskStore ready db=%s key=%s", self._db_path, self._key)

    @property
    def available(self) -> bool:
        return self._available

    @property
    def key(self) -> str:
        return self._key

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        if self._db_path is None:
            raise StorageFault("no durable storage configured")
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _read_blob(self) -> str | None:
        try:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (self._key,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageFault(f"read failed for key={self._key}") from e
        return None if row is None else str(row[0])

    def _write_blob(self, blob: str) -> None:
        try:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO kv(key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """,
                    (self._key, blob),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageFault(f"write failed for key={self._key}") from e

    @staticmethod
    def _decode(blob: str) -> list[Task]:
        data = json.loads(blob)
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON array, got {type(data).__name__}")
        return [Task.from_record(rec) for rec in data]

    # ---- public API ----

    def load(self) -> list[Task]:
        if not self._available:
            self.last_load_source = LoadSource.UNAVAILABLE
            return default_tasks()

        try:
            blob = self._read_blob()
        except StorageFault:
            logger.exception("TaskStore read failed; falling back to defaults")
            self.last_load_source = LoadSource.UNAVAILABLE
            return default_tasks()

        if blob is None:
            logger.info("TaskStore: no stored data, seeding defaults")
            tasks = default_tasks()
            self.save(tasks)
            self.last_load_source = LoadSource.SEEDED
            return tasks

        try:
            tasks = self._decode(blob)
        except (ValueError, KeyError, TypeError):
            logger.exception("TaskStore: stored blob is corrupt; falling back to defaults")
            self.last_load_source = LoadSource.CORRUPT
            return default_tasks()

        logger.debug("TaskStore loaded %d tasks", len(tasks))
        self.last_load_source = LoadSource.STORED
        return tasks

    def save(self, tasks: list[Task]) -> None:
        if not self._available:
            logger.debug("TaskStore unavailable; skipping save of %d tasks", len(tasks))
            return

        blob = json.dumps([t.to_record() for t in tasks], ensure_ascii=False)
        try:
            self._write_blob(blob)
        except StorageFault:
            logger.exception("TaskStore save failed (%d tasks)", len(tasks))
            return
        logger.debug("TaskStore saved %d tasks", len(tasks))

    def clear(self) -> None:
        if not self._available:
            return
        try:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM kv WHERE key = ?", (self._key,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error:
            logger.exception("TaskStore clear failed key=%s", self._key)
            return
        logger.info("TaskStore cleared key=%s", self._key)

    def write_raw(self, blob: str) -> None:
        """Overwrite the stored blob verbatim (import/repair tooling and tests)."""
        if not self._available:
            return
        try:
            self._write_blob(blob)
        except StorageFault:
            logger.exception("TaskStore raw write failed key=%s", self._key)
