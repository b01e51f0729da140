# src/taskboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, simulated service, query cache and list controller into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..query.cache import QueryCache
from ..query.hooks import TaskQueries
from ..tasks.task_service import TaskService
from ..tasks.task_store import TaskStore
from ..view.controller import TaskListController

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, **service_overrides) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    `service_overrides` are passed to TaskService (e.g. sleep=... for instant latency).
    """
    if settings is None:
        settings = get_settings()

    try:
        _ensure_local_dirs(settings)
    except OSError:
        # TaskStore degrades to in-memory defaults when the path is unusable.
        logger.exception("Failed to create local data dirs under %s", settings.data_dir)

    store = TaskStore(settings.store_db_path, key=settings.storage_key)
    service = TaskService.from_settings(store, settings, **service_overrides)

    cache_kwargs = {}
    if "sleep" in service_overrides:
        cache_kwargs["sleep"] = service_overrides["sleep"]
    cache = QueryCache.from_settings(settings, **cache_kwargs)

    queries = TaskQueries(cache, service, **cache_kwargs)

    state = AppState(
        settings=settings,
        store=store,
        service=service,
        cache=cache,
        queries=queries,
        controller=TaskListController(page_size=settings.page_size),
    )
    logger.debug("AppState created (db=%s)", settings.store_db_path)
    return state
