# src/taskboard/core/state.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from ..query.cache import QueryCache
from ..query.hooks import QueryObserver, TaskQueries
from ..tasks.task_service import TaskService
from ..tasks.task_store import TaskStore
from ..view.controller import TaskListController

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    One session: store -> service -> cache, plus the list view state.

    Created once per session by the bootstrap and torn down with `close()`.
    Everything that needs the cache gets it from here; there is no module-level
    cache singleton.
    """

    settings: object

    store: TaskStore
    service: TaskService
    cache: QueryCache
    queries: TaskQueries
    controller: TaskListController

    tasks_query: QueryObserver | None = None
    gc_task: asyncio.Task | None = field(default=None, repr=False)
    closed: bool = False

    def start(self, *, gc_interval_seconds: float = 60.0) -> None:
        """Subscribe the list view and start cache gc. Needs a running event loop."""
        if self.tasks_query is None:
            self.tasks_query = self.queries.use_tasks(on_change=self._tasks_changed)
        if self.gc_task is None:
            self.gc_task = asyncio.create_task(
                self.cache.run_gc_loop(interval_seconds=gc_interval_seconds)
            )

    def _tasks_changed(self, entry) -> None:
        logger.debug(
            "task list changed: items=%s fetching=%s error=%s",
            None if entry.data is None else len(entry.data),
            entry.is_fetching,
            entry.error,
        )

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True

        if self.tasks_query is not None:
            self.tasks_query.close()
            self.tasks_query = None

        if self.gc_task is not None:
            self.gc_task.cancel()
            try:
                await self.gc_task
            except asyncio.CancelledError:
                pass
            self.gc_task = None

        await self.cache.close()
        logger.info("Session closed.")
