# src/taskboard/query/hooks.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..core.ports import TaskApi
from ..tasks.task_models import CreateTaskInput, Task, UpdateTaskInput
from .cache import TASKS_KEY, Listener, QueryCache, QueryEntry, QueryKey
from .mutations import CREATE_TASK, DELETE_TASK, UPDATE_TASK, MutationHandle
from .retry import RetryPolicy, Sleep

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueryResult:
    data: list[Task] | None
    is_loading: bool
    error: BaseException | None

    @property
    def tasks(self) -> list[Task]:
        return list(self.data or [])


class QueryObserver:
    """
    A subscribed reader of one cache entry (the `use_tasks()` handle).

    While open it keeps the entry alive (no gc). `close()` unsubscribes.

    With `fetch_on_open` and a running event loop, an initial load() is
    scheduled right away, so `is_loading` reflects the first fetch without
    the caller awaiting anything. `on_change` is called with the entry after
    every data, error or fetch-state change; `changes` counts them.
    """

    def __init__(
        self,
        cache: QueryCache,
        key: QueryKey = TASKS_KEY,
        *,
        on_change: Listener | None = None,
        fetch_on_open: bool = True,
    ) -> None:
        self._cache = cache
        self._key = key
        self._on_change = on_change
        self.changes = 0
        self._unsubscribe = cache.subscribe(key, self._changed)
        self._initial: asyncio.Task | None = None
        if fetch_on_open:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                self._initial = loop.create_task(self.load())

    def _changed(self, entry: QueryEntry) -> None:
        self.changes += 1
        if self._on_change is not None:
            self._on_change(entry)

    def _entry(self) -> QueryEntry:
        return self._cache.entry(self._key)

    @property
    def data(self) -> list[Task] | None:
        return self._cache.get_data(self._key)

    @property
    def error(self) -> BaseException | None:
        return self._entry().error

    @property
    def is_fetching(self) -> bool:
        return self._entry().is_fetching

    @property
    def is_loading(self) -> bool:
        entry = self._entry()
        return entry.data is None and entry.is_fetching

    def result(self) -> QueryResult:
        return QueryResult(data=self.data, is_loading=self.is_loading, error=self.error)

    async def load(self) -> QueryResult:
        """Fetch (respecting staleness) and return the resulting state. Never raises on fetch errors."""
        try:
            await self._cache.fetch(self._key)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("query load failed key=%s: %s", self._key, e)
        return self.result()

    async def refresh(self) -> QueryResult:
        try:
            await self._cache.refetch(self._key)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("query refresh failed key=%s: %s", self._key, e)
        return self.result()

    def close(self) -> None:
        if self._initial is not None and not self._initial.done():
            self._initial.cancel()
        self._unsubscribe()


class TaskQueries:
    """Binds a QueryCache to a TaskApi and hands out the read/mutation handles."""

    def __init__(
        self,
        cache: QueryCache,
        api: TaskApi,
        *,
        mutation_retry: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.cache = cache
        self.api = api
        self._mutation_retry = mutation_retry
        self._sleep = sleep
        cache.set_fetcher(TASKS_KEY, api.fetch_tasks)

    def use_tasks(
        self, *, on_change: Listener | None = None, fetch_on_open: bool = True
    ) -> QueryObserver:
        return QueryObserver(
            self.cache, TASKS_KEY, on_change=on_change, fetch_on_open=fetch_on_open
        )

    def use_create_task(self) -> MutationHandle[CreateTaskInput, Task]:
        return MutationHandle(
            self.cache, CREATE_TASK, self.api.create_task, retry=self._mutation_retry, sleep=self._sleep
        )

    def use_update_task(self) -> MutationHandle[UpdateTaskInput, Task]:
        return MutationHandle(
            self.cache, UPDATE_TASK, self.api.update_task, retry=self._mutation_retry, sleep=self._sleep
        )

    def use_delete_task(self) -> MutationHandle[str, None]:
        return MutationHandle(
            self.cache, DELETE_TASK, self.api.delete_task, retry=self._mutation_retry, sleep=self._sleep
        )
