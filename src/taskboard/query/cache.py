# src/taskboard/query/cache.py

from __future__ import annotations

"""
Client-side query cache.

One QueryCache per session. Entries are keyed by a query key; the task list
lives under TASKS_KEY. Each entry keeps two views of the collection:

- base: the last server-confirmed collection,
- data: base with every outstanding optimistic mutation replayed on top.

Mutations push an op (see mutations.py); rollback drops only that op and
replays the rest, so a failed mutation never clobbers a later one.

Fetch rules:
- fresh data (younger than stale_time, no outstanding ops) is served as-is;
- concurrent fetches share the in-flight call;
- refetch()/invalidate() start a newer generation, and a result from an older
  generation is discarded when it arrives;
- failures are retried per RetryPolicy, then stored on the entry and raised,
  while the previous data stays in place.
"""

import asyncio
import functools
import logging
import time
import weakref
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .retry import RetryPolicy, Sleep

if TYPE_CHECKING:
    from ..tasks.task_models import Task
    from .mutations import MutationContext

logger = logging.getLogger(__name__)

QueryKey = tuple[str, ...]
TASKS_KEY: QueryKey = ("tasks", "list")

Fetcher = Callable[[], Awaitable[list["Task"]]]
Listener = Callable[["QueryEntry"], None]
Clock = Callable[[], float]


@dataclass(eq=False)
class QueryEntry:
    key: QueryKey
    base: list[Task] | None = None
    data: list[Task] | None = None
    error: BaseException | None = None
    updated_at: float | None = None
    invalidated: bool = False

    subscribers: int = 0
    inactive_since: float | None = None
    listeners: list[Listener] = field(default_factory=list)

    generation: int = 0
    settle_seq: int = 0
    ops: list[MutationContext] = field(default_factory=list)
    in_flight: asyncio.Task | None = None

    @property
    def is_fetching(self) -> bool:
        return self.in_flight is not None and not self.in_flight.done()

    def is_stale(self, now: float, stale_time: float) -> bool:
        # Outstanding optimistic ops are never "fresh": they must be reconciled first.
        if self.data is None or self.updated_at is None or self.invalidated or self.ops:
            return True
        return now - self.updated_at >= stale_time


class QueryCache:
    def __init__(
        self,
        *,
        stale_time: float = 5 * 60.0,
        gc_time: float = 10 * 60.0,
        retry: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._stale_time = float(stale_time)
        self._gc_time = float(gc_time)
        self._retry = retry or RetryPolicy()
        self._sleep = sleep
        self._clock = clock

        self._entries: dict[QueryKey, QueryEntry] = {}
        self._fetchers: dict[QueryKey, Fetcher] = {}
        self._record_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def from_settings(cls, settings, **overrides) -> QueryCache:
        kwargs = dict(
            stale_time=settings.stale_time_seconds,
            gc_time=settings.gc_time_seconds,
            retry=RetryPolicy.from_settings(settings),
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    # ---- entries ----

    def entry(self, key: QueryKey) -> QueryEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = QueryEntry(key=key, inactive_since=self._clock())
            self._entries[key] = entry
        return entry

    def set_fetcher(self, key: QueryKey, fetcher: Fetcher) -> None:
        self._fetchers[key] = fetcher

    def get_data(self, key: QueryKey = TASKS_KEY) -> list[Task] | None:
        entry = self._entries.get(key)
        if entry is None or entry.data is None:
            return None
        return list(entry.data)

    def set_data(self, key: QueryKey, data: list[Task]) -> None:
        """Replace the confirmed collection directly (outstanding ops are replayed on top)."""
        entry = self.entry(key)
        entry.base = list(data)
        entry.error = None
        self._touch(entry)
        self._rebuild(entry)

    # ---- subscriptions ----

    def subscribe(self, key: QueryKey, listener: Listener | None = None) -> Callable[[], None]:
        """Mark the entry as in use. Returns an idempotent unsubscribe callable."""
        entry = self.entry(key)
        entry.subscribers += 1
        entry.inactive_since = None
        if listener is not None:
            entry.listeners.append(listener)

        done = False

        def _unsubscribe() -> None:
            nonlocal done
            if done:
                return
            done = True
            entry.subscribers = max(0, entry.subscribers - 1)
            if listener is not None and listener in entry.listeners:
                entry.listeners.remove(listener)
            if entry.subscribers == 0:
                entry.inactive_since = self._clock()

        return _unsubscribe

    def _notify(self, entry: QueryEntry) -> None:
        for listener in list(entry.listeners):
            try:
                listener(entry)
            except Exception:
                logger.exception("cache listener failed key=%s", entry.key)

    # ---- fetching ----

    async def fetch(self, key: QueryKey = TASKS_KEY) -> list[Task]:
        """Serve fresh cached data, join an in-flight fetch, or start a new one."""
        entry = self.entry(key)
        if entry.data is not None and not entry.is_stale(self._clock(), self._stale_time):
            logger.debug("cache hit key=%s", key)
            return list(entry.data)

        if entry.is_fetching:
            logger.debug("joining in-flight fetch key=%s gen=%d", key, entry.generation)
            assert entry.in_flight is not None
            return await asyncio.shield(entry.in_flight)

        return await asyncio.shield(self._start_fetch(entry))

    async def refetch(self, key: QueryKey = TASKS_KEY) -> list[Task]:
        """Start a new fetch unconditionally; any older in-flight result gets discarded."""
        return await asyncio.shield(self._start_fetch(self.entry(key)))

    async def invalidate(self, key: QueryKey = TASKS_KEY, *, refetch: bool = True) -> None:
        """
        Mark the entry stale and, when it has subscribers, refetch it.

        Unused entries are only marked; the next fetch() picks them up.
        Refetch errors are logged, not raised.
        """
        entry = self._entries.get(key)
        if entry is None:
            return
        entry.invalidated = True
        self._notify(entry)
        if not refetch or entry.subscribers == 0 or key not in self._fetchers:
            return
        try:
            await self.refetch(key)
        except Exception as e:
            logger.warning("refetch after invalidate failed key=%s: %s", key, e)

    def _start_fetch(self, entry: QueryEntry) -> asyncio.Task:
        fetcher = self._fetchers.get(entry.key)
        if fetcher is None:
            raise LookupError(f"no fetcher registered for query key {entry.key!r}")

        entry.generation += 1
        gen = entry.generation
        started_seq = entry.settle_seq

        task = asyncio.ensure_future(self._run_fetch(entry, fetcher, gen, started_seq))
        entry.in_flight = task
        task.add_done_callback(functools.partial(self._fetch_done, entry))
        logger.debug("fetch started key=%s gen=%d", entry.key, gen)
        self._notify(entry)
        return task

    @staticmethod
    def _fetch_done(entry: QueryEntry, task: asyncio.Task) -> None:
        if entry.in_flight is task:
            entry.in_flight = None
        if not task.cancelled():
            # Mark the exception retrieved; waiters (if any) got it via shield().
            task.exception()

    async def _run_fetch(
        self, entry: QueryEntry, fetcher: Fetcher, gen: int, started_seq: int
    ) -> list[Task]:
        try:
            data = await self._retry.run(fetcher, sleep=self._sleep)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if gen == entry.generation:
                entry.error = e
                logger.warning("fetch failed key=%s gen=%d: %s", entry.key, gen, e)
                self._notify(entry)
                raise
            logger.debug("superseded fetch failed key=%s gen=%d: %s", entry.key, gen, e)
            return await self._latest(entry, e)

        if gen != entry.generation:
            logger.debug(
                "discarding superseded fetch result key=%s gen=%d current=%d",
                entry.key,
                gen,
                entry.generation,
            )
            return await self._latest(entry, None)

        self._commit_fetch(entry, data, started_seq)
        assert entry.data is not None
        return list(entry.data)

    async def _latest(self, entry: QueryEntry, error: Exception | None) -> list[Task]:
        newer = entry.in_flight
        if newer is not None and not newer.done() and newer is not asyncio.current_task():
            return await asyncio.shield(newer)
        if entry.data is not None:
            return list(entry.data)
        if error is not None:
            raise error
        raise LookupError(f"no data for query key {entry.key!r}")

    def _commit_fetch(self, entry: QueryEntry, data: list[Task], started_seq: int) -> None:
        # Ops confirmed before this fetch started are already reflected in `data`.
        entry.ops = [
            op
            for op in entry.ops
            if op.settled_seq is None or op.settled_seq > started_seq
        ]
        entry.base = list(data)
        entry.error = None
        entry.invalidated = False
        self._touch(entry)
        logger.debug("fetch committed key=%s items=%d ops=%d", entry.key, len(data), len(entry.ops))
        self._rebuild(entry)

    def _touch(self, entry: QueryEntry) -> None:
        entry.updated_at = self._clock()
        # Unused entries age from their last update, not from creation.
        if entry.subscribers == 0:
            entry.inactive_since = entry.updated_at

    def _rebuild(self, entry: QueryEntry) -> None:
        if entry.base is None:
            entry.data = None
        else:
            data = list(entry.base)
            for op in entry.ops:
                data = op.effect(data)
            entry.data = data
        self._notify(entry)

    # ---- optimistic ops (driven by MutationContext) ----

    def apply_optimistic(self, key: QueryKey, op: MutationContext) -> list[Task] | None:
        """
        Push `op` on top of the entry and return the pre-apply snapshot.

        Returns None (and applies nothing) when there is no cached data yet.
        Any in-flight fetch is superseded so it cannot overwrite the optimistic view.
        """
        entry = self.entry(key)
        if entry.data is None:
            return None
        snapshot = list(entry.data)
        entry.generation += 1
        entry.ops.append(op)
        self._rebuild(entry)
        return snapshot

    def confirm_optimistic(self, key: QueryKey, op: MutationContext) -> None:
        entry = self._entries.get(key)
        if entry is None or op not in entry.ops:
            return
        entry.settle_seq += 1
        op.settled_seq = entry.settle_seq
        self._rebuild(entry)

    def discard_optimistic(self, key: QueryKey, op: MutationContext) -> None:
        entry = self._entries.get(key)
        if entry is None or op not in entry.ops:
            return
        entry.ops.remove(op)
        self._rebuild(entry)

    def record_lock(self, record_id: str) -> asyncio.Lock:
        """Per-record lock: at most one authoritative write per record is in flight."""
        lock = self._record_locks.get(record_id)
        if lock is None:
            lock = asyncio.Lock()
            self._record_locks[record_id] = lock
        return lock

    # ---- gc / lifecycle ----

    def collect_garbage(self, now: float | None = None) -> list[QueryKey]:
        """Evict unsubscribed, idle entries inactive for at least gc_time."""
        now = self._clock() if now is None else now
        evicted: list[QueryKey] = []
        for key, entry in list(self._entries.items()):
            if entry.subscribers > 0 or entry.is_fetching or entry.ops:
                continue
            if entry.inactive_since is None or now - entry.inactive_since < self._gc_time:
                continue
            del self._entries[key]
            evicted.append(key)
        if evicted:
            logger.info("cache gc evicted %d entries: %s", len(evicted), evicted)
        return evicted

    async def run_gc_loop(self, *, interval_seconds: float = 60.0) -> None:
        """
        Periodic garbage collection.

        To stop the loop, cancel the coroutine/task.
        """
        sleep_s = max(0.01, float(interval_seconds))
        while True:
            try:
                self.collect_garbage()
            except Exception:
                logger.exception("cache gc failed")
            await asyncio.sleep(sleep_s)

    async def close(self) -> None:
        pending = [e.in_flight for e in self._entries.values() if e.in_flight is not None]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._entries.clear()
        logger.debug("cache closed")
