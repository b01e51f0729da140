# src/taskboard/tasks/task_service.py

from __future__ import annotations

"""
Simulated remote task API.

Every call awaits an artificial network delay, then reads/writes the
TaskStore. The store never raises, so the only failures callers see are:
- NotFoundError on update/delete of a missing id,
- TaskValidationError on bad input,
- TransientServiceFault when fault injection is enabled (fetch only).
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import TypeVar

from ..core.ports import TaskRepo
from .defaults import default_tasks, generate_id
from .errors import NotFoundError, TransientServiceFault
from .task_models import CreateTaskInput, Task, UpdateTaskInput, next_timestamp, now_iso
from .validation import validate_create, validate_update

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TaskService:
    def __init__(
        self,
        store: TaskRepo,
        *,
        latency_min: float = 0.3,
        latency_max: float = 0.8,
        fetch_latency: float | None = 0.5,
        fault_rate: float = 0.0,
        timeout: float | None = None,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
        clock: Clock = _utc_now,
    ) -> None:
        self._store = store
        self._latency_min = max(0.0, float(latency_min))
        self._latency_max = max(self._latency_min, float(latency_max))
        self._fetch_latency = fetch_latency
        self._fault_rate = min(1.0, max(0.0, float(fault_rate)))
        self._timeout = timeout
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._clock = clock

    @classmethod
    def from_settings(cls, store: TaskRepo, settings, **overrides) -> TaskService:
        kwargs = dict(
            latency_min=settings.latency_min_seconds,
            latency_max=settings.latency_max_seconds,
            fetch_latency=settings.fetch_latency_seconds,
            fault_rate=settings.fault_rate,
            timeout=settings.request_timeout_seconds,
        )
        kwargs.update(overrides)
        return cls(store, **kwargs)

    # ---- helpers ----

    async def _delay(self, seconds: float | None = None) -> None:
        if seconds is None:
            seconds = self._rng.uniform(self._latency_min, self._latency_max)
        await self._sleep(seconds)

    async def _call(self, coro: Awaitable[T]) -> T:
        if self._timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout=self._timeout)

    # ---- API ----

    async def fetch_tasks(self) -> list[Task]:
        return await self._call(self._fetch_tasks())

    async def _fetch_tasks(self) -> list[Task]:
        await self._delay(self._fetch_latency)

        if self._fault_rate and self._rng.random() < self._fault_rate:
            logger.info("fetch_tasks: injected transient fault")
            raise TransientServiceFault("simulated network failure")

        try:
            tasks = self._store.load()
        except Exception:
            logger.exception("fetch_tasks: store load failed; returning defaults")
            return default_tasks()

        if not isinstance(tasks, list):
            logger.warning("fetch_tasks: store returned %s, not a list; returning defaults", type(tasks))
            return default_tasks()

        logger.debug("fetch_tasks -> %d tasks", len(tasks))
        return list(tasks)

    async def create_task(self, data: CreateTaskInput) -> Task:
        return await self._call(self._create_task(data))

    async def _create_task(self, data: CreateTaskInput) -> Task:
        await self._delay()
        clean = validate_create(data, now=self._clock())

        tasks = self._store.load()
        ts = now_iso(self._clock())
        task = Task(
            id=generate_id(t.id for t in tasks),
            title=clean.title,
            description=clean.description,
            status=clean.status,
            due_date=clean.due_date,
            created_at=ts,
            updated_at=ts,
        )
        self._store.save([*tasks, task])
        logger.info("Task created id=%s status=%s due=%s", task.id, task.status.value, task.due_date)
        return task

    async def update_task(self, data: UpdateTaskInput) -> Task:
        return await self._call(self._update_task(data))

    async def _update_task(self, data: UpdateTaskInput) -> Task:
        await self._delay()
        clean = validate_update(data)

        tasks = self._store.load()
        idx = next((i for i, t in enumerate(tasks) if t.id == clean.id), None)
        if idx is None:
            raise NotFoundError(clean.id)

        current = tasks[idx]
        merged = replace(
            current,
            **clean.changes(),
            updated_at=next_timestamp(current.updated_at, self._clock()),
        )
        tasks[idx] = merged
        self._store.save(tasks)
        logger.info("Task updated id=%s fields=%s", merged.id, sorted(clean.changes()))
        return merged

    async def delete_task(self, task_id: str) -> None:
        await self._call(self._delete_task(task_id))

    async def _delete_task(self, task_id: str) -> None:
        await self._delay()

        tasks = self._store.load()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            raise NotFoundError(task_id)

        self._store.save(remaining)
        logger.info("Task deleted id=%s", task_id)
