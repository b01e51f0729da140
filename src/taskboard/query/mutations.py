# src/taskboard/query/mutations.py

from __future__ import annotations

"""
Optimistic mutations.

A MutationContext is one mutation invocation:
- apply():    push the optimistic effect into the cache, remember the snapshot
- commit():   keep the effect, swapped for the server-confirmed version
- rollback(): drop only this invocation's effect

MutationKind describes the three task mutations as pure list transforms, so the
snapshot/rollback discipline lives in one place (MutationHandle.mutate).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Generic, TypeVar

from ..tasks.defaults import generate_id
from ..tasks.errors import TaskValidationError
from ..tasks.task_models import (
    CreateTaskInput,
    Task,
    TaskStatus,
    UpdateTaskInput,
    next_timestamp,
    now_iso,
)
from .cache import TASKS_KEY, QueryCache, QueryKey
from .retry import RetryPolicy, Sleep

logger = logging.getLogger(__name__)

I = TypeVar("I")
R = TypeVar("R")

Transform = Callable[[list[Task]], list[Task]]


class MutationState(StrEnum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class MutationContext:
    def __init__(
        self,
        cache: QueryCache,
        key: QueryKey,
        optimistic: Transform,
        *,
        label: str = "mutation",
    ) -> None:
        self.cache = cache
        self.key = key
        self.label = label
        self.snapshot: list[Task] | None = None
        self.state = MutationState.PENDING
        self.applied = False
        self.settled_seq: int | None = None
        self._optimistic = optimistic
        self._confirmed: Transform | None = None

    def effect(self, tasks: list[Task]) -> list[Task]:
        return (self._confirmed or self._optimistic)(tasks)

    def apply(self) -> bool:
        self.snapshot = self.cache.apply_optimistic(self.key, self)
        self.applied = self.snapshot is not None
        if not self.applied:
            logger.debug("%s: no cached data, optimistic apply skipped", self.label)
        return self.applied

    def commit(self, confirmed: Transform | None = None) -> None:
        if self.state is not MutationState.PENDING:
            return
        self._confirmed = confirmed
        self.state = MutationState.COMMITTED
        if self.applied:
            self.cache.confirm_optimistic(self.key, self)

    def rollback(self) -> None:
        if self.state is not MutationState.PENDING:
            return
        self.state = MutationState.ROLLED_BACK
        if self.applied:
            self.cache.discard_optimistic(self.key, self)

    def __repr__(self) -> str:
        return f"MutationContext({self.label!r}, state={self.state.value})"


# ---- task list transforms ----


def _upsert(tasks: list[Task], task: Task) -> list[Task]:
    out = [task if t.id == task.id else t for t in tasks]
    if not any(t.id == task.id for t in tasks):
        out.append(task)
    return out


def _without(tasks: list[Task], task_id: str) -> list[Task]:
    return [t for t in tasks if t.id != task_id]


def _unchanged(tasks: list[Task]) -> list[Task]:
    return list(tasks)


def optimistic_create(data: CreateTaskInput, current: list[Task]) -> Transform:
    try:
        status = TaskStatus.parse(data.status)
    except TaskValidationError:
        # The service rejects it; there is nothing sensible to show meanwhile.
        return _unchanged
    ts = now_iso()
    provisional = Task(
        id=generate_id(t.id for t in current),
        title=data.title,
        description=data.description,
        status=status,
        due_date=data.due_date,
        created_at=ts,
        updated_at=ts,
    )
    return lambda tasks: [*tasks, provisional]


def confirmed_create(data: CreateTaskInput, result: Task) -> Transform:
    return lambda tasks: _upsert(tasks, result)


def optimistic_update(data: UpdateTaskInput, current: list[Task]) -> Transform:
    existing = next((t for t in current if t.id == data.id), None)
    ts = next_timestamp(existing.updated_at if existing else None)
    changes = data.changes()
    if "status" in changes:
        try:
            changes["status"] = TaskStatus.parse(changes["status"])
        except TaskValidationError:
            return _unchanged

    def _apply(tasks: list[Task]) -> list[Task]:
        return [replace(t, **changes, updated_at=ts) if t.id == data.id else t for t in tasks]

    return _apply


def confirmed_update(data: UpdateTaskInput, result: Task) -> Transform:
    return lambda tasks: [result if t.id == result.id else t for t in tasks]


def optimistic_delete(task_id: str, current: list[Task]) -> Transform:
    return lambda tasks: _without(tasks, task_id)


def confirmed_delete(task_id: str, result: Any) -> Transform:
    return lambda tasks: _without(tasks, task_id)


@dataclass(frozen=True, slots=True)
class MutationKind(Generic[I, R]):
    name: str
    optimistic: Callable[[I, list[Task]], Transform]
    confirmed: Callable[[I, R], Transform]
    record_id: Callable[[I], str | None]


CREATE_TASK: MutationKind[CreateTaskInput, Task] = MutationKind(
    name="create",
    optimistic=optimistic_create,
    confirmed=confirmed_create,
    record_id=lambda data: None,
)

UPDATE_TASK: MutationKind[UpdateTaskInput, Task] = MutationKind(
    name="update",
    optimistic=optimistic_update,
    confirmed=confirmed_update,
    record_id=lambda data: data.id,
)

DELETE_TASK: MutationKind[str, None] = MutationKind(
    name="delete",
    optimistic=optimistic_delete,
    confirmed=confirmed_delete,
    record_id=lambda task_id: task_id,
)


class MutationHandle(Generic[I, R]):
    """
    One mutation hook: call `mutate(input)`; watch `is_pending`, `data`, `error`.

    Every invocation gets its own MutationContext. Server writes for the same
    record are serialized through the cache's per-record lock; the optimistic
    apply itself happens immediately.
    """

    def __init__(
        self,
        cache: QueryCache,
        kind: MutationKind[I, R],
        call: Callable[[I], Awaitable[R]],
        *,
        key: QueryKey = TASKS_KEY,
        retry: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._kind = kind
        self._call = call
        self._key = key
        self._retry = retry or RetryPolicy.none()
        self._sleep = sleep
        self._pending = 0
        self.data: R | None = None
        self.error: BaseException | None = None

    @property
    def is_pending(self) -> bool:
        return self._pending > 0

    async def mutate(self, data: I) -> R:
        current = self._cache.get_data(self._key) or []
        record_id = self._kind.record_id(data)
        label = self._kind.name if record_id is None else f"{self._kind.name}:{record_id}"

        ctx = MutationContext(
            self._cache, self._key, self._kind.optimistic(data, current), label=label
        )
        ctx.apply()
        self._pending += 1
        try:
            result = await self._send(data, record_id)
        except asyncio.CancelledError:
            ctx.rollback()
            raise
        except Exception as e:
            ctx.rollback()
            self.error = e
            logger.warning("%s failed, optimistic change rolled back: %s", label, e)
            raise
        else:
            ctx.commit(self._kind.confirmed(data, result))
            self.data = result
            self.error = None
            logger.debug("%s confirmed", label)
            return result
        finally:
            self._pending -= 1
            await self._cache.invalidate(self._key)

    async def _send(self, data: I, record_id: str | None) -> R:
        async def _once() -> R:
            return await self._call(data)

        if record_id is None:
            return await self._retry.run(_once, sleep=self._sleep)
        async with self._cache.record_lock(record_id):
            return await self._retry.run(_once, sleep=self._sleep)
