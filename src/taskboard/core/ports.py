# src/taskboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The service and the query layer depend on Protocols instead of concrete
implementations, so the store/service can be swapped for fakes in tests.
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import CreateTaskInput, Task, UpdateTaskInput


class TaskRepo(Protocol):
    """Durable task collection (never raises)."""

    def load(self) -> list[Task]: ...
    def save(self, tasks: list[Task]) -> None: ...
    def clear(self) -> None: ...


class TaskApi(Protocol):
    """Remote task API as seen by the query cache."""

    async def fetch_tasks(self) -> list[Task]: ...
    async def create_task(self, data: CreateTaskInput) -> Task: ...
    async def update_task(self, data: UpdateTaskInput) -> Task: ...
    async def delete_task(self, task_id: str) -> None: ...
