# src/taskboard/tasks/errors.py

from __future__ import annotations


class TaskboardError(Exception):
    """Base class for errors raised by the task core."""


class NotFoundError(TaskboardError):
    """Update/delete target id is not in the collection. Never retried."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} not found")
        self.task_id = task_id


class StorageFault(TaskboardError):
    """Durable read/write failure. Absorbed by the store, never surfaced to callers."""


class TransientServiceFault(TaskboardError):
    """Simulated network failure of the task service. Retried by the query cache."""


class TaskValidationError(TaskboardError, ValueError):
    """Invalid task input. `errors` maps field name -> message."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(detail or "invalid task input")
