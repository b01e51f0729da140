# src/taskboard/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from typing import Any

from .errors import TaskValidationError


class TaskStatus(StrEnum):
    """Task lifecycle status (the literal strings are the persisted form)."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: Any) -> TaskStatus:
        try:
            return cls(raw)
        except ValueError:
            raise TaskValidationError(
                {"status": "Status must be pending, in progress, or completed"}
            ) from None


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    title: str
    description: str
    status: TaskStatus
    due_date: str
    created_at: str
    updated_at: str

    def to_record(self) -> dict[str, str]:
        """Persisted / wire shape (camelCase keys, ISO strings)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "dueDate": self.due_date,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Task:
        """
        Build a Task from its persisted shape.

        Raises KeyError / ValueError / TypeError on malformed records; the store
        treats any of those as a corrupt blob.
        """
        if not isinstance(rec, dict):
            raise TypeError(f"task record must be an object, got {type(rec).__name__}")
        return cls(
            id=str(rec["id"]),
            title=str(rec["title"]),
            description=str(rec["description"]),
            status=TaskStatus(rec["status"]),
            due_date=str(rec["dueDate"]),
            created_at=str(rec["createdAt"]),
            updated_at=str(rec["updatedAt"]),
        )


@dataclass(slots=True, frozen=True)
class CreateTaskInput:
    title: str
    description: str
    status: TaskStatus
    due_date: str


@dataclass(slots=True, frozen=True)
class UpdateTaskInput:
    """Partial update: fields left as None are not touched."""

    id: str
    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    due_date: str | None = None

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "id" and getattr(self, f.name) is not None
        }


# ---- time helpers ----


def now_iso(now: datetime | None = None) -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision and 'Z'."""
    ts = now or datetime.now(UTC)
    return ts.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(raw: str) -> datetime:
    """
    Parse an ISO date or datetime string into an aware UTC datetime.

    Date-only strings ("2025-07-15") mean midnight UTC; naive datetimes are
    taken as UTC.
    """
    text = (raw or "").strip()
    if not text:
        raise ValueError("empty date")
    if len(text) == 10:
        d = date.fromisoformat(text)
        return datetime(d.year, d.month, d.day, tzinfo=UTC)
    ts = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def next_timestamp(previous: str | None, now: datetime | None = None) -> str:
    """Return now_iso(), bumped past `previous` so updated_at strictly increases."""
    ts = (now or datetime.now(UTC)).astimezone(UTC)
    if previous:
        try:
            prev = parse_iso(previous)
        except ValueError:
            prev = None
        if prev is not None and ts <= prev:
            ts = prev + timedelta(milliseconds=1)
    return now_iso(ts)
