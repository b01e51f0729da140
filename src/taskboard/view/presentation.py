# src/taskboard/view/presentation.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from ..tasks.task_models import Task, TaskStatus, parse_iso

STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "Pending",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.COMPLETED: "Completed",
}

ELLIPSIS = "..."


def is_overdue(due_date: str, now: datetime | None = None) -> bool:
    """due_date < now. Unparseable dates are never overdue."""
    try:
        due = parse_iso(due_date)
    except ValueError:
        return False
    return due < (now or datetime.now(UTC))


def is_displayed_overdue(task: Task, now: datetime | None = None) -> bool:
    """Completed tasks are never shown as overdue."""
    if task.status == TaskStatus.COMPLETED:
        return False
    return is_overdue(task.due_date, now)


def format_date(raw: str) -> str:
    """'2025-07-15' -> 'Jul 15, 2025'; unparseable input is returned as-is."""
    try:
        d = parse_iso(raw)
    except ValueError:
        return raw
    return f"{d.strftime('%b')} {d.day}, {d.year}"


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    pending: int
    in_progress: int
    completed: int


def task_stats(tasks: list[Task]) -> TaskStats:
    counts = {s: 0 for s in TaskStatus}
    for t in tasks:
        counts[t.status] += 1
    return TaskStats(
        total=len(tasks),
        pending=counts[TaskStatus.PENDING],
        in_progress=counts[TaskStatus.IN_PROGRESS],
        completed=counts[TaskStatus.COMPLETED],
    )


def visible_pages(current_page: int, total_pages: int, max_visible: int = 7) -> list[int | str]:
    """
    Page numbers for a paginator, with "..." for gaps.

    First and last pages are always shown once the window does not reach them.
    """
    if total_pages <= 1:
        return []
    if total_pages <= max_visible:
        return list(range(1, total_pages + 1))

    half = max_visible // 2
    start = max(1, current_page - half)
    end = min(total_pages, start + max_visible - 1)
    if end - start + 1 < max_visible:
        start = max(1, end - max_visible + 1)

    pages: list[int | str] = []
    if start > 1:
        pages.append(1)
        if start > 2:
            pages.append(ELLIPSIS)
    pages.extend(range(start, end + 1))
    if end < total_pages:
        if end < total_pages - 1:
            pages.append(ELLIPSIS)
        pages.append(total_pages)
    return pages
