# src/taskboard/view/pipeline.py

"""Filter -> sort -> paginate. Pure: the input list is never mutated."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from ..tasks.task_models import Task, TaskStatus, parse_iso

ALL: Literal["all"] = "all"

StatusFilter = TaskStatus | Literal["all"]


class SortBy(StrEnum):
    TITLE = "title"
    DUE_DATE = "due_date"
    STATUS = "status"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class FilterSortState:
    status_filter: StatusFilter = ALL
    sort_by: SortBy = SortBy.DUE_DATE
    sort_order: SortOrder = SortOrder.ASC
    current_page: int = 1
    page_size: int = 10

    def __post_init__(self) -> None:
        if self.current_page < 1:
            raise ValueError(f"current_page must be >= 1, got {self.current_page}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")


@dataclass(frozen=True, slots=True)
class TaskView:
    page_items: list[Task]
    total_count: int
    total_pages: int
    current_page: int


def _due_key(task: Task) -> tuple[int, float]:
    # Unparseable due dates sort after every valid one.
    try:
        return (0, parse_iso(task.due_date).timestamp())
    except ValueError:
        return (1, 0.0)


def sort_key(sort_by: SortBy):
    if sort_by == SortBy.TITLE:
        return lambda t: t.title.lower()
    if sort_by == SortBy.DUE_DATE:
        return _due_key
    if sort_by == SortBy.STATUS:
        return lambda t: t.status.value
    raise ValueError(f"unknown sort column: {sort_by!r}")


def filter_tasks(tasks: list[Task], status_filter: StatusFilter) -> list[Task]:
    if status_filter == ALL:
        return list(tasks)
    return [t for t in tasks if t.status == status_filter]


def sort_tasks(tasks: list[Task], sort_by: SortBy, sort_order: SortOrder) -> list[Task]:
    # sorted() is stable, and reverse=True keeps equal keys in input order.
    return sorted(tasks, key=sort_key(sort_by), reverse=sort_order == SortOrder.DESC)


def total_pages_for(count: int, page_size: int) -> int:
    return math.ceil(count / page_size) if count else 0


def paginate(tasks: list[Task], current_page: int, page_size: int) -> list[Task]:
    start = (current_page - 1) * page_size
    return tasks[start : start + page_size]


def process(tasks: list[Task], state: FilterSortState) -> TaskView:
    """
    Produce one page of the filtered, sorted collection.

    A page past the end yields an empty page; callers reset current_page
    whenever the filter or sort changes.
    """
    filtered = filter_tasks(tasks, state.status_filter)
    ordered = sort_tasks(filtered, state.sort_by, state.sort_order)
    return TaskView(
        page_items=paginate(ordered, state.current_page, state.page_size),
        total_count=len(filtered),
        total_pages=total_pages_for(len(filtered), state.page_size),
        current_page=state.current_page,
    )
