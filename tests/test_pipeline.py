# tests/test_pipeline.py

from __future__ import annotations

import pytest

from taskboard.tasks.defaults import default_tasks
from taskboard.tasks.task_models import TaskStatus
from taskboard.view.pipeline import ALL, FilterSortState, SortBy, SortOrder, process

from .fakes import make_task

P, I, C = TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED


def test_due_date_ascending_example() -> None:
    tasks = [
        make_task("1", status=P, due_date="2025-01-10"),
        make_task("2", status=C, due_date="2025-01-05"),
    ]
    view = process(tasks, FilterSortState(status_filter=ALL, sort_by=SortBy.DUE_DATE, page_size=10))

    assert [t.id for t in view.page_items] == ["2", "1"]
    assert view.total_count == 2
    assert view.total_pages == 1


@pytest.mark.parametrize("status", [ALL, P, I, C])
def test_total_count_matches_status_filter(status) -> None:
    tasks = default_tasks()
    view = process(tasks, FilterSortState(status_filter=status, page_size=3))
    expected = len(tasks) if status == ALL else sum(1 for t in tasks if t.status == status)
    assert view.total_count == expected
    assert all(status == ALL or t.status == status for t in view.page_items)


def test_title_sort_is_case_insensitive() -> None:
    tasks = [make_task("a", title="banana"), make_task("b", title="Apple"), make_task("c", title="cherry")]
    asc = process(tasks, FilterSortState(sort_by=SortBy.TITLE))
    desc = process(tasks, FilterSortState(sort_by=SortBy.TITLE, sort_order=SortOrder.DESC))

    assert [t.id for t in asc.page_items] == ["b", "a", "c"]
    assert [t.id for t in desc.page_items] == ["c", "a", "b"]


def test_status_sort_uses_literal_ordering_and_is_stable() -> None:
    tasks = [
        make_task("p1", status=P),
        make_task("c1", status=C),
        make_task("p2", status=P),
        make_task("i1", status=I),
        make_task("c2", status=C),
    ]
    asc = process(tasks, FilterSortState(sort_by=SortBy.STATUS))
    desc = process(tasks, FilterSortState(sort_by=SortBy.STATUS, sort_order=SortOrder.DESC))

    # "completed" < "in_progress" < "pending"; equal keys keep input order both ways
    assert [t.id for t in asc.page_items] == ["c1", "c2", "i1", "p1", "p2"]
    assert [t.id for t in desc.page_items] == ["p1", "p2", "i1", "c1", "c2"]


def test_due_date_compares_calendar_time_not_text() -> None:
    tasks = [
        make_task("late", due_date="2025-01-10T08:00:00Z"),
        make_task("early", due_date="2025-01-10T07:00:00+00:00"),
        make_task("day", due_date="2025-01-09"),
    ]
    view = process(tasks, FilterSortState(sort_by=SortBy.DUE_DATE))
    assert [t.id for t in view.page_items] == ["day", "early", "late"]


def test_pages_cover_filtered_set_exactly_once() -> None:
    tasks = default_tasks()
    state = FilterSortState(sort_by=SortBy.TITLE, page_size=3)
    first = process(tasks, state)

    seen: list[str] = []
    for page in range(1, first.total_pages + 1):
        seen.extend(t.id for t in process(tasks, FilterSortState(sort_by=SortBy.TITLE, page_size=3, current_page=page)).page_items)

    assert first.total_pages == 7
    assert sorted(seen) == sorted(t.id for t in tasks)
    assert len(seen) == len(set(seen))


def test_page_past_end_is_empty_and_empty_input_has_zero_pages() -> None:
    tasks = default_tasks()
    view = process(tasks, FilterSortState(current_page=99, page_size=10))
    assert view.page_items == []
    assert view.total_pages == 2

    empty = process([], FilterSortState())
    assert empty.total_pages == 0
    assert empty.total_count == 0


def test_process_is_pure_and_idempotent() -> None:
    tasks = default_tasks()
    before = list(tasks)
    state = FilterSortState(status_filter=P, sort_by=SortBy.TITLE, sort_order=SortOrder.DESC, page_size=4)

    assert process(tasks, state) == process(tasks, state)
    assert tasks == before


def test_invalid_page_state_is_rejected() -> None:
    with pytest.raises(ValueError):
        FilterSortState(current_page=0)
    with pytest.raises(ValueError):
        FilterSortState(page_size=0)
