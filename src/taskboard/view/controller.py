# src/taskboard/view/controller.py

from __future__ import annotations

from dataclasses import replace

from ..tasks.task_models import Task
from .pipeline import FilterSortState, SortBy, SortOrder, StatusFilter, TaskView, process


class TaskListController:
    """
    Filter/sort/page state for one task list view.

    Changing the filter or the sort always resets to page 1; only
    handle_page_change moves between pages.
    """

    def __init__(self, page_size: int = 10) -> None:
        self._initial = FilterSortState(page_size=page_size)
        self.state = self._initial

    def handle_sort(self, column: SortBy) -> None:
        column = SortBy(column)
        if self.state.sort_by == column:
            order = SortOrder.DESC if self.state.sort_order == SortOrder.ASC else SortOrder.ASC
        else:
            order = SortOrder.ASC
        self.state = replace(self.state, sort_by=column, sort_order=order, current_page=1)

    def set_sort(self, column: SortBy, order: SortOrder) -> None:
        self.state = replace(
            self.state, sort_by=SortBy(column), sort_order=SortOrder(order), current_page=1
        )

    def handle_filter_change(self, status_filter: StatusFilter) -> None:
        self.state = replace(self.state, status_filter=status_filter, current_page=1)

    def handle_page_change(self, page: int) -> None:
        self.state = replace(self.state, current_page=max(1, int(page)))

    def reset_filters(self) -> None:
        self.state = self._initial

    def view(self, tasks: list[Task]) -> TaskView:
        return process(tasks, self.state)
