# src/taskboard/cli/commands.py

from __future__ import annotations

import contextlib
import logging
from collections.abc import Awaitable, Callable

from ..core.state import AppState
from ..tasks.errors import NotFoundError, TaskboardError, TaskValidationError
from ..tasks.task_models import CreateTaskInput, TaskStatus, UpdateTaskInput
from ..tasks.validation import validate_status_transition
from ..view.pipeline import ALL, SortBy, SortOrder
from ..view.presentation import (
    STATUS_LABELS,
    format_date,
    is_displayed_overdue,
    task_stats,
    visible_pages,
)

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)

_SORT_ALIASES = {
    "title": SortBy.TITLE,
    "due": SortBy.DUE_DATE,
    "duedate": SortBy.DUE_DATE,
    "due_date": SortBy.DUE_DATE,
    "status": SortBy.STATUS,
}

_EDIT_FIELDS = {"title", "description", "status", "due", "due_date"}


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return await handler(state, args, emit)
        except TaskValidationError as e:
            return "Invalid task:\n" + "\n".join(f"  {k}: {v}" for k, v in e.errors.items())
        except NotFoundError as e:
            return str(e)
        except TaskboardError as e:
            return f"Request failed: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _split_fields(args: list[str]) -> list[str]:
    return [p.strip() for p in " ".join(args).split("|")]


def _parse_status(raw: str) -> TaskStatus:
    return TaskStatus.parse(raw.strip().lower().replace(" ", "_").replace("-", "_"))


def _say(emit: CommandEmitter | None, text: str) -> None:
    if emit:
        with contextlib.suppress(Exception):
            emit(text)


async def _tasks(state: AppState):
    """Current collection via the session query (stale-while-error)."""
    query = state.tasks_query or state.queries.use_tasks(fetch_on_open=False)
    result = await query.load()
    if query is not state.tasks_query:
        query.close()
    return result


async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    result = await _tasks(state)
    if result.data is None:
        return f"Could not load tasks: {result.error}"

    view = state.controller.view(result.tasks)
    st = state.controller.state
    order = "asc" if st.sort_order == SortOrder.ASC else "desc"
    header = (
        f"Tasks (filter={st.status_filter}, sort={st.sort_by.value} {order}, "
        f"{view.total_count} match)"
    )
    lines = [header]
    if result.error is not None:
        lines.append(f"  [stale] last refresh failed: {result.error}")
    if not view.page_items:
        lines.append("  (no tasks on this page)")
    for t in view.page_items:
        flag = "  OVERDUE" if is_displayed_overdue(t) else ""
        lines.append(
            f"  {t.id:<10} {STATUS_LABELS[t.status]:<12} {format_date(t.due_date):<13} {t.title}{flag}"
        )
    if view.total_pages > 1:
        pages = " ".join(
            f"[{p}]" if p == st.current_page else str(p)
            for p in visible_pages(st.current_page, view.total_pages)
        )
        lines.append(f"Page {st.current_page} of {view.total_pages}: {pages}")
    return "\n".join(lines)


async def cmd_show(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /show <id>"
    result = await _tasks(state)
    task = next((t for t in result.tasks if t.id == args[0]), None)
    if task is None:
        return f"Task with id {args[0]} not found"
    return (
        f"{task.title}\n"
        f"  id:          {task.id}\n"
        f"  status:      {STATUS_LABELS[task.status]}\n"
        f"  due:         {format_date(task.due_date)}"
        f"{' (overdue)' if is_displayed_overdue(task) else ''}\n"
        f"  created:     {task.created_at}\n"
        f"  updated:     {task.updated_at}\n"
        f"  description: {task.description}"
    )


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add <title> | <description> | <status> | <due YYYY-MM-DD>
    """
    parts = _split_fields(args)
    if len(parts) != 4:
        return "Usage: /add <title> | <description> | <status> | <due YYYY-MM-DD>"
    title, description, status_raw, due = parts
    data = CreateTaskInput(
        title=title, description=description, status=_parse_status(status_raw), due_date=due
    )
    _say(emit, f"Creating '{title}'...")
    task = await state.queries.use_create_task().mutate(data)
    return f"Created task {task.id}: {task.title}"


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /edit <id> field=value | field=value ...
    fields: title, description, status, due
    """
    if len(args) < 2:
        return "Usage: /edit <id> field=value | field=value (fields: title, description, status, due)"
    task_id = args[0]
    changes: dict[str, str] = {}
    for part in _split_fields(args[1:]):
        name, sep, value = part.partition("=")
        name = name.strip().lower()
        if not sep or name not in _EDIT_FIELDS:
            return f"Bad field assignment: {part!r}"
        changes[name] = value.strip()

    data = UpdateTaskInput(
        id=task_id,
        title=changes.get("title"),
        description=changes.get("description"),
        status=_parse_status(changes["status"]) if "status" in changes else None,
        due_date=changes.get("due", changes.get("due_date")),
    )
    task = await state.queries.use_update_task().mutate(data)
    return f"Updated task {task.id}: {task.title}"


async def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/status <id> <pending|in_progress|completed>"""
    if len(args) != 2:
        return "Usage: /status <id> <pending|in_progress|completed>"
    task_id, new_status = args[0], _parse_status(args[1])

    result = await _tasks(state)
    current = next((t for t in result.tasks if t.id == task_id), None)
    if current is None:
        return f"Task with id {task_id} not found"
    problem = validate_status_transition(current.status, new_status)
    if problem:
        return problem

    task = await state.queries.use_update_task().mutate(UpdateTaskInput(id=task_id, status=new_status))
    return f"Task {task.id} is now {STATUS_LABELS[task.status]}"


async def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /delete <id>"
    await state.queries.use_delete_task().mutate(args[0])
    return f"Deleted task {args[0]}"


async def cmd_filter(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /filter <all|pending|in_progress|completed>"
    raw = args[0].lower()
    state.controller.handle_filter_change(ALL if raw == ALL else _parse_status(raw))
    return await cmd_list(state, [], emit)


async def cmd_sort(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /sort <column>        -> sort by column (same column toggles asc/desc)
    /sort <column> <dir>  -> explicit direction
    """
    if not args or args[0].lower() not in _SORT_ALIASES:
        return "Usage: /sort <title|due|status> [asc|desc]"
    column = _SORT_ALIASES[args[0].lower()]
    if len(args) > 1:
        try:
            order = SortOrder(args[1].lower())
        except ValueError:
            return "Sort direction must be asc or desc."
        state.controller.set_sort(column, order)
    else:
        state.controller.handle_sort(column)
    return await cmd_list(state, [], emit)


async def cmd_page(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /page <n|next|prev>"
    current = state.controller.state.current_page
    arg = args[0].lower()
    if arg == "next":
        page = current + 1
    elif arg in ("prev", "previous"):
        page = current - 1
    else:
        try:
            page = int(arg)
        except ValueError:
            return "Usage: /page <n|next|prev>"
    state.controller.handle_page_change(page)
    return await cmd_list(state, [], emit)


async def cmd_reset(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    state.controller.reset_filters()
    return await cmd_list(state, [], emit)


async def cmd_stats(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    result = await _tasks(state)
    s = task_stats(result.tasks)
    return (
        "Stats:\n"
        f"  Total Tasks: {s.total}\n"
        f"  Pending:     {s.pending}\n"
        f"  In Progress: {s.in_progress}\n"
        f"  Completed:   {s.completed}"
    )


async def cmd_refresh(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    _say(emit, "Refreshing...")
    query = state.tasks_query or state.queries.use_tasks(fetch_on_open=False)
    result = await query.refresh()
    if query is not state.tasks_query:
        query.close()
    if result.error is not None:
        return f"Refresh failed: {result.error}"
    return f"Refreshed: {len(result.tasks)} tasks."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show the current page of tasks.", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register(
    "add", cmd_add, help_text="Create: /add <title> | <description> | <status> | <due YYYY-MM-DD>."
)
registry.register("edit", cmd_edit, help_text="Edit: /edit <id> title=... | status=... | due=...")
registry.register("status", cmd_status, help_text="Change status: /status <id> <status>.")
registry.register("delete", cmd_delete, help_text="Delete: /delete <id>.", aliases=["rm"])
registry.register("filter", cmd_filter, help_text="Filter by status: /filter <all|status>.")
registry.register("sort", cmd_sort, help_text="Sort: /sort <title|due|status> [asc|desc].")
registry.register("page", cmd_page, help_text="Go to page: /page <n|next|prev>.")
registry.register("reset", cmd_reset, help_text="Reset filter, sort and page.")
registry.register("stats", cmd_stats, help_text="Task counts by status.")
registry.register("refresh", cmd_refresh, help_text="Refetch tasks from the service.")
