# src/taskboard/tasks/validation.py

"""Input validation for task create/update, plus status transition rules."""

from __future__ import annotations

from datetime import UTC, datetime

from .errors import TaskValidationError
from .task_models import CreateTaskInput, TaskStatus, UpdateTaskInput, parse_iso

TITLE_MIN = 3
TITLE_MAX = 100
DESCRIPTION_MIN = 10
DESCRIPTION_MAX = 500

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset(
        {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.PENDING}
    ),
    # reopening is allowed
    TaskStatus.COMPLETED: frozenset({TaskStatus.COMPLETED, TaskStatus.IN_PROGRESS}),
}


def _check_text(errors: dict[str, str], name: str, value: str, lo: int, hi: int) -> str:
    text = (value or "").strip()
    label = name.capitalize()
    if not text:
        errors[name] = f"{label} is required"
    elif len(text) < lo:
        errors[name] = f"{label} must be at least {lo} characters"
    elif len(text) > hi:
        errors[name] = f"{label} must not exceed {hi} characters"
    return text


def _check_due_date(
    errors: dict[str, str], value: str, *, allow_past: bool, now: datetime | None
) -> str:
    text = (value or "").strip()
    if not text:
        errors["due_date"] = "Due date is required"
        return text
    try:
        due = parse_iso(text)
    except ValueError:
        errors["due_date"] = "Invalid date format"
        return text
    if not allow_past:
        today = (now or datetime.now(UTC)).astimezone(UTC).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        if due < today:
            errors["due_date"] = "Due date cannot be in the past"
    return text


def validate_create(data: CreateTaskInput, *, now: datetime | None = None) -> CreateTaskInput:
    """Return a trimmed copy of `data` or raise TaskValidationError."""
    errors: dict[str, str] = {}
    title = _check_text(errors, "title", data.title, TITLE_MIN, TITLE_MAX)
    description = _check_text(
        errors, "description", data.description, DESCRIPTION_MIN, DESCRIPTION_MAX
    )
    status = data.status
    if not isinstance(status, TaskStatus):
        try:
            status = TaskStatus.parse(status)
        except TaskValidationError as e:
            errors.update(e.errors)
    due_date = _check_due_date(errors, data.due_date, allow_past=False, now=now)

    if errors:
        raise TaskValidationError(errors)
    return CreateTaskInput(title=title, description=description, status=status, due_date=due_date)


def validate_update(data: UpdateTaskInput) -> UpdateTaskInput:
    """
    Validate only the supplied fields.

    Past due dates are accepted on update so existing overdue tasks stay editable.
    """
    errors: dict[str, str] = {}
    if not (data.id or "").strip():
        errors["id"] = "Task ID is required"

    title = data.title
    if title is not None:
        title = _check_text(errors, "title", title, TITLE_MIN, TITLE_MAX)
    description = data.description
    if description is not None:
        description = _check_text(
            errors, "description", description, DESCRIPTION_MIN, DESCRIPTION_MAX
        )
    status = data.status
    if status is not None and not isinstance(status, TaskStatus):
        try:
            status = TaskStatus.parse(status)
        except TaskValidationError as e:
            errors.update(e.errors)
    due_date = data.due_date
    if due_date is not None:
        due_date = _check_due_date(errors, due_date, allow_past=True, now=None)

    if errors:
        raise TaskValidationError(errors)
    return UpdateTaskInput(
        id=data.id, title=title, description=description, status=status, due_date=due_date
    )


def validate_status_transition(current: TaskStatus, new: TaskStatus) -> str | None:
    """Return an error message if `current -> new` is not allowed, else None."""
    if new in ALLOWED_TRANSITIONS[current]:
        return None
    return f"Cannot change status from {current.value} to {new.value}"
