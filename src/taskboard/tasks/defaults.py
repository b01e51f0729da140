# src/taskboard/tasks/defaults.py

"""
Default dataset.

Seeded into the store on first load and returned whenever persisted state is
missing, corrupt or unavailable.
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Iterable

from .task_models import Task, TaskStatus

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 9

# (id, title, description, status, dueDate, createdAt)
_SEED: tuple[tuple[str, str, str, TaskStatus, str, str], ...] = (
    (
        "1",
        "Set up project structure",
        "Create the initial project structure with all necessary folders and files "
        "for the Tasks Management application",
        TaskStatus.COMPLETED,
        "2025-07-15",
        "2025-07-08T10:00:00Z",
    ),
    (
        "2",
        "Implement authentication system",
        "Add comprehensive user authentication with login, registration, and session "
        "management functionality",
        TaskStatus.IN_PROGRESS,
        "2025-07-20",
        "2025-07-09T14:30:00Z",
    ),
    (
        "3",
        "Design database schema",
        "Create comprehensive database schema for all application entities including "
        "users, tasks, and relationships",
        TaskStatus.PENDING,
        "2025-07-25",
        "2025-07-10T09:15:00Z",
    ),
    (
        "4",
        "Write comprehensive unit tests",
        "Implement full test coverage for all core functionality including CRUD "
        "operations, authentication, and edge cases",
        TaskStatus.PENDING,
        "2025-07-30",
        "2025-07-10T11:45:00Z",
    ),
    (
        "5",
        "Deploy to production environment",
        "Set up CI/CD pipeline, configure production environment, and deploy the "
        "application with monitoring",
        TaskStatus.PENDING,
        "2025-08-05",
        "2025-07-10T16:20:00Z",
    ),
    (
        "6",
        "Implement real-time notifications",
        "Add WebSocket-based real-time notifications for task updates and team "
        "collaboration features",
        TaskStatus.PENDING,
        "2025-08-10",
        "2025-07-10T17:00:00Z",
    ),
    (
        "7",
        "Performance optimization",
        "Optimize application performance including code splitting, lazy loading, "
        "and caching strategies",
        TaskStatus.PENDING,
        "2025-08-15",
        "2025-07-10T18:30:00Z",
    ),
    (
        "8",
        "Create API documentation",
        "Write comprehensive API documentation using OpenAPI/Swagger with examples "
        "and best practices",
        TaskStatus.COMPLETED,
        "2025-07-12",
        "2025-07-08T09:00:00Z",
    ),
    (
        "9",
        "Setup monitoring and logging",
        "Implement application monitoring, error tracking, and structured logging "
        "for production environment",
        TaskStatus.IN_PROGRESS,
        "2025-07-28",
        "2025-07-09T13:20:00Z",
    ),
    (
        "10",
        "Mobile responsive design",
        "Ensure application is fully responsive and optimized for mobile devices "
        "and tablets",
        TaskStatus.COMPLETED,
        "2025-07-18",
        "2025-07-08T15:45:00Z",
    ),
    (
        "11",
        "Implement search functionality",
        "Add full-text search capabilities for tasks with filters and advanced "
        "search options",
        TaskStatus.PENDING,
        "2025-08-01",
        "2025-07-10T12:30:00Z",
    ),
    (
        "12",
        "Security audit and penetration testing",
        "Conduct comprehensive security assessment including vulnerability scanning "
        "and penetration testing",
        TaskStatus.PENDING,
        "2025-08-12",
        "2025-07-10T14:15:00Z",
    ),
    (
        "13",
        "User onboarding flow",
        "Design and implement guided user onboarding with tutorials and interactive "
        "elements",
        TaskStatus.IN_PROGRESS,
        "2025-07-22",
        "2025-07-09T11:00:00Z",
    ),
    (
        "14",
        "Data backup and recovery system",
        "Implement automated backup system with disaster recovery procedures and "
        "data retention policies",
        TaskStatus.PENDING,
        "2025-08-20",
        "2025-07-10T16:45:00Z",
    ),
    (
        "15",
        "Accessibility compliance (WCAG 2.1)",
        "Ensure application meets WCAG 2.1 AA standards for accessibility and screen "
        "reader compatibility",
        TaskStatus.PENDING,
        "2025-08-08",
        "2025-07-10T10:20:00Z",
    ),
    (
        "16",
        "Email notification system",
        "Implement email notifications for task deadlines, assignments, and status "
        "changes",
        TaskStatus.COMPLETED,
        "2025-07-14",
        "2025-07-08T12:15:00Z",
    ),
    (
        "17",
        "Team collaboration features",
        "Add team workspaces, task assignment, comments, and collaborative editing "
        "capabilities",
        TaskStatus.IN_PROGRESS,
        "2025-08-03",
        "2025-07-09T16:30:00Z",
    ),
    (
        "18",
        "Analytics and reporting dashboard",
        "Create comprehensive dashboard with task analytics, team productivity "
        "metrics, and custom reports",
        TaskStatus.PENDING,
        "2025-08-25",
        "2025-07-10T19:00:00Z",
    ),
    (
        "19",
        "Third-party integrations",
        "Integrate with popular tools like Slack, Microsoft Teams, and project "
        "management platforms",
        TaskStatus.PENDING,
        "2025-09-01",
        "2025-07-10T20:15:00Z",
    ),
    (
        "20",
        "Internationalization (i18n)",
        "Add multi-language support with localization for major languages and "
        "regional settings",
        TaskStatus.PENDING,
        "2025-09-15",
        "2025-07-10T21:30:00Z",
    ),
)


def default_tasks() -> list[Task]:
    """Fresh copy of the default dataset (the list is new; Tasks are immutable)."""
    return [
        Task(
            id=task_id,
            title=title,
            description=description,
            status=status,
            due_date=due_date,
            created_at=created_at,
            updated_at=created_at,
        )
        for task_id, title, description, status, due_date, created_at in _SEED
    ]


def generate_id(existing: Iterable[str] = ()) -> str:
    """Random 9-char base36 id, distinct from every id in `existing`."""
    taken = set(existing)
    while True:
        candidate = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))
        if candidate not in taken:
            return candidate
