"""
taskboard: client-side task management core.

Components:
- tasks/task_models.py: data structures (Task, TaskStatus, inputs)
- tasks/task_store.py: SQLite key-value blob store with fallback-to-defaults
- tasks/task_service.py: simulated remote API with artificial latency
- query/: query cache, optimistic mutations, read/mutation handles
- view/: filter/sort/paginate pipeline, list controller, presentation helpers
- cli/, connectors/: console front end
"""

__version__ = "0.1.0"
