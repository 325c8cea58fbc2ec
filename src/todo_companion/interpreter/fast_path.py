# src/todo_companion/interpreter/fast_path.py

"""
Local handlers for classified intents.

A handler returns the rendered reply, or None to decline (the request then
continues to the model). Task movement always declines: its matches and target
status feed the model context instead.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..core.ports import TaskRepo
from ..tasks.task_models import Task, TaskStatus
from .actions import CreateTask, ListNotebooks, ListTasks, ShowStats
from .executor import CommandExecutor, ExecutionResult, format_task_line
from .extractor import determine_notebook_name
from .intents import DeadlineKind, Intent, IntentKind

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 3600
UPCOMING_WINDOW_SECONDS = 7 * DAY_SECONDS
DUE_WINDOW_SECONDS = DAY_SECONDS

FastPathHandler = Callable[[Intent, str, TaskRepo, CommandExecutor], "str | None"]


def _render(result: ExecutionResult) -> str:
    return result.message if result.ok else f"Error: {result.message}"


def _statistics(intent: Intent, prompt: str, store: TaskRepo, executor: CommandExecutor) -> str:
    return _render(executor.execute(ShowStats(notebook=intent.notebook_name)))


def _priority_listing(intent: Intent, prompt: str, store: TaskRepo, executor: CommandExecutor) -> str:
    priority = intent.priority.value if intent.priority else None
    result = executor.execute(ListTasks(notebook=intent.notebook_name, priority=priority))
    if result.ok and result.message == "No tasks found.":
        return f"No {priority} priority tasks found."
    return _render(result)


def _status_listing(intent: Intent, prompt: str, store: TaskRepo, executor: CommandExecutor) -> str:
    status = intent.list_status.value if intent.list_status else None
    result = executor.execute(ListTasks(notebook=intent.notebook_name, status=status))
    if result.ok and result.message == "No tasks found.":
        return f"No {status} tasks found."
    return _render(result)


def _notebook_listing(intent: Intent, prompt: str, store: TaskRepo, executor: CommandExecutor) -> str:
    return _render(executor.execute(ListNotebooks()))


def _deadline_matches(task: Task, kind: DeadlineKind, now: float) -> bool:
    if task.due_at is None or task.status in (TaskStatus.DONE, TaskStatus.ARCHIVED):
        return False
    if kind is DeadlineKind.OVERDUE:
        return task.due_at < now
    window = UPCOMING_WINDOW_SECONDS if kind is DeadlineKind.UPCOMING else DUE_WINDOW_SECONDS
    return now <= task.due_at <= now + window


def _deadline_listing(intent: Intent, prompt: str, store: TaskRepo, executor: CommandExecutor) -> str:
    kind = intent.deadline or DeadlineKind.UPCOMING
    now = time.time()

    if intent.notebook_name:
        nb = store.get_notebook(intent.notebook_name)
        if nb is None:
            return f"Error: Notebook '{intent.notebook_name}' not found."
        books = [nb]
    else:
        books = store.list_notebooks()

    hits: list[Task] = []
    for nb in books:
        hits.extend(t for t in store.list_tasks(nb.id) if _deadline_matches(t, kind, now))

    if not hits:
        return f"No {kind.value} tasks."
    hits.sort(key=lambda t: (t.due_at or 0.0, t.id))
    lines = [f"{kind.value.capitalize()} tasks:"]
    lines.extend(f"  {format_task_line(t, with_notebook=True)}" for t in hits)
    return "\n".join(lines)


def _task_creation(intent: Intent, prompt: str, store: TaskRepo, executor: CommandExecutor) -> str | None:
    if not intent.title:
        logger.debug("Fast path: creation without a title, deferring to the model")
        return None
    notebook = determine_notebook_name(prompt, store.list_notebooks())
    if notebook is None:
        logger.debug("Fast path: creation without a notebook, deferring to the model")
        return None

    action = CreateTask(
        title=intent.title,
        notebook=notebook,
        priority=intent.priority.value if intent.priority else None,
    )
    return _render(executor.execute(action))


def _task_movement(intent: Intent, prompt: str, store: TaskRepo, executor: CommandExecutor) -> None:
    return None


FAST_PATH_HANDLERS: dict[IntentKind, FastPathHandler] = {
    IntentKind.STATISTICS: _statistics,
    IntentKind.PRIORITY_LISTING: _priority_listing,
    IntentKind.DEADLINE_LISTING: _deadline_listing,
    IntentKind.TASK_CREATION: _task_creation,
    IntentKind.STATUS_LISTING: _status_listing,
    IntentKind.NOTEBOOK_LISTING: _notebook_listing,
    IntentKind.TASK_MOVEMENT: _task_movement,
}


def handle_fast_path(
    intent: Intent, prompt: str, *, store: TaskRepo, executor: CommandExecutor
) -> str | None:
    handler = FAST_PATH_HANDLERS[intent.kind]
    reply = handler(intent, prompt, store, executor)
    logger.debug("Fast path kind=%s handled=%s", intent.kind.value, reply is not None)
    return reply
