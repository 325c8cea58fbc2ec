# tests/test_intents.py

from __future__ import annotations

import time

import pytest

from todo_companion.interpreter.executor import CommandExecutor
from todo_companion.interpreter.fast_path import handle_fast_path
from todo_companion.interpreter.intents import DeadlineKind, IntentKind, classify
from todo_companion.tasks.task_models import TaskPriority, TaskStatus
from todo_companion.tasks.task_store import TaskStore


@pytest.mark.parametrize(
    ("prompt", "kind"),
    [
        ("show statistics for protectors notebook", IntentKind.STATISTICS),
        ("show stats for high priority tasks", IntentKind.STATISTICS),
        ("show high priority tasks", IntentKind.PRIORITY_LISTING),
        ("list upcoming tasks", IntentKind.DEADLINE_LISTING),
        ("add a high priority task to buy milk", IntentKind.TASK_CREATION),
        ("show done tasks", IntentKind.STATUS_LISTING),
        ("list my notebooks", IntentKind.NOTEBOOK_LISTING),
        ("move tappy-tf-shared to archived", IntentKind.TASK_MOVEMENT),
        ("change the status of task 85 to done", IntentKind.TASK_MOVEMENT),
        ("mark the audit task as done", IntentKind.TASK_MOVEMENT),
    ],
)
def test_classification_precedence(prompt: str, kind: IntentKind) -> None:
    intent = classify(prompt)
    assert intent is not None
    assert intent.kind is kind


@pytest.mark.parametrize("prompt", ["", "   ", "what's the weather like", "hello there"])
def test_unclassified_prompts(prompt: str) -> None:
    assert classify(prompt) is None


def test_intent_slots() -> None:
    stats = classify("show statistics for protectors notebook")
    assert stats is not None and stats.notebook_name == "protectors"

    prio = classify("list high priority tasks in notebook infra")
    assert prio is not None
    assert prio.priority is TaskPriority.HIGH
    assert prio.notebook_name == "infra"

    deadline = classify("show me overdue tasks")
    assert deadline is not None and deadline.deadline is DeadlineKind.OVERDUE

    listing = classify("show in progress tasks in infra notebook")
    assert listing is not None
    assert listing.list_status is TaskStatus.IN_PROGRESS
    assert listing.notebook_name == "infra"

    create = classify('Add a task "Buy milk" with low priority')
    assert create is not None
    assert create.title == "Buy milk"
    assert create.priority is TaskPriority.LOW

    move = classify("move tappy-tf-shared to archived")
    assert move is not None
    assert move.target_status is TaskStatus.ARCHIVED
    assert move.search_term == "tappy-tf-shared"


def _fast(prompt: str, store: TaskStore, executor: CommandExecutor) -> str | None:
    intent = classify(prompt)
    assert intent is not None
    return handle_fast_path(intent, prompt, store=store, executor=executor)


def test_fast_path_statistics(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    reply = _fast("show statistics for protectors notebook", seeded_store, executor)
    assert reply == "protectors: 3 tasks (todo: 3, in_progress: 0, done: 0, archived: 0)"


def test_fast_path_statistics_unknown_notebook(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    reply = _fast("show statistics for nowhere notebook", seeded_store, executor)
    assert reply == "Error: Notebook 'nowhere' not found."


def test_fast_path_priority_listing(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    reply = _fast("show high priority tasks", seeded_store, executor)
    assert reply is not None
    assert "#150" in reply
    assert "#152" not in reply

    assert _fast("show medium priority tasks", seeded_store, executor) == "No medium priority tasks found."


def test_fast_path_status_listing(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    reply = _fast("show in progress tasks", seeded_store, executor)
    assert reply == "infra:\n  #151 [in_progress] Upgrade kubernetes cluster (tags: kubernetes)"

    assert _fast("show done tasks", seeded_store, executor) == "No done tasks found."


def test_fast_path_notebook_listing(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    reply = _fast("list all notebooks", seeded_store, executor)
    assert reply == "Notebooks:\n  protectors (default): 3 tasks\n  infra: 4 tasks"


def test_fast_path_deadlines(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    infra = seeded_store.get_notebook("infra")
    assert infra is not None
    now = time.time()
    seeded_store.add_task(infra.id, title="soon", due_at=now + 3600)
    seeded_store.add_task(infra.id, title="next week", due_at=now + 5 * 24 * 3600)
    seeded_store.add_task(infra.id, title="late", due_at=now - 3600)
    seeded_store.add_task(infra.id, title="late but done", due_at=now - 3600, status=TaskStatus.DONE)

    upcoming = _fast("show upcoming tasks", seeded_store, executor)
    assert upcoming is not None
    assert upcoming.startswith("Upcoming tasks:")
    assert "soon" in upcoming and "next week" in upcoming
    assert "late" not in upcoming

    due = _fast("show due tasks", seeded_store, executor)
    assert due is not None
    assert "soon" in due and "next week" not in due

    overdue = _fast("show overdue tasks", seeded_store, executor)
    assert overdue is not None
    assert "late" in overdue and "late but done" not in overdue

    assert _fast("show overdue tasks in notebook protectors", seeded_store, executor) == "No overdue tasks."


def test_fast_path_creation(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    reply = _fast('add a high priority task "rotate keys" for infra', seeded_store, executor)
    assert reply is not None
    assert reply.startswith("Added task #")
    assert reply.endswith("'rotate keys' to notebook 'infra'.")

    infra = seeded_store.get_notebook("infra")
    assert infra is not None
    created = seeded_store.list_tasks(infra.id)[-1]
    assert created.title == "rotate keys"
    assert created.priority is TaskPriority.HIGH


def test_fast_path_creation_uses_default_notebook(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    reply = _fast("add a high priority task to buy milk", seeded_store, executor)
    assert reply is not None
    assert reply.endswith("'buy milk' to notebook 'protectors'.")


def test_fast_path_creation_defers_without_title(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    assert _fast("create a task", seeded_store, executor) is None


def test_fast_path_never_handles_movement(seeded_store: TaskStore, executor: CommandExecutor) -> None:
    assert _fast("move tappy-tf-shared to archived", seeded_store, executor) is None
    task = seeded_store.get_task(149)
    assert task is not None and task.status is TaskStatus.TODO
