# tests/test_executor.py

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_companion.interpreter.actions import (
    ActionKind,
    CreateTask,
    GenerateImportJson,
    ListTasks,
    MoveTask,
    ShowStats,
)
from todo_companion.interpreter.errors import ActionValidationError
from todo_companion.interpreter.executor import CommandExecutor, parse_due_date, parse_task_id
from todo_companion.tasks.task_models import MatchedTask, TaskPriority, TaskStatus
from todo_companion.tasks.task_store import TaskStore


def test_every_action_kind_has_a_handler(executor: CommandExecutor) -> None:
    assert executor.handled_kinds == frozenset(ActionKind)


def test_execute_accepts_strings_mappings_and_actions(executor: CommandExecutor, seeded_store: TaskStore) -> None:
    results = executor.execute_all(
        [
            'task:move "infra" 150 in progress',
            {"type": "move_task", "notebook": "infra", "task_id": 152, "status": "done"},
            MoveTask(task_id=149, status="archive", notebook="infra"),
        ]
    )
    assert [r.ok for r in results] == [True, True, True]
    assert [r.kind for r in results] == [ActionKind.MOVE_TASK] * 3

    infra = seeded_store.get_notebook("infra")
    assert infra is not None
    statuses = {t.id: t.status for t in seeded_store.list_tasks(infra.id)}
    assert statuses[150] is TaskStatus.IN_PROGRESS
    assert statuses[152] is TaskStatus.DONE
    assert statuses[149] is TaskStatus.ARCHIVED


def test_failures_are_isolated(executor: CommandExecutor, seeded_store: TaskStore) -> None:
    results = executor.execute_all(
        [
            "task:fly 1",
            'task:move "nowhere" 1 done',
            'task:move "infra" 85 done',
            'task:move "infra" 150 sideways',
            'task:move "infra" 150 done',
        ]
    )
    assert [r.ok for r in results] == [False, False, False, False, True]
    assert results[0].message == "Unknown command: task:fly"
    assert results[0].kind is None
    assert results[1].message == "Notebook 'nowhere' not found."
    assert results[2].message == "Task 85 not found in notebook 'infra'."
    assert results[3].message.startswith("Invalid status 'sideways'")
    assert results[4].message == "Moved task #150 'Rotate docker credentials' from todo to done."


def test_unexpected_errors_become_internal_error_results(settings: SimpleNamespace, tmp_path: Path) -> None:
    class BrokenStore(TaskStore):
        def list_notebooks(self):  # type: ignore[override]
            raise RuntimeError("disk on fire")

    executor = CommandExecutor(BrokenStore(settings.tasks_db_path), export_dir=tmp_path)

    result = executor.execute("notebook:list")

    assert not result.ok
    assert result.message == "Internal error while executing an action."
    assert result.kind is ActionKind.LIST_NOTEBOOKS


def test_create_task_with_all_fields(executor: CommandExecutor, seeded_store: TaskStore) -> None:
    result = executor.execute(
        'task:add "infra" "Renew certificates" --description "before expiry" '
        '--priority medium --tags "tls, ops" --due_date "2099-03-01 09:30"'
    )
    assert result.ok, result.message

    infra = seeded_store.get_notebook("infra")
    assert infra is not None
    task = seeded_store.list_tasks(infra.id)[-1]
    assert task.title == "Renew certificates"
    assert task.description == "before expiry"
    assert task.priority is TaskPriority.MEDIUM
    assert task.tags == ["tls", "ops"]
    assert task.due_at is not None
    assert result.message == f"Added task #{task.id} 'Renew certificates' to notebook 'infra'."


def test_create_task_defaults_to_default_notebook(executor: CommandExecutor) -> None:
    result = executor.execute(CreateTask(title="Buy milk"))
    assert result.ok
    assert result.message.endswith("to notebook 'protectors'.")


@pytest.mark.parametrize(
    ("action", "message"),
    [
        (CreateTask(title="  "), "A task needs a title."),
        (CreateTask(title="x", priority="urgent"), "Invalid priority 'urgent'. Use high, medium or low."),
        (CreateTask(title="x", due_date="2001-01-01"), "Due date '2001-01-01' is in the past."),
        (CreateTask(title="x", due_date="not a date"), "Invalid due date 'not a date'. Use YYYY-MM-DD HH:MM."),
        (CreateTask(title="x", tags="bad;tag"), "tags may only contain letters, numbers, spaces, '-' and '_'"),
    ],
)
def test_create_task_validation(executor: CommandExecutor, action: CreateTask, message: str) -> None:
    result = executor.execute(action)
    assert not result.ok
    assert result.message == message


def test_create_task_without_any_notebook(store: TaskStore, settings: SimpleNamespace) -> None:
    executor = CommandExecutor(store, export_dir=settings.export_dir)
    result = executor.execute(CreateTask(title="x"))
    assert result.message == "No notebook given and no default notebook is set."


def test_delete_and_create_notebook(executor: CommandExecutor, seeded_store: TaskStore) -> None:
    assert executor.execute('task:delete "infra" 151').ok
    assert seeded_store.get_task(151) is None

    assert executor.execute('notebook:create "home"').message == "Created notebook 'home'."
    dup = executor.execute('notebook:create "HOME"')
    assert not dup.ok
    assert "already exists" in dup.message


def test_list_tasks_all_notebooks_and_filters(executor: CommandExecutor) -> None:
    everything = executor.execute(ListTasks()).message
    assert everything.splitlines()[0] == "protectors:"
    assert "infra:" in everything
    assert "  #152 [todo] Audit cluster images (priority: low, tags: docker,kubernetes)" in everything

    low = executor.execute(ListTasks(notebook="infra", priority="low")).message
    assert low == "infra:\n  #152 [todo] Audit cluster images (priority: low, tags: docker,kubernetes)"

    assert executor.execute(ListTasks(status="done")).message == "No tasks found."


def test_search(executor: CommandExecutor) -> None:
    found = executor.execute('task:search "kubernetes"').message
    assert found.splitlines()[0] == "Tasks matching 'kubernetes':"
    assert "#151" in found and "#152" in found

    assert executor.execute('task:search "redis"').message == "No tasks matching 'redis'."
    assert executor.execute('task:search "o_e"').message == "No tasks matching 'o_e'."
    assert not executor.execute("task:search").ok


def test_stats_across_notebooks(executor: CommandExecutor) -> None:
    lines = executor.execute(ShowStats()).message.splitlines()
    assert lines == [
        "protectors: 3 tasks (todo: 3, in_progress: 0, done: 0, archived: 0)",
        "infra: 4 tasks (todo: 3, in_progress: 1, done: 0, archived: 0)",
        "All notebooks: 7 tasks (todo: 6, in_progress: 1, done: 0, archived: 0)",
    ]


def test_apply_matched_moves(executor: CommandExecutor, seeded_store: TaskStore) -> None:
    matched = [
        MatchedTask("infra", 150, "Rotate docker credentials", TaskStatus.TODO),
        MatchedTask("infra", 151, "Upgrade kubernetes cluster", TaskStatus.IN_PROGRESS),
    ]
    results = executor.apply_matched_moves(matched, TaskStatus.IN_PROGRESS)
    assert [r.message for r in results] == [
        "Moved task #150 'Rotate docker credentials' from todo to in_progress.",
        "Task #151 'Upgrade kubernetes cluster' is already in_progress.",
    ]


def test_generate_import_json_from_notebook(executor: CommandExecutor, settings: SimpleNamespace) -> None:
    result = executor.execute(GenerateImportJson(notebook="infra", status="todo", filename="infra.json"))
    assert result.ok, result.message

    payload = json.loads((settings.export_dir / "infra.json").read_text("utf-8"))
    assert payload["name"] == "infra"
    assert [t["title"] for t in payload["tasks"]] == [
        "Migrate tappy-tf-shared",
        "Rotate docker credentials",
        "Audit cluster images",
    ]
    assert payload["tasks"][1]["priority"] == "high"


def test_generate_import_json_from_supplied_tasks(executor: CommandExecutor, settings: SimpleNamespace) -> None:
    result = executor.execute(
        {
            "type": "generate_import_json",
            "notebook": "protectors",
            "tasks": [
                {"title": "Ship it", "status": "in progress", "priority": "HIGH", "tags": "a, b"},
                {"title": "Old thing", "due_date": "2001-01-01 00:00"},
            ],
        }
    )
    assert result.ok, result.message

    files = list(settings.export_dir.glob("protectors_import_*.json"))
    assert len(files) == 1
    tasks = json.loads(files[0].read_text("utf-8"))["tasks"]
    assert tasks[0]["status"] == "in_progress"
    assert tasks[0]["priority"] == "high"
    assert tasks[0]["tags"] == "a,b"
    assert tasks[1]["status"] == "todo"
    assert tasks[1]["due_date"].startswith("2001-01-01")


def test_generate_import_json_rejects_untitled_tasks(executor: CommandExecutor) -> None:
    result = executor.execute(GenerateImportJson(notebook="infra", tasks=({"status": "done"},)))
    assert not result.ok
    assert result.message == "Every task in an import document needs a title."


def test_parse_helpers() -> None:
    assert parse_task_id("#42") == 42
    assert parse_task_id(7) == 7
    with pytest.raises(ActionValidationError):
        parse_task_id("abc")
    with pytest.raises(ActionValidationError):
        parse_task_id("\u00b2")

    assert parse_due_date(None) is None
    assert parse_due_date("2001-01-01", allow_past=True) is not None
    assert parse_due_date("2099-12-31T23:00:00+00:00") == pytest.approx(4102441200.0)
