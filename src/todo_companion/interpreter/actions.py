# src/todo_companion/interpreter/actions.py

"""
Typed actions and the command grammar.

The same COMMAND_GRAMMAR table is rendered into the model prompt and drives
parse_command(), so the documented syntax and the parser cannot drift apart.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar, Union

from .errors import ActionValidationError


class ActionKind(StrEnum):
    CREATE_TASK = "create_task"
    MOVE_TASK = "move_task"
    DELETE_TASK = "delete_task"
    CREATE_NOTEBOOK = "create_notebook"
    LIST_TASKS = "list_tasks"
    SEARCH_TASKS = "search_tasks"
    LIST_NOTEBOOKS = "list_notebooks"
    SHOW_STATS = "show_stats"
    GENERATE_IMPORT_JSON = "generate_import_json"


@dataclass(frozen=True, slots=True)
class CreateTask:
    kind: ClassVar[ActionKind] = ActionKind.CREATE_TASK

    title: str | None
    notebook: str | None = None
    description: str | None = None
    priority: str | None = None
    tags: str | None = None
    due_date: str | None = None


@dataclass(frozen=True, slots=True)
class MoveTask:
    kind: ClassVar[ActionKind] = ActionKind.MOVE_TASK

    task_id: str | int | None
    status: str | None
    notebook: str | None = None


@dataclass(frozen=True, slots=True)
class DeleteTask:
    kind: ClassVar[ActionKind] = ActionKind.DELETE_TASK

    task_id: str | int | None
    notebook: str | None = None


@dataclass(frozen=True, slots=True)
class CreateNotebook:
    kind: ClassVar[ActionKind] = ActionKind.CREATE_NOTEBOOK

    name: str | None


@dataclass(frozen=True, slots=True)
class ListTasks:
    kind: ClassVar[ActionKind] = ActionKind.LIST_TASKS

    notebook: str | None = None
    status: str | None = None
    priority: str | None = None


@dataclass(frozen=True, slots=True)
class SearchTasks:
    kind: ClassVar[ActionKind] = ActionKind.SEARCH_TASKS

    query: str | None
    notebook: str | None = None


@dataclass(frozen=True, slots=True)
class ListNotebooks:
    kind: ClassVar[ActionKind] = ActionKind.LIST_NOTEBOOKS


@dataclass(frozen=True, slots=True)
class ShowStats:
    kind: ClassVar[ActionKind] = ActionKind.SHOW_STATS

    notebook: str | None = None


@dataclass(frozen=True, slots=True)
class GenerateImportJson:
    kind: ClassVar[ActionKind] = ActionKind.GENERATE_IMPORT_JSON

    notebook: str | None = None
    tasks: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)
    status: str | None = None
    filename: str | None = None


Action = Union[
    CreateTask,
    MoveTask,
    DeleteTask,
    CreateNotebook,
    ListTasks,
    SearchTasks,
    ListNotebooks,
    ShowStats,
    GenerateImportJson,
]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    name: str
    usage: str
    summary: str


COMMAND_GRAMMAR: tuple[CommandSpec, ...] = (
    CommandSpec(
        "task:add",
        'task:add "NOTEBOOK" "TITLE" [--description "TEXT"] [--priority high|medium|low] '
        '[--tags "tag1,tag2"] [--due_date "YYYY-MM-DD HH:MM"]',
        "Create a task (notebook may be omitted to use the default notebook).",
    ),
    CommandSpec(
        "task:list",
        'task:list "NOTEBOOK" [--status todo|in_progress|done|archived] [--priority high|medium|low]',
        "List the tasks of a notebook.",
    ),
    CommandSpec(
        "task:move",
        'task:move "NOTEBOOK" TASK_ID STATUS',
        "Change the status of one task.",
    ),
    CommandSpec(
        "task:delete",
        'task:delete "NOTEBOOK" TASK_ID',
        "Delete one task.",
    ),
    CommandSpec(
        "task:search",
        'task:search "QUERY" [--notebook "NOTEBOOK"]',
        "Search task titles, descriptions and tags.",
    ),
    CommandSpec("notebook:create", 'notebook:create "NAME"', "Create a notebook."),
    CommandSpec("notebook:list", "notebook:list", "List all notebooks."),
    CommandSpec("stats", 'stats ["NOTEBOOK"]', "Show task statistics."),
)

COMMAND_NAMES: frozenset[str] = frozenset(spec.name for spec in COMMAND_GRAMMAR)

_FLAG_OPTIONS = frozenset({"description", "priority", "tags", "due_date", "status", "notebook"})


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate positional args from --key value / --key=value options."""
    positional: list[str] = []
    options: dict[str, str] = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg.startswith("--") and len(arg) > 2:
            key, eq, value = arg[2:].partition("=")
            key = key.replace("-", "_").lower()
            if key not in _FLAG_OPTIONS:
                raise ActionValidationError(f"Unknown option --{key}.")
            if not eq:
                if i + 1 >= len(args):
                    raise ActionValidationError(f"Option --{key} needs a value.")
                i += 1
                value = args[i]
            options[key] = value
        else:
            positional.append(arg)
        i += 1
    return positional, options


def _tokenize(command: str) -> list[str]:
    text = (command or "").strip()
    if text.startswith("$"):
        text = text[1:].strip()
    try:
        tokens = shlex.split(text)
    except ValueError as e:
        raise ActionValidationError(f"Cannot parse command {command!r}: {e}") from e

    # Drop a leading program name ("todo-companion task:list ...").
    for skip in range(min(2, len(tokens))):
        if tokens[skip] in COMMAND_NAMES:
            return tokens[skip:]
    return tokens


def _is_numeric_id(token: str) -> bool:
    return token.isascii() and token.isdigit()


def parse_command(command: str) -> Action:
    """Parse one grammar string into a typed action."""
    tokens = _tokenize(command)
    if not tokens:
        raise ActionValidationError("Empty command.")

    name, args = tokens[0].lower(), tokens[1:]
    positional, opts = _split_options(args)

    if name == "task:add":
        if not positional:
            raise ActionValidationError("task:add needs a title.")
        if len(positional) == 1:
            notebook, title = None, positional[0]
        else:
            notebook, title = positional[0], " ".join(positional[1:])
        return CreateTask(
            title=title,
            notebook=notebook,
            description=opts.get("description"),
            priority=opts.get("priority"),
            tags=opts.get("tags"),
            due_date=opts.get("due_date"),
        )

    if name == "task:list":
        return ListTasks(
            notebook=positional[0] if positional else opts.get("notebook"),
            status=opts.get("status"),
            priority=opts.get("priority"),
        )

    if name == "task:move":
        if len(positional) >= 3 and not _is_numeric_id(positional[0]):
            return MoveTask(
                notebook=positional[0],
                task_id=positional[1],
                status=" ".join(positional[2:]),
            )
        if len(positional) >= 2 and _is_numeric_id(positional[0]):
            return MoveTask(notebook=None, task_id=positional[0], status=" ".join(positional[1:]))
        raise ActionValidationError("task:move needs NOTEBOOK TASK_ID STATUS.")

    if name == "task:delete":
        if len(positional) >= 2:
            return DeleteTask(notebook=positional[0], task_id=positional[1])
        if len(positional) == 1:
            return DeleteTask(notebook=None, task_id=positional[0])
        raise ActionValidationError("task:delete needs NOTEBOOK TASK_ID.")

    if name == "task:search":
        return SearchTasks(query=" ".join(positional) or None, notebook=opts.get("notebook"))

    if name == "notebook:create":
        return CreateNotebook(name=" ".join(positional) or None)

    if name == "notebook:list":
        return ListNotebooks()

    if name == "stats":
        return ShowStats(notebook=positional[0] if positional else None)

    raise ActionValidationError(f"Unknown command: {tokens[0]}")


_TYPE_ALIASES: dict[str, ActionKind] = {
    "create_task": ActionKind.CREATE_TASK,
    "add_task": ActionKind.CREATE_TASK,
    "task_add": ActionKind.CREATE_TASK,
    "move_task": ActionKind.MOVE_TASK,
    "task_move": ActionKind.MOVE_TASK,
    "update_status": ActionKind.MOVE_TASK,
    "delete_task": ActionKind.DELETE_TASK,
    "task_delete": ActionKind.DELETE_TASK,
    "create_notebook": ActionKind.CREATE_NOTEBOOK,
    "notebook_create": ActionKind.CREATE_NOTEBOOK,
    "list_tasks": ActionKind.LIST_TASKS,
    "task_list": ActionKind.LIST_TASKS,
    "search_tasks": ActionKind.SEARCH_TASKS,
    "task_search": ActionKind.SEARCH_TASKS,
    "list_notebooks": ActionKind.LIST_NOTEBOOKS,
    "notebook_list": ActionKind.LIST_NOTEBOOKS,
    "stats": ActionKind.SHOW_STATS,
    "show_stats": ActionKind.SHOW_STATS,
    "generate_import_json": ActionKind.GENERATE_IMPORT_JSON,
    "export_import_json": ActionKind.GENERATE_IMPORT_JSON,
}


def _opt_str(data: Mapping[str, Any], *keys: str) -> str | None:
    for k in keys:
        v = data.get(k)
        if v is None:
            continue
        if isinstance(v, (list, tuple)):
            v = ",".join(str(x) for x in v)
        s = str(v).strip()
        if s:
            return s
    return None


def action_from_dict(data: Mapping[str, Any]) -> Action:
    """Build a typed action from a structured JSON action object."""
    raw_type = _opt_str(data, "type", "action", "kind")
    if raw_type is None:
        raise ActionValidationError("Action object has no 'type'.")

    kind = _TYPE_ALIASES.get(raw_type.lower().replace(":", "_").replace("-", "_"))
    if kind is None:
        raise ActionValidationError(f"Unknown action type: {raw_type}")

    notebook = _opt_str(data, "notebook", "notebook_name")

    if kind is ActionKind.CREATE_TASK:
        return CreateTask(
            title=_opt_str(data, "title"),
            notebook=notebook,
            description=_opt_str(data, "description"),
            priority=_opt_str(data, "priority"),
            tags=_opt_str(data, "tags"),
            due_date=_opt_str(data, "due_date", "due"),
        )
    if kind is ActionKind.MOVE_TASK:
        return MoveTask(
            task_id=_opt_str(data, "task_id", "id"),
            status=_opt_str(data, "status"),
            notebook=notebook,
        )
    if kind is ActionKind.DELETE_TASK:
        return DeleteTask(task_id=_opt_str(data, "task_id", "id"), notebook=notebook)
    if kind is ActionKind.CREATE_NOTEBOOK:
        return CreateNotebook(name=_opt_str(data, "name") or notebook)
    if kind is ActionKind.LIST_TASKS:
        return ListTasks(
            notebook=notebook,
            status=_opt_str(data, "status"),
            priority=_opt_str(data, "priority"),
        )
    if kind is ActionKind.SEARCH_TASKS:
        return SearchTasks(query=_opt_str(data, "query", "search_term"), notebook=notebook)
    if kind is ActionKind.LIST_NOTEBOOKS:
        return ListNotebooks()
    if kind is ActionKind.SHOW_STATS:
        return ShowStats(notebook=notebook)

    raw_tasks = data.get("tasks")
    tasks = tuple(t for t in raw_tasks if isinstance(t, Mapping)) if isinstance(raw_tasks, list) else ()
    return GenerateImportJson(
        notebook=notebook,
        tasks=tasks,
        status=_opt_str(data, "status"),
        filename=_opt_str(data, "filename"),
    )
