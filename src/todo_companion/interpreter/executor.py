# src/todo_companion/interpreter/executor.py

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from dateutil import parser as date_parser

from ..core.ports import TaskRepo
from ..tasks.task_models import MatchedTask, Notebook, Task, TaskPriority, TaskStatus
from ..tasks.task_store import normalize_tags
from .actions import (
    Action,
    ActionKind,
    CreateNotebook,
    CreateTask,
    DeleteTask,
    GenerateImportJson,
    ListNotebooks,
    ListTasks,
    MoveTask,
    SearchTasks,
    ShowStats,
    action_from_dict,
    parse_command,
)
from .errors import ActionError, ActionValidationError, ReferenceNotFoundError
from .status import normalize_status

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExecutionResult:
    ok: bool
    message: str
    kind: ActionKind | None = None


# ---- formatting helpers (shared with the fast path and slash commands) ----


def format_due(ts: float | None) -> str:
    if ts is None:
        return ""
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def format_task_line(task: Task, *, with_notebook: bool = False) -> str:
    parts = [f"#{task.id} [{task.status.value}] {task.title}"]
    extras: list[str] = []
    if with_notebook:
        extras.append(f"notebook: {task.notebook_name}")
    if task.priority is not None:
        extras.append(f"priority: {task.priority.value}")
    if task.due_at is not None:
        extras.append(f"due: {format_due(task.due_at)}")
    if task.tags:
        extras.append(f"tags: {task.tags_text}")
    if extras:
        parts.append(f"({', '.join(extras)})")
    return " ".join(parts)


def format_stats(name: str, stats: Mapping[str, int]) -> str:
    counts = ", ".join(f"{s.value}: {int(stats.get(s.value, 0))}" for s in TaskStatus)
    return f"{name}: {int(stats.get('total', 0))} tasks ({counts})"


# ---- field validation ----


def parse_status(raw: str | None) -> TaskStatus:
    status = normalize_status(raw)
    if status is None:
        raise ActionValidationError(
            f"Invalid status '{raw}'. Use todo, in_progress, done or archived."
        )
    return status


def parse_priority(raw: str | None) -> TaskPriority | None:
    if raw is None or not str(raw).strip():
        return None
    try:
        return TaskPriority(str(raw).strip().lower())
    except ValueError as e:
        raise ActionValidationError(f"Invalid priority '{raw}'. Use high, medium or low.") from e


def parse_task_id(raw: str | int | None) -> int:
    s = str(raw if raw is not None else "").strip().lstrip("#")
    if not (s.isascii() and s.isdigit()):
        raise ActionValidationError(f"Invalid task id '{raw}'.")
    return int(s)


def parse_due_date(raw: str | None, *, allow_past: bool = False) -> float | None:
    """Parse a due date with dateutil; naive values are local time."""
    if raw is None or not str(raw).strip():
        return None
    try:
        dt = date_parser.parse(str(raw).strip())
    except (ValueError, OverflowError) as e:
        raise ActionValidationError(f"Invalid due date '{raw}'. Use YYYY-MM-DD HH:MM.") from e

    if dt.tzinfo is None:
        dt = dt.astimezone()
    ts = dt.timestamp()
    if not allow_past and ts < time.time():
        raise ActionValidationError(f"Due date '{raw}' is in the past.")
    return ts


_SLUG_RE = re.compile(r"[^a-z0-9]+")


class CommandExecutor:
    """
    Validates and applies actions against the TaskRepo.

    Each action is isolated: a validation/reference error skips only that
    action and is reported in its ExecutionResult.
    """

    def __init__(self, store: TaskRepo, *, export_dir: str | Path = "exports") -> None:
        self._store = store
        self._export_dir = Path(export_dir)
        self._handlers: dict[ActionKind, Callable[[Any], str]] = {
            ActionKind.CREATE_TASK: self._create_task,
            ActionKind.MOVE_TASK: self._move_task,
            ActionKind.DELETE_TASK: self._delete_task,
            ActionKind.CREATE_NOTEBOOK: self._create_notebook,
            ActionKind.LIST_TASKS: self._list_tasks,
            ActionKind.SEARCH_TASKS: self._search_tasks,
            ActionKind.LIST_NOTEBOOKS: self._list_notebooks,
            ActionKind.SHOW_STATS: self._show_stats,
            ActionKind.GENERATE_IMPORT_JSON: self._generate_import_json,
        }

    @property
    def handled_kinds(self) -> frozenset[ActionKind]:
        return frozenset(self._handlers)

    # ---- public API ----

    def execute(self, item: Action | str | Mapping[str, Any]) -> ExecutionResult:
        kind: ActionKind | None = None
        try:
            action = self._coerce(item)
            kind = action.kind
            message = self._handlers[kind](action)
        except ActionError as e:
            logger.info("Action skipped (%s): %s", kind.value if kind else "unparsed", e)
            return ExecutionResult(ok=False, message=str(e), kind=kind)
        except Exception:
            logger.exception("Action crashed: %r", item)
            return ExecutionResult(ok=False, message="Internal error while executing an action.", kind=kind)

        logger.debug("Action ok kind=%s", kind.value)
        return ExecutionResult(ok=True, message=message, kind=kind)

    def execute_all(self, items: Iterable[Action | str | Mapping[str, Any]]) -> list[ExecutionResult]:
        return [self.execute(item) for item in items]

    def apply_matched_moves(
        self, matched: Iterable[MatchedTask], status: TaskStatus
    ) -> list[ExecutionResult]:
        """Apply a locally resolved move to every matched task."""
        return [
            self.execute(MoveTask(notebook=m.notebook_name, task_id=m.task_id, status=status.value))
            for m in matched
        ]

    # ---- resolution helpers ----

    @staticmethod
    def _coerce(item: Action | str | Mapping[str, Any]) -> Action:
        if isinstance(item, str):
            return parse_command(item)
        if isinstance(item, Mapping):
            return action_from_dict(item)
        return item

    def _resolve_notebook(self, name: str | None) -> Notebook:
        if name and name.strip():
            nb = self._store.get_notebook(name)
            if nb is None:
                raise ReferenceNotFoundError(f"Notebook '{name}' not found.")
            return nb
        nb = self._store.default_notebook()
        if nb is None:
            raise ReferenceNotFoundError("No notebook given and no default notebook is set.")
        return nb

    def _notebooks_in_scope(self, name: str | None) -> list[Notebook]:
        if name and name.strip():
            return [self._resolve_notebook(name)]
        return list(self._store.list_notebooks())

    def _resolve_task(self, nb: Notebook, raw_id: str | int | None) -> Task:
        task_id = parse_task_id(raw_id)
        task = self._store.get_task(task_id, notebook_id=nb.id)
        if task is None:
            raise ReferenceNotFoundError(f"Task {task_id} not found in notebook '{nb.name}'.")
        return task

    # ---- handlers ----

    def _create_task(self, action: CreateTask) -> str:
        if not action.title or not action.title.strip():
            raise ActionValidationError("A task needs a title.")
        priority = parse_priority(action.priority)
        due_at = parse_due_date(action.due_date)
        nb = self._resolve_notebook(action.notebook)

        try:
            task = self._store.add_task(
                nb.id,
                title=action.title,
                description=action.description,
                priority=priority,
                tags=action.tags,
                due_at=due_at,
            )
        except ValueError as e:
            raise ActionValidationError(str(e)) from e
        return f"Added task #{task.id} '{task.title}' to notebook '{nb.name}'."

    def _move_task(self, action: MoveTask) -> str:
        status = parse_status(action.status)
        nb = self._resolve_notebook(action.notebook)
        task = self._resolve_task(nb, action.task_id)

        self._store.update_task_status(task.id, status)
        if task.status is status:
            return f"Task #{task.id} '{task.title}' is already {status.value}."
        return f"Moved task #{task.id} '{task.title}' from {task.status.value} to {status.value}."

    def _delete_task(self, action: DeleteTask) -> str:
        nb = self._resolve_notebook(action.notebook)
        task = self._resolve_task(nb, action.task_id)
        self._store.delete_task(task.id)
        return f"Deleted task #{task.id} '{task.title}' from notebook '{nb.name}'."

    def _create_notebook(self, action: CreateNotebook) -> str:
        if not action.name or not action.name.strip():
            raise ActionValidationError("A notebook needs a name.")
        try:
            nb = self._store.create_notebook(action.name)
        except ValueError as e:
            raise ActionValidationError(str(e)) from e
        return f"Created notebook '{nb.name}'."

    def _list_tasks(self, action: ListTasks) -> str:
        status = parse_status(action.status) if action.status else None
        priority = parse_priority(action.priority)
        books = self._notebooks_in_scope(action.notebook)

        lines: list[str] = []
        for nb in books:
            tasks = self._store.list_tasks(nb.id, status=status, priority=priority)
            if not tasks:
                continue
            lines.append(f"{nb.name}:")
            lines.extend(f"  {format_task_line(t)}" for t in tasks)

        if not lines:
            return "No tasks found."
        return "\n".join(lines)

    def _search_tasks(self, action: SearchTasks) -> str:
        if not action.query or not action.query.strip():
            raise ActionValidationError("A search needs a query.")
        nb_id = self._resolve_notebook(action.notebook).id if action.notebook else None
        tasks = self._store.search_tasks(action.query, notebook_id=nb_id)
        if not tasks:
            return f"No tasks matching '{action.query}'."
        lines = [f"Tasks matching '{action.query}':"]
        lines.extend(f"  {format_task_line(t, with_notebook=True)}" for t in tasks)
        return "\n".join(lines)

    def _list_notebooks(self, action: ListNotebooks) -> str:
        books = self._store.list_notebooks()
        if not books:
            return "No notebooks yet."
        lines = ["Notebooks:"]
        for nb in books:
            flag = " (default)" if nb.is_default else ""
            lines.append(f"  {nb.name}{flag}: {self._store.count_tasks(nb.id)} tasks")
        return "\n".join(lines)

    def _show_stats(self, action: ShowStats) -> str:
        books = self._notebooks_in_scope(action.notebook)
        if not books:
            return "No notebooks yet."

        totals = {s.value: 0 for s in TaskStatus}
        totals["total"] = 0
        lines: list[str] = []
        for nb in books:
            stats = self._store.notebook_statistics(nb.id)
            lines.append(format_stats(nb.name, stats))
            for k in totals:
                totals[k] += int(stats.get(k, 0))

        if len(books) > 1:
            lines.append(format_stats("All notebooks", totals))
        return "\n".join(lines)

    def _generate_import_json(self, action: GenerateImportJson) -> str:
        nb = self._resolve_notebook(action.notebook)

        if action.tasks:
            tasks = [self._import_task_entry(t) for t in action.tasks]
        else:
            status = parse_status(action.status) if action.status else None
            tasks = [self._export_task_entry(t) for t in self._store.list_tasks(nb.id, status=status)]

        payload = {"name": nb.name, "tasks": tasks}

        slug = _SLUG_RE.sub("_", nb.name.lower()).strip("_") or "notebook"
        filename = action.filename or f"{slug}_import_{datetime.now():%Y%m%d_%H%M%S}.json"
        path = self._export_dir / Path(filename).name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), "utf-8")

        logger.info("Import JSON written path=%s tasks=%d", path, len(tasks))
        return f"Wrote {len(tasks)} tasks for notebook '{nb.name}' to {path}."

    @staticmethod
    def _import_task_entry(raw: Mapping[str, Any]) -> dict[str, Any]:
        title = str(raw.get("title") or "").strip()
        if not title:
            raise ActionValidationError("Every task in an import document needs a title.")
        priority = parse_priority(raw.get("priority"))
        status = parse_status(raw.get("status")) if raw.get("status") else TaskStatus.TODO
        tags = raw.get("tags")
        due_raw = raw.get("due_date")
        due_at = parse_due_date(str(due_raw), allow_past=True) if due_raw else None
        return {
            "title": title,
            "description": raw.get("description"),
            "status": status.value,
            "priority": priority.value if priority else None,
            "tags": ",".join(normalize_tags(tags)) if tags else None,
            "due_date": datetime.fromtimestamp(due_at).astimezone().isoformat() if due_at else None,
        }

    @staticmethod
    def _export_task_entry(task: Task) -> dict[str, Any]:
        def iso(ts: float | None) -> str | None:
            return datetime.fromtimestamp(ts).astimezone().isoformat() if ts else None

        return {
            "title": task.title,
            "description": task.description,
            "status": task.status.value,
            "priority": task.priority.value if task.priority else None,
            "tags": task.tags_text or None,
            "due_date": iso(task.due_at),
            "created_at": iso(task.created_at),
            "updated_at": iso(task.updated_at),
        }
