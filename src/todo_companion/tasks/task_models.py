# src/todo_companion/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskStatus(StrEnum):
    """Task lifecycle status (the four canonical values)."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority | None:
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


@dataclass(slots=True)
class Notebook:
    id: int
    name: str
    is_default: bool
    created_at: float
    updated_at: float


@dataclass(slots=True)
class Task:
    id: int
    notebook_id: int
    notebook_name: str
    title: str
    status: TaskStatus
    created_at: float
    updated_at: float

    description: str | None = None
    priority: TaskPriority | None = None
    tags: list[str] = field(default_factory=list)
    due_at: float | None = None

    @property
    def tags_text(self) -> str:
        return ",".join(self.tags)


@dataclass(frozen=True, slots=True)
class MatchedTask:
    """Lightweight projection of a task, used for display and model context."""

    notebook_name: str
    task_id: int
    title: str
    status: TaskStatus

    @classmethod
    def from_task(cls, task: Task) -> MatchedTask:
        return cls(
            notebook_name=task.notebook_name,
            task_id=task.id,
            title=task.title,
            status=task.status,
        )
