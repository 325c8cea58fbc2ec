# src/todo_companion/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the interpreter.

The interpreter depends on Protocols instead of concrete implementations.
This keeps the storage/LLM provider swappable and makes testing easier.
"""

from typing import Any, Iterable, Protocol


class LLMClient(Protocol):
    """Single-turn chat completion client (OpenAI-compatible)."""

    def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        api_key: str,
        json_mode: bool = True,
    ) -> str: ...


class TaskRepo(Protocol):
    # Notebooks
    def count_notebooks(self) -> int: ...
    def list_notebooks(self) -> list[Any]: ...
    def get_notebook(self, name: str) -> Any | None: ...
    def default_notebook(self) -> Any | None: ...
    def create_notebook(self, name: str, *, is_default: bool = False) -> Any: ...
    def set_default_notebook(self, name: str) -> Any | None: ...
    def notebook_statistics(self, notebook_id: int) -> dict[str, int]: ...

    # Tasks
    def count_tasks(self, notebook_id: int | None = None) -> int: ...
    def list_tasks(
            self,
            notebook_id: int,
            *,
            status: Any | None = None,
            priority: Any | None = None,
    ) -> list[Any]: ...
    def get_task(self, task_id: int, *, notebook_id: int | None = None) -> Any | None: ...
    def search_tasks(self, query: str, *, notebook_id: int | None = None) -> list[Any]: ...
    def add_task(
            self,
            notebook_id: int,
            *,
            title: str,
            description: str | None = None,
            status: Any = None,  # TaskStatus (kept as Any to avoid import coupling)
            priority: Any | None = None,
            tags: str | Iterable[str] | None = None,
            due_at: float | None = None,
            task_id: int | None = None,
    ) -> Any: ...
    def update_task_status(self, task_id: int, new_status: Any) -> None: ...
    def delete_task(self, task_id: int) -> bool: ...
