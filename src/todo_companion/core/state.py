# src/todo_companion/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .ports import LLMClient, TaskRepo

if TYPE_CHECKING:
    from ..interpreter.assistant import Assistant


@dataclass
class AppState:
    # Settings object (real Settings or a SimpleNamespace in tests).
    settings: Any

    llm: LLMClient
    task_store: TaskRepo
    assistant: Assistant

    verbose: bool = False
