# src/todo_companion/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local directories exist,
- wires concrete implementations into AppState (LLM client, task store, assistant),
- makes sure a first run has a default notebook to put tasks in.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..interpreter.assistant import Assistant
from ..llm.client import OpenAIChatClient
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_NOTEBOOK_NAME = "default"


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.export_dir.mkdir(parents=True, exist_ok=True)


def ensure_default_notebook(store: TaskStore) -> None:
    if store.count_notebooks():
        return
    store.create_notebook(DEFAULT_NOTEBOOK_NAME, is_default=True)
    logger.info("Created notebook '%s' (first run).", DEFAULT_NOTEBOOK_NAME)


def create_initial_state(*, settings=None, verbose: bool = False) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    llm_client = OpenAIChatClient(settings)
    task_store = TaskStore(settings.tasks_db_path)
    ensure_default_notebook(task_store)

    assistant = Assistant(store=task_store, llm=llm_client, settings=settings)

    return AppState(
        settings=settings,
        llm=llm_client,
        task_store=task_store,
        assistant=assistant,
        verbose=verbose,
    )
