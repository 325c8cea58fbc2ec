# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_companion.core.state import AppState
from todo_companion.interpreter.assistant import Assistant
from todo_companion.interpreter.executor import CommandExecutor
from todo_companion.tasks.task_models import TaskPriority, TaskStatus
from todo_companion.tasks.task_store import TaskStore

from .fakes import FakeLLMClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the assistant and CLI modules.

    A SimpleNamespace rather than the real config keeps unit tests isolated
    from the developer's environment and .env.
    """
    return SimpleNamespace(
        app_name="todo-test",
        log_level="WARNING",
        openai_api_key=None,
        openai_base_url=None,
        llm_models=["gpt-4o-mini"],
        llm_temperature=0.1,
        llm_max_tokens=1000,
        llm_connect_timeout=1.0,
        llm_read_timeout=1.0,
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        config_path=tmp_path / "config.json",
        export_dir=tmp_path / "exports",
        context_task_limit=200,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    """Empty real SQLite store (its behavior is part of what we test)."""
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def seeded_store(store: TaskStore) -> TaskStore:
    """
    Corpus used across interpreter tests.

    protectors (default): 85, 104, 105
    infra:                149, 150, 151, 152
    """
    protectors = store.create_notebook("protectors", is_default=True)
    infra = store.create_notebook("infra")

    store.add_task(protectors.id, task_id=85, title="Migrate arbitration-tf-shared")
    store.add_task(
        protectors.id,
        task_id=104,
        title="Move arbitration-tf-shared pipeline",
        tags="terraform,ci",
    )
    store.add_task(
        protectors.id,
        task_id=105,
        title="Move awsappman-tf-accounts-management pipeline",
        tags="terraform,ci",
    )

    store.add_task(infra.id, task_id=149, title="Migrate tappy-tf-shared")
    store.add_task(
        infra.id,
        task_id=150,
        title="Rotate docker credentials",
        tags="docker,security",
        priority=TaskPriority.HIGH,
    )
    store.add_task(
        infra.id,
        task_id=151,
        title="Upgrade kubernetes cluster",
        tags="kubernetes",
        status=TaskStatus.IN_PROGRESS,
    )
    store.add_task(
        infra.id,
        task_id=152,
        title="Audit cluster images",
        description="check docker and kubernetes base images",
        tags="docker,kubernetes",
        priority=TaskPriority.LOW,
    )
    return store


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def executor(seeded_store: TaskStore, settings: SimpleNamespace) -> CommandExecutor:
    return CommandExecutor(seeded_store, export_dir=settings.export_dir)


@pytest.fixture()
def assistant(seeded_store: TaskStore, llm: FakeLLMClient, settings: SimpleNamespace) -> Assistant:
    return Assistant(store=seeded_store, llm=llm, settings=settings)


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    seeded_store: TaskStore,
    llm: FakeLLMClient,
    assistant: Assistant,
) -> AppState:
    return AppState(
        settings=settings,
        llm=llm,
        task_store=seeded_store,
        assistant=assistant,
    )
