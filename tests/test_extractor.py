# tests/test_extractor.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from todo_companion.interpreter.extractor import (
    clean_search_term,
    determine_notebook_name,
    determine_priority,
    extract_notebook_hint,
    extract_search_term,
    extract_search_terms,
    extract_task_title,
)
from todo_companion.tasks.task_models import TaskPriority


@pytest.mark.parametrize(
    "prompt",
    [
        "move all tasks to done",
        "Move every task to archived",
        "move all to in progress",
        "move everything to done",
    ],
)
def test_universal_quantifiers(prompt: str) -> None:
    assert extract_search_term(prompt) == "*"


def test_qualified_all_is_not_universal() -> None:
    assert extract_search_term("move all tasks related to docker to done") == "docker"
    assert extract_search_term("move all migrate to barracuda org tasks to done") == "migrate to barracuda org"


@pytest.mark.parametrize(
    ("prompt", "expected"),
    [
        ("move migrate arbitration-tf-shared to github actions", "migrate arbitration-tf-shared"),
        ("move tappy-tf-shared to archived", "tappy-tf-shared"),
        ("move tasks related to docker or kubernetes to done", "docker or kubernetes"),
        ("set the status of tasks about kubernetes to done", "kubernetes"),
        ("move task 152 in infra to done", "152"),
        ("mark the audit task as done", "audit"),
        ("change status of the docker task to in progress", "docker"),
    ],
)
def test_extract_search_term(prompt: str, expected: str) -> None:
    assert extract_search_term(prompt) == expected


def test_fallback_strips_status_vocabulary() -> None:
    assert extract_search_term("docker credentials done") == "docker credentials"


def test_clean_search_term() -> None:
    assert clean_search_term("  Tasks about: Docker!!  ") == "docker"
    assert clean_search_term("the status of migrate-x") == "of migrate-x"
    assert clean_search_term("tasks") == ""


def test_extract_search_terms_splits_connectives() -> None:
    assert extract_search_terms("docker and kubernetes") == ["docker", "kubernetes"]
    assert extract_search_terms("the docker or a kubernetes") == ["docker", "kubernetes"]
    assert extract_search_terms("everything") == ["*"]
    assert extract_search_terms("*") == ["*"]
    assert extract_search_terms("") == []


def test_task_title_prefers_quotes() -> None:
    assert extract_task_title('add a task "Buy milk" to the home notebook') == "Buy milk"
    assert extract_task_title("create task 'Fix login' with high priority") == "Fix login"


def test_task_title_from_boilerplate() -> None:
    assert extract_task_title("add a task to buy milk") == "buy milk"
    assert (
        extract_task_title("Create a new task called Fix login in the infra notebook with high priority")
        == "Fix login"
    )
    assert extract_task_title("create a task") is None


def test_determine_notebook_name() -> None:
    books = [
        SimpleNamespace(name="protectors", is_default=True),
        SimpleNamespace(name="infra", is_default=False),
    ]
    assert determine_notebook_name("add a task for infra: rotate keys", books) == "infra"
    assert determine_notebook_name("add a task to buy milk", books) == "protectors"
    assert determine_notebook_name("add a task", [SimpleNamespace(name="x", is_default=False)]) is None


@pytest.mark.parametrize(
    ("prompt", "expected"),
    [
        ("add a high priority task", TaskPriority.HIGH),
        ("create task with priority low", TaskPriority.LOW),
        ("add task, priority should be medium", TaskPriority.MEDIUM),
        ("add task", None),
    ],
)
def test_determine_priority(prompt: str, expected: TaskPriority | None) -> None:
    assert determine_priority(prompt) == expected


def test_notebook_hint() -> None:
    assert extract_notebook_hint("show statistics for protectors notebook") == "protectors"
    assert extract_notebook_hint("list high priority tasks in notebook infra") == "infra"
    assert extract_notebook_hint("show stats for my notebook") is None
    assert extract_notebook_hint("show stats") is None
