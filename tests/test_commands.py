# tests/test_commands.py

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from todo_companion.cli import main as cli_main
from todo_companion.cli.bootstrap import create_initial_state, ensure_default_notebook
from todo_companion.cli.commands import CommandRegistry, registry
from todo_companion.connectors import console_connector
from todo_companion.connectors.console_connector import handle_line
from todo_companion.core.state import AppState
from todo_companion.tasks.task_store import TaskStore

from .fakes import FakeLLMClient


def test_command_registry_routes_with_aliases(state: AppState) -> None:
    reg = CommandRegistry()
    seen: list[list[str]] = []

    def echo(state, args):
        seen.append(args)
        return "echo"

    reg.register("echo", echo, "Echo args.", aliases=["e"])

    assert reg.handle(state, "/echo a b") == "echo"
    assert reg.handle(state, "/E c") == "echo"
    assert seen == [["a", "b"], ["c"]]
    assert "/echo - Echo args." in reg.build_help()


def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_slash_commands(state: AppState) -> None:
    assert "/stats" in (registry.handle(state, "/help") or "")
    assert registry.handle(state, "/nb") == "Notebooks:\n  protectors (default): 3 tasks\n  infra: 4 tasks"
    assert registry.handle(state, "/stats protectors") == (
        "protectors: 3 tasks (todo: 3, in_progress: 0, done: 0, archived: 0)"
    )
    assert registry.handle(state, "/stats nowhere") == "Error: Notebook 'nowhere' not found."
    assert registry.handle(state, "/notebook") == "Usage: /notebook NAME"
    assert registry.handle(state, "/notebook home") == "Created notebook 'home'."


def test_default_notebook_command(state: AppState) -> None:
    assert registry.handle(state, "/default") == "Default notebook: protectors"
    assert registry.handle(state, "/default infra") == "Default notebook is now 'infra'."
    assert registry.handle(state, "/default nowhere") == "Notebook 'nowhere' not found."

    books = {nb.name: nb.is_default for nb in state.task_store.list_notebooks()}
    assert books == {"protectors": False, "infra": True}


def test_verbose_toggle(state: AppState) -> None:
    assert registry.handle(state, "/verbose on") == "Verbose enabled."
    assert state.verbose is True
    assert registry.handle(state, "/verbose off") == "Verbose disabled."
    assert state.verbose is False
    assert registry.handle(state, "/verbose maybe") == "Usage: /verbose on or /verbose off."


def test_console_line_routing(state: AppState, llm: FakeLLMClient) -> None:
    assert handle_line(state, "   ") is None
    assert handle_line(state, "/stats infra") == "infra: 4 tasks (todo: 3, in_progress: 1, done: 0, archived: 0)"
    assert handle_line(state, "show statistics for protectors notebook") == (
        "protectors: 3 tasks (todo: 3, in_progress: 0, done: 0, archived: 0)"
    )
    # Model path without a key reports the problem instead of crashing.
    assert "No API key configured" in (handle_line(state, "move tappy-tf-shared to archived") or "")
    assert llm.calls == []


def test_console_loop_until_exit(state: AppState, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    lines = iter(["/nb", "", "/exit"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(lines))

    console_connector.run_console_loop(state)

    out = capsys.readouterr().out
    assert "protectors (default): 3 tasks" in out
    assert out.count("<<< todo-test:") == 1


def test_bootstrap_creates_default_notebook(settings: SimpleNamespace) -> None:
    state = create_initial_state(settings=settings)

    books = state.task_store.list_notebooks()
    assert [(nb.name, nb.is_default) for nb in books] == [("default", True)]
    assert settings.export_dir.is_dir()

    # A second run keeps what is there.
    ensure_default_notebook(state.task_store)
    assert state.task_store.count_notebooks() == 1


def test_ensure_default_notebook_leaves_existing_books(store: TaskStore) -> None:
    store.create_notebook("work")
    ensure_default_notebook(store)
    assert [nb.name for nb in store.list_notebooks()] == ["work"]


@pytest.fixture()
def cli_settings(settings: SimpleNamespace, monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    monkeypatch.setattr(cli_main, "get_settings", lambda: settings)
    monkeypatch.setattr(cli_main, "setup_logging", lambda **kwargs: None)
    return settings


def test_cli_configure_saves_key(cli_settings: SimpleNamespace, capsys) -> None:
    assert cli_main.main(["configure", "--api-key", " sk-test "]) == 0

    data = json.loads(cli_settings.config_path.read_text("utf-8"))
    assert data == {"openai_api_key": "sk-test"}
    assert "Saved API key" in capsys.readouterr().out


def test_cli_ask_fast_path(cli_settings: SimpleNamespace, capsys) -> None:
    assert cli_main.main(["ask", "show", "stats"]) == 0
    assert capsys.readouterr().out.strip() == "default: 0 tasks (todo: 0, in_progress: 0, done: 0, archived: 0)"


def test_cli_ask_without_key_exits_with_usage_error(cli_settings: SimpleNamespace, capsys) -> None:
    assert cli_main.main(["ask", "move", "everything", "to", "done"]) == cli_main.EXIT_USAGE
    assert "No API key configured" in capsys.readouterr().err
