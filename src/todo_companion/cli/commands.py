# src/todo_companion/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.state import AppState
from ..interpreter.actions import CreateNotebook, ListNotebooks, ShowStats

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /stats, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - Leave the console.")
        lines.append("Anything else is interpreted as a request, e.g. 'move all tasks to done'.")
        return "\n".join(lines)


registry = CommandRegistry()


def _result_text(state: AppState, action) -> str:
    result = state.assistant.executor.execute(action)
    return result.message if result.ok else f"Error: {result.message}"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_notebooks(state: AppState, args: list[str]) -> str:
    return _result_text(state, ListNotebooks())


def cmd_stats(state: AppState, args: list[str]) -> str:
    return _result_text(state, ShowStats(notebook=" ".join(args) or None))


def cmd_notebook(state: AppState, args: list[str]) -> str:
    """/notebook NAME -> create a notebook"""
    if not args:
        return "Usage: /notebook NAME"
    return _result_text(state, CreateNotebook(name=" ".join(args)))


def cmd_default(state: AppState, args: list[str]) -> str:
    """
    /default        -> show the default notebook
    /default NAME   -> make NAME the default notebook
    """
    if not args:
        nb = state.task_store.default_notebook()
        return f"Default notebook: {nb.name}" if nb else "No default notebook is set."

    name = " ".join(args)
    nb = state.task_store.set_default_notebook(name)
    if nb is None:
        return f"Notebook '{name}' not found."
    logger.debug("Default notebook changed to %s", nb.name)
    return f"Default notebook is now '{nb.name}'."


def cmd_verbose(state: AppState, args: list[str]) -> str:
    """
    /verbose        -> show status
    /verbose on|off -> toggle matcher/model traces in replies
    """
    if not args:
        return f"Verbose is currently {'ON' if state.verbose else 'OFF'}. Use /verbose on or /verbose off."

    arg = args[0].lower()
    if arg in ("on", "1", "true", "yes"):
        state.verbose = True
        return "Verbose enabled."
    if arg in ("off", "0", "false", "no"):
        state.verbose = False
        return "Verbose disabled."
    return "Usage: /verbose on or /verbose off."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("notebooks", cmd_notebooks, help_text="List notebooks.", aliases=["nb"])
registry.register("stats", cmd_stats, help_text="Task statistics: /stats [NOTEBOOK].")
registry.register("notebook", cmd_notebook, help_text="Create a notebook: /notebook NAME.")
registry.register("default", cmd_default, help_text="Show or set the default notebook: /default [NAME].")
registry.register("verbose", cmd_verbose, help_text="Show matcher/model traces: /verbose on | /verbose off.")
