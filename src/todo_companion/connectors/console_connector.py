# src/todo_companion/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..interpreter.errors import CredentialError, InputError

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def handle_line(state: AppState, line: str) -> str | None:
    """Reply for one console line (None for blank input)."""
    text = line.strip()
    if not text:
        return None

    try:
        cmd_response = command_registry.handle(state, text)
    except Exception:
        logger.exception("Command handler crashed.")
        return "Internal error while handling a command."
    if cmd_response is not None:
        return cmd_response

    try:
        result = state.assistant.ask(text, verbose=state.verbose)
    except (InputError, CredentialError) as e:
        return str(e)
    except Exception:
        logger.exception("Console request handler crashed.")
        return "Internal error while handling the request."
    return result.text


def run_console_loop(state: AppState) -> None:
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "todo"))
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type a request. Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = input(">>> You: ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        reply = handle_line(state, user_input)
        if reply is not None:
            _print_ts(f"<<< {app_name}: {reply}\n")

    logger.info("Console connector finished.")
