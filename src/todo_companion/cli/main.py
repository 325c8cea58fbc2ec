# src/todo_companion/cli/main.py

"""
CLI entrypoint.

  todo-companion ask "move all tasks about docker to done" [--api-key KEY] [--verbose]
  todo-companion configure --api-key KEY
  todo-companion console            (default when no subcommand is given)
"""

from __future__ import annotations

import argparse
import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings, load_config_file, save_config_file
from ..connectors.console_connector import run_console_loop
from ..interpreter.errors import CredentialError, InputError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)

EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="todo-companion",
        description="Manage notebooks and tasks with natural-language requests.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logs and matcher traces.")
    sub = parser.add_subparsers(dest="command")

    ask = sub.add_parser("ask", help="Interpret one request and apply it.")
    ask.add_argument("prompt", nargs="+", help="The request, e.g. 'show stats'.")
    ask.add_argument("--api-key", dest="api_key", default=None, help="LLM API key for this call.")
    ask.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS)

    configure = sub.add_parser("configure", help="Store the LLM API key in the config file.")
    configure.add_argument("--api-key", dest="api_key", required=True)

    console = sub.add_parser("console", help="Interactive console (default).")
    console.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS)

    return parser


def _configure(settings, api_key: str) -> int:
    key = api_key.strip()
    if not key:
        print("API key cannot be empty.", file=sys.stderr)
        return EXIT_USAGE
    data = load_config_file(settings.config_path)
    data["openai_api_key"] = key
    save_config_file(settings.config_path, data)
    print(f"Saved API key to {settings.config_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    verbose = bool(getattr(args, "verbose", False))

    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = logging.DEBUG if verbose else getattr(logging, level_name, logging.WARNING)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.debug("Starting %s command=%s", settings.app_name, args.command or "console")

    if args.command == "configure":
        return _configure(settings, args.api_key)

    state = create_initial_state(settings=settings, verbose=verbose)

    if args.command == "ask":
        prompt = " ".join(args.prompt)
        try:
            result = state.assistant.ask(prompt, api_key=args.api_key, verbose=verbose)
        except (InputError, CredentialError) as e:
            print(str(e), file=sys.stderr)
            return EXIT_USAGE
        print(result.text)
        return 0

    run_console_loop(state)
    logger.info("Bye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
