# src/todo_companion/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- The API key may also live in a small JSON config file written by `configure`.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

ENV_PREFIX = "TODO"

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- LLM / OpenAI ----
    openai_api_key: str | None
    openai_base_url: str | None
    llm_models: list[str]
    llm_temperature: float
    llm_max_tokens: int
    llm_connect_timeout: float
    llm_read_timeout: float

    # ---- Local data paths ----
    data_dir: Path
    tasks_db_path: Path
    config_path: Path
    export_dir: Path

    # ---- Prompt tuning ----
    context_task_limit: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo") or "todo"
        log_level = _env(_k("LOG_LEVEL"), "WARNING")

        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        openai_base_url = _first_env(_k("OPENAI_BASE_URL"), "OPENAI_BASE_URL", default=None)

        llm_models = _env_list(_k("LLM_MODELS"), ["gpt-4o-mini"])
        llm_temperature = _env_float(_k("LLM_TEMPERATURE"), 0.1)
        llm_max_tokens = _env_int(_k("LLM_MAX_TOKENS"), 1000)
        llm_connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        llm_read_timeout = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 30.0)

        data_dir = _env_path(_k("DATA_DIR"), Path("~/.local/share/todo-companion").expanduser())
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        config_path = _env_path(
            _k("CONFIG_PATH"), Path("~/.config/todo-companion/config.json").expanduser()
        )
        export_dir = _env_path(_k("EXPORT_DIR"), data_dir / "exports")

        context_task_limit = _env_int(_k("CONTEXT_TASK_LIMIT"), 200)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            llm_models=llm_models,
            llm_temperature=llm_temperature,
            llm_max_tokens=llm_max_tokens,
            llm_connect_timeout=llm_connect_timeout,
            llm_read_timeout=llm_read_timeout,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            config_path=config_path,
            export_dir=export_dir,
            context_task_limit=context_task_limit,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS


# --------------------------------------------------------------------------------------
# Config file (API key storage written by `todo-companion configure`).
# --------------------------------------------------------------------------------------


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Read the JSON config file. Missing or broken files yield an empty dict."""
    path = Path(path)
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError):
        logger.warning("Config file %s is unreadable; ignoring it.", path)
        return {}
    return data if isinstance(data, dict) else {}


def save_config_file(path: str | Path, data: dict[str, Any]) -> None:
    """Atomically write the JSON config file and keep it private on disk."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        os.chmod(path, 0o600)
    logger.info("Saved config to %s", path)


def resolve_api_key(settings: Any, explicit: str | None = None) -> str | None:
    """
    Resolve the LLM API key.

    Order: explicit option -> environment (via Settings) -> config file.
    """
    if explicit and explicit.strip():
        return explicit.strip()

    from_env = getattr(settings, "openai_api_key", None)
    if from_env and str(from_env).strip():
        return str(from_env).strip()

    config_path = getattr(settings, "config_path", None)
    if config_path:
        key = load_config_file(config_path).get("openai_api_key")
        if isinstance(key, str) and key.strip():
            return key.strip()
    return None
