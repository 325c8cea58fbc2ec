# src/todo_companion/interpreter/gateway.py

from __future__ import annotations

import contextlib
import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ..core.ports import LLMClient, TaskRepo
from ..tasks.task_models import MatchedTask, TaskStatus
from .actions import COMMAND_GRAMMAR, COMMAND_NAMES
from .errors import MalformedResponseError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "notebook:list"
DEFAULT_EXPLANATION = "Done. Here is what I did with your request."
FALLBACK_EXPLANATION = "I couldn't understand the model's reply, so here are your notebooks."


@dataclass(slots=True)
class ParsedResponse:
    commands: list[str]
    explanation: str
    actions: list[dict[str, Any]] = field(default_factory=list)


# --------------------------------------------------------------------------------------
# Context / prompt
# --------------------------------------------------------------------------------------


def build_context(
    store: TaskRepo,
    *,
    matched: Iterable[MatchedTask] = (),
    target_status: TaskStatus | None = None,
    search_term: str | None = None,
    task_limit: int = 200,
) -> dict[str, Any]:
    """Deterministic snapshot of the inventory plus what was resolved locally."""
    notebooks: list[dict[str, Any]] = []
    tasks: list[dict[str, Any]] = []
    default_name: str | None = None

    for nb in store.list_notebooks():
        if nb.is_default and default_name is None:
            default_name = nb.name
        stats = store.notebook_statistics(nb.id)
        notebooks.append(
            {
                "name": nb.name,
                "is_default": bool(nb.is_default),
                "task_count": int(stats.get("total", 0)),
                "status_counts": {s.value: int(stats.get(s.value, 0)) for s in TaskStatus},
            }
        )
        for task in store.list_tasks(nb.id):
            if len(tasks) >= task_limit:
                break
            tasks.append(
                {
                    "id": task.id,
                    "notebook": nb.name,
                    "title": task.title,
                    "status": task.status.value,
                    "priority": task.priority.value if task.priority else None,
                    "tags": task.tags_text or None,
                }
            )

    return {
        "notebooks": notebooks,
        "default_notebook": default_name,
        "tasks": tasks,
        "matched_tasks": [
            {
                "notebook": m.notebook_name,
                "task_id": m.task_id,
                "title": m.title,
                "status": m.status.value,
            }
            for m in matched
        ],
        "target_status": target_status.value if target_status else None,
        "search_term": search_term or None,
    }


def build_system_prompt(context: dict[str, Any]) -> str:
    default_nb = context.get("default_notebook") or "NOTEBOOK"
    lines: list[str] = [
        "You are a task management assistant for a notebook-based todo CLI.",
        "Translate the user's request into CLI commands.",
        "",
        "Available commands (commands use colons; quote arguments that contain spaces):",
    ]
    lines.extend(f"  {spec.usage}    # {spec.summary}" for spec in COMMAND_GRAMMAR)
    lines += [
        "",
        "Valid statuses: todo, in_progress, done, archived.",
        "Status mapping: 'pending' -> todo, 'in progress' -> in_progress, "
        "'complete'/'finished' -> done, 'archive' -> archived.",
        "When the user says a task moves to another system or place "
        "(for example 'move X to github actions'), set its status to in_progress.",
        "Valid priorities: high, medium, low.",
        "",
        "Examples:",
        f'  "add a task to buy milk" -> task:add "{default_nb}" "Buy milk"',
        f'  "mark task 12 as done" -> task:move "{default_nb}" 12 done',
        f'  "what is still open?" -> task:list "{default_nb}" --status todo',
        '  "create a notebook for work" -> notebook:create "work"',
    ]

    matched = context.get("matched_tasks") or []
    target = context.get("target_status")
    if matched and target:
        lines += [
            "",
            f"I will move these tasks matching '{context.get('search_term') or ''}' "
            f"to '{target}' status:",
        ]
        lines.extend(
            f"  - #{m['task_id']} {m['title']} (notebook: {m['notebook']}, status: {m['status']})"
            for m in matched
        )
        lines.append("Include the corresponding task:move commands.")
    elif matched:
        lines += ["", "Tasks that match the request:"]
        lines.extend(
            f"  - #{m['task_id']} {m['title']} (notebook: {m['notebook']}, status: {m['status']})"
            for m in matched
        )

    lines += [
        "",
        f"Default notebook: {context.get('default_notebook') or '(none)'}",
        "Notebooks:",
        json.dumps(context.get("notebooks") or [], ensure_ascii=False),
        "Tasks:",
        json.dumps(context.get("tasks") or [], ensure_ascii=False),
        "",
        "Respond ONLY with a JSON object with exactly these keys:",
        '  "commands": an array of command strings, executed in order',
        '  "explanation": a short sentence for the user',
        "Example:",
        json.dumps(
            {
                "commands": [f'task:list "{default_nb}"'],
                "explanation": f"Listing the tasks in {default_nb}.",
            }
        ),
        'Optionally add "actions": [{"type": "generate_import_json", "notebook": NAME, '
        '"tasks": [{"title": ..., "status": ..., "priority": ..., "tags": ..., "due_date": ...}]}] '
        "when the user asks for an import file.",
    ]
    return "\n".join(lines)


# --------------------------------------------------------------------------------------
# Response repair
# --------------------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```[a-zA-Z]*[ \t]*\n?(.*?)```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")
_LINE_PREFIX = "-*>$ \t"


def _strip_fences(text: str) -> str:
    s = text.strip()
    m = re.fullmatch(r"```[a-zA-Z]*\s*(.*?)\s*```", s, re.DOTALL)
    if m:
        return m.group(1).strip()
    m = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", s, re.DOTALL)
    return m.group(1).strip() if m else s


def _extract_json_object(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def _load_json_object(text: str) -> dict[str, Any]:
    body = _strip_fences(text)
    candidates = [body]
    if not body.startswith("{") and body.lstrip().startswith('"'):
        candidates.append("{" + body.rstrip().rstrip(",") + ("" if body.rstrip().endswith("}") else "}"))
    candidates.append(_extract_json_object(body))

    for candidate in candidates:
        with contextlib.suppress(ValueError, RecursionError):
            data = json.loads(candidate)
            if isinstance(data, dict):
                return data
    raise MalformedResponseError("Model content is not a JSON object.")


def _clean_command(raw: str) -> str | None:
    s = raw.strip().strip(_LINE_PREFIX).strip()
    if not s:
        return None
    tokens = s.split()
    for skip in range(min(2, len(tokens))):
        if tokens[skip] in COMMAND_NAMES:
            return " ".join(tokens[skip:]) if skip else s
    return None


def _normalize_payload(data: dict[str, Any]) -> ParsedResponse:
    commands: list[str] = []
    actions: list[dict[str, Any]] = []

    raw_commands = data.get("commands")
    if raw_commands is None and isinstance(data.get("command"), str):
        raw_commands = [data["command"]]
    if isinstance(raw_commands, str):
        raw_commands = [raw_commands]
    if isinstance(raw_commands, list):
        for c in raw_commands:
            if isinstance(c, str) and c.strip():
                commands.append(c.strip())
            elif isinstance(c, dict):
                actions.append(c)

    raw_actions = data.get("actions")
    if isinstance(raw_actions, list):
        actions.extend(a for a in raw_actions if isinstance(a, dict))

    explanation = data.get("explanation")
    if not isinstance(explanation, str) or not explanation.strip():
        explanation = DEFAULT_EXPLANATION

    return ParsedResponse(commands=commands, explanation=explanation.strip(), actions=actions)


def _fallback_extract(text: str) -> ParsedResponse:
    commands: list[str] = []

    def add(candidate: str) -> None:
        cmd = _clean_command(candidate)
        if cmd and cmd not in commands:
            commands.append(cmd)

    for m in _FENCE_RE.finditer(text):
        for line in m.group(1).splitlines():
            add(line)

    without_fences = _FENCE_RE.sub(" ", text)
    for m in _INLINE_CODE_RE.finditer(without_fences):
        add(m.group(1))

    prose = _INLINE_CODE_RE.sub(" ", without_fences)
    kept: list[str] = []
    for line in prose.splitlines():
        if _clean_command(line):
            add(line)
        else:
            kept.append(line)

    explanation = re.sub(r"\s+", " ", " ".join(kept)).strip()

    if not commands:
        logger.info("Model reply had no recoverable commands; using %s", DEFAULT_COMMAND)
        return ParsedResponse(
            commands=[DEFAULT_COMMAND],
            explanation=explanation or FALLBACK_EXPLANATION,
        )
    return ParsedResponse(commands=commands, explanation=explanation or DEFAULT_EXPLANATION)


def parse_response(content: str | None) -> ParsedResponse:
    """
    Normalize model output into a ParsedResponse. Never raises.

    JSON first (fences stripped, braces re-added, outermost object extracted),
    then a scan for command-like lines and code spans.
    """
    text = content if isinstance(content, str) else ""
    if not text.strip():
        return ParsedResponse(commands=[DEFAULT_COMMAND], explanation=FALLBACK_EXPLANATION)

    try:
        data = _load_json_object(text)
    except MalformedResponseError:
        logger.debug("Model reply is not JSON, falling back to text extraction. Raw=%r", text[:2000])
        return _fallback_extract(text)

    parsed = _normalize_payload(data)
    logger.debug("Parsed model reply commands=%s actions=%d", parsed.commands, len(parsed.actions))
    return parsed


class LLMGateway:
    """One model call per request: prompt in, ParsedResponse out."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    def query(self, prompt: str, context: dict[str, Any], api_key: str) -> str:
        """Raw model content. TransportError propagates to the caller."""
        system_prompt = build_system_prompt(context)
        user_prompt = f"{prompt.strip()}\n\nPlease respond with a JSON object."
        return self._llm.complete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            api_key=api_key,
        )

    def invoke(self, prompt: str, context: dict[str, Any], api_key: str) -> ParsedResponse:
        return parse_response(self.query(prompt, context, api_key))
