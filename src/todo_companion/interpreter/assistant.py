# src/todo_companion/interpreter/assistant.py

"""
Request orchestration.

Per request:
  START -> CLASSIFYING -> FAST_PATH_HANDLED
  START -> CLASSIFYING -> BUILDING_CONTEXT -> QUERYING_MODEL
        -> PARSING_RESPONSE -> EXECUTING_ACTIONS

Nothing is carried over between requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..config import resolve_api_key
from ..core.ports import LLMClient, TaskRepo
from ..llm.client import friendly_llm_error_message
from ..tasks.task_models import MatchedTask, TaskStatus
from .errors import CredentialError, InputError, TransportError
from .executor import CommandExecutor, ExecutionResult
from .fast_path import handle_fast_path
from .gateway import LLMGateway, build_context, parse_response
from .intents import IntentKind, classify
from .matcher import TaskMatcher

logger = logging.getLogger(__name__)


class AskPhase(StrEnum):
    START = "start"
    CLASSIFYING = "classifying"
    FAST_PATH_HANDLED = "fast_path_handled"
    BUILDING_CONTEXT = "building_context"
    QUERYING_MODEL = "querying_model"
    PARSING_RESPONSE = "parsing_response"
    EXECUTING_ACTIONS = "executing_actions"


@dataclass(slots=True)
class AskResult:
    text: str
    phases: list[AskPhase]
    fast_path: bool = False
    results: list[ExecutionResult] = field(default_factory=list)


def _render_results(results: list[ExecutionResult]) -> list[str]:
    return [r.message if r.ok else f"Error: {r.message}" for r in results]


class Assistant:
    def __init__(
        self,
        *,
        store: TaskRepo,
        llm: LLMClient,
        settings: Any,
        executor: CommandExecutor | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._executor = executor or CommandExecutor(
            store, export_dir=getattr(settings, "export_dir", "exports")
        )
        self._matcher = TaskMatcher(store)
        self._gateway = LLMGateway(llm)
        self._task_limit = int(getattr(settings, "context_task_limit", 200))

    @property
    def executor(self) -> CommandExecutor:
        return self._executor

    def ask(self, prompt: str, *, api_key: str | None = None, verbose: bool = False) -> AskResult:
        """
        Interpret one request and apply it.

        Raises InputError for an empty prompt and CredentialError when the
        model is needed but no API key resolves. Model failures are reported
        in the result text; no actions run in that case.
        """
        phases = [AskPhase.START]
        if not prompt or not prompt.strip():
            raise InputError("Empty prompt")

        phases.append(AskPhase.CLASSIFYING)
        intent = classify(prompt)

        if intent is not None:
            reply = handle_fast_path(intent, prompt, store=self._store, executor=self._executor)
            if reply is not None:
                phases.append(AskPhase.FAST_PATH_HANDLED)
                logger.info("Fast path handled intent=%s", intent.kind.value)
                return AskResult(text=reply, phases=phases, fast_path=True)

        key = resolve_api_key(self._settings, api_key)
        if not key:
            raise CredentialError(
                "No API key configured. Run 'todo-companion configure --api-key KEY' "
                "or set OPENAI_API_KEY."
            )

        phases.append(AskPhase.BUILDING_CONTEXT)
        matched: list[MatchedTask] = []
        target: TaskStatus | None = None
        search_term: str | None = None
        if intent is not None and intent.kind is IntentKind.TASK_MOVEMENT:
            target = intent.target_status
            search_term = intent.search_term
            if search_term:
                matched = self._matcher.search(search_term, prompt)

        context = build_context(
            self._store,
            matched=matched,
            target_status=target,
            search_term=search_term,
            task_limit=self._task_limit,
        )

        trace: list[str] = []
        if verbose:
            trace.append(f"Intent: {intent.kind.value if intent else 'none'}")
            trace.append(f"Search term: {search_term or '-'}  Target status: {target.value if target else '-'}")
            trace.extend(f"Matched: #{m.task_id} {m.title} ({m.notebook_name})" for m in matched)

        phases.append(AskPhase.QUERYING_MODEL)
        try:
            content = self._gateway.query(prompt, context, key)
        except TransportError as e:
            logger.info("LLM transport error: %s", e)
            return AskResult(text=f"Error: {friendly_llm_error_message(e)}", phases=phases)

        phases.append(AskPhase.PARSING_RESPONSE)
        parsed = parse_response(content)
        if verbose:
            trace.extend(f"Command: {c}" for c in parsed.commands)

        phases.append(AskPhase.EXECUTING_ACTIONS)
        results: list[ExecutionResult] = []
        if matched and target is not None:
            results.extend(self._executor.apply_matched_moves(matched, target))
        results.extend(self._executor.execute_all(parsed.commands))
        results.extend(self._executor.execute_all(parsed.actions))

        lines = [*trace, parsed.explanation, *_render_results(results)]
        return AskResult(text="\n".join(lines), phases=phases, results=results)
