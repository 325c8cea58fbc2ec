# src/todo_companion/interpreter/intents.py

"""
Intent classification.

Rules are tried in a fixed precedence because they overlap lexically
("show high priority tasks" vs "show done tasks"); the first match wins.
No match means the request goes to the model without local handling.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import StrEnum

from ..tasks.task_models import TaskPriority, TaskStatus
from .extractor import (
    determine_priority,
    extract_notebook_hint,
    extract_search_term,
    extract_task_title,
)
from .status import extract_target_status, normalize_status

logger = logging.getLogger(__name__)


class IntentKind(StrEnum):
    STATISTICS = "statistics"
    PRIORITY_LISTING = "priority_listing"
    DEADLINE_LISTING = "deadline_listing"
    TASK_CREATION = "task_creation"
    STATUS_LISTING = "status_listing"
    NOTEBOOK_LISTING = "notebook_listing"
    TASK_MOVEMENT = "task_movement"


class DeadlineKind(StrEnum):
    UPCOMING = "upcoming"
    DUE = "due"
    OVERDUE = "overdue"


@dataclass(frozen=True, slots=True)
class Intent:
    kind: IntentKind
    target_status: TaskStatus | None = None
    search_term: str | None = None
    notebook_name: str | None = None
    priority: TaskPriority | None = None
    title: str | None = None
    deadline: DeadlineKind | None = None
    list_status: TaskStatus | None = None


_LIST_VERB = r"(?:show|display|get|list|find|view|give)"

_STATISTICS_RE = re.compile(r"\b(?:show|display|get)\s+(?:me\s+)?(?:the\s+)?(?:task\s+)?stat(?:s|istics)\b")
_PRIORITY_RE = re.compile(rf"\b{_LIST_VERB}\b.*?\b(high|medium|low)[\s-]+priority\b")
_DEADLINE_RE = re.compile(
    rf"\b{_LIST_VERB}\s+(?:me\s+)?(?:all\s+)?(?:the\s+|my\s+)?(upcoming|due|overdue)\s+(?:tasks|deadlines)\b"
)
_CREATION_RE = re.compile(r"\b(?:create|add)\b(?:\s+[\w-]+){0,3}?\s+(?:task|todo)s?\b")
_STATUS_LISTING_RE = re.compile(
    rf"\b{_LIST_VERB}\b.*?\b(todo|to do|to-do|in progress|in_progress|in-progress|done|archived)\s+tasks\b"
)
_NOTEBOOK_LISTING_RE = re.compile(
    r"\b(?:list|show|display)\s+(?:me\s+)?(?:all\s+)?(?:of\s+)?(?:my\s+|the\s+)?notebooks\b"
)

_MOVE_RE = re.compile(r"\bmove\b")
_CHANGE_VERB_RE = re.compile(r"\b(?:change|set|update)\b")
_CHANGE_OBJECT_RE = re.compile(r"\b(?:status|to)\b")
_MARK_RE = re.compile(r"\bmark\b.*\b(?:as|to)\b")


def _is_movement(text: str) -> bool:
    if _MOVE_RE.search(text):
        return True
    if _CHANGE_VERB_RE.search(text) and _CHANGE_OBJECT_RE.search(text):
        return True
    return bool(_MARK_RE.search(text))


def classify(prompt: str) -> Intent | None:
    """Classify a request; None means "let the model decide"."""
    raw = (prompt or "").strip()
    text = re.sub(r"\s+", " ", raw.lower())
    if not text:
        return None

    intent = _classify(raw, text)
    if intent is None:
        logger.debug("Intent: none")
    else:
        logger.debug("Intent: %s", intent)
    return intent


def _classify(raw: str, text: str) -> Intent | None:
    if _STATISTICS_RE.search(text):
        return Intent(IntentKind.STATISTICS, notebook_name=extract_notebook_hint(text))

    m = _PRIORITY_RE.search(text)
    if m:
        return Intent(
            IntentKind.PRIORITY_LISTING,
            priority=TaskPriority(m.group(1)),
            notebook_name=extract_notebook_hint(text),
        )

    m = _DEADLINE_RE.search(text)
    if m:
        return Intent(
            IntentKind.DEADLINE_LISTING,
            deadline=DeadlineKind(m.group(1)),
            notebook_name=extract_notebook_hint(text),
        )

    if _CREATION_RE.search(text):
        return Intent(
            IntentKind.TASK_CREATION,
            title=extract_task_title(raw),
            priority=determine_priority(text),
            notebook_name=extract_notebook_hint(text),
        )

    m = _STATUS_LISTING_RE.search(text)
    if m:
        return Intent(
            IntentKind.STATUS_LISTING,
            list_status=normalize_status(m.group(1)),
            notebook_name=extract_notebook_hint(text),
        )

    if _NOTEBOOK_LISTING_RE.search(text):
        return Intent(IntentKind.NOTEBOOK_LISTING)

    if _is_movement(text):
        return Intent(
            IntentKind.TASK_MOVEMENT,
            target_status=extract_target_status(text),
            search_term=extract_search_term(text),
        )

    return None
