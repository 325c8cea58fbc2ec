# src/todo_companion/interpreter/extractor.py

"""
Entity extraction from free-text requests.

- extract_search_term(): which tasks the request is about ("*" for everything)
- extract_search_terms(): split a search term into AND/OR atoms
- extract_task_title() / determine_notebook_name() / determine_priority():
  slots for task creation
- extract_notebook_hint(): "for the X notebook" style references
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any

from ..tasks.task_models import TaskPriority
from .status import STATUS_VARIANTS

logger = logging.getLogger(__name__)

UNIVERSAL = "*"
UNIVERSAL_WORDS = frozenset({"*", "all", "every", "everything"})

# Words that narrow "all tasks" down to a subset ("all tasks related to X").
_QUALIFIERS = (
    r"about|related|concerning|regarding|tagged|with|in|for|from|of|containing|matching"
    r"|named|called|titled|that|which|where|under"
)

_UNIVERSAL_RULES: tuple[re.Pattern[str], ...] = (
    re.compile(rf"\b(?:all|every)\s+(?:the\s+)?(?:tasks?|things?|items?|todos?)\b(?!\s+(?:{_QUALIFIERS})\b)"),
    re.compile(
        r"\bmove\s+(?:all|everything)(?:\s+(?:the\s+)?(?:tasks?|things?|items?))?"
        r"\s*(?:(?:to|into|as)\b|$)"
    ),
)

_LEAD_IN = r"(?:about\s+|related\s+to\s+|concerning\s+|regarding\s+)?"

# Each rule captures the raw phrase; trailing "to <status>" is dropped afterwards.
_SEARCH_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("related_to", re.compile(r"\brelated\s+to\s+(.+)$")),
    (
        "status_of",
        re.compile(rf"\bstatus\s+of\s+(?:(?:all\s+)?(?:the\s+)?tasks?\s+)?{_LEAD_IN}(.+)$"),
    ),
    ("task_id", re.compile(r"\btask\s+(?:id\s+)?#?(\d+)\s+in\s+\S+")),
    (
        "move",
        re.compile(
            r"^(?:please\s+)?(?:move|change|update|set)\s+(?:the\s+)?(?:status\s+of\s+)?"
            rf"(?:all\s+)?(?:the\s+)?(?:tasks?\s+)?{_LEAD_IN}(.+)$"
        ),
    ),
    ("mark", re.compile(rf"\bmark\s+(?:all\s+)?(?:the\s+)?(?:tasks?\s+)?{_LEAD_IN}(.+)$")),
)

# Greedy head: splits at the LAST "to|into|as".
_TRAILING_TARGET_RE = re.compile(r"^(?P<head>.+?)\s+(?:to|into|as)\s+(?P<tail>(?:(?!\s(?:to|into|as)\s).)+)$")
_STOP_WORDS_RE = re.compile(
    r"\b(?:related\s+to|tasks?|about|concerning|regarding|status|state"
    r"|move|change|update|set|mark|please)\b"
)
_LEADING_ARTICLES_RE = re.compile(r"^(?:(?:the|a|an|my|all)\s+)+")
_NON_WORD_RE = re.compile(r"[^\w\s-]")
_WS_RE = re.compile(r"\s+")
_CONNECTIVE_RE = re.compile(r"\s+(?:and|or)\s+")

_STATUS_ALTERNATION = "|".join(
    re.escape(v) for v in sorted(STATUS_VARIANTS, key=len, reverse=True)
)
_TRAILING_STATUS_RE = re.compile(rf"\s+(?:as\s+)?(?:{_STATUS_ALTERNATION})$")
_LEADING_STATUS_RE = re.compile(rf"^(?:{_STATUS_ALTERNATION})\s+")


def drop_target_phrase(phrase: str) -> str:
    """Remove a trailing "to|into|as <something>" clause (the move target)."""
    m = _TRAILING_TARGET_RE.match(phrase.strip())
    return m.group("head") if m else phrase.strip()


def clean_search_term(term: str) -> str:
    """Strip action/status vocabulary and punctuation; collapse whitespace."""
    t = (term or "").lower()
    t = _STOP_WORDS_RE.sub(" ", t)
    t = _NON_WORD_RE.sub(" ", t)
    t = _WS_RE.sub(" ", t).strip(" -")
    t = _LEADING_ARTICLES_RE.sub("", t)
    return t.strip()


def is_universal_request(prompt: str) -> bool:
    text = (prompt or "").strip().lower()
    return any(rule.search(text) for rule in _UNIVERSAL_RULES)


def extract_search_term(prompt: str) -> str:
    """
    Search phrase for the tasks a request refers to.

    Returns "*" for universal quantifiers and "" when nothing specific remains.
    """
    text = _WS_RE.sub(" ", (prompt or "").strip().lower())
    if not text:
        return ""

    if is_universal_request(text):
        logger.debug("Search term: universal quantifier")
        return UNIVERSAL

    for name, rule in _SEARCH_RULES:
        m = rule.search(text)
        if not m:
            continue
        if name == "task_id":
            return m.group(1)
        cleaned = clean_search_term(drop_target_phrase(m.group(1)))
        if cleaned:
            logger.debug("Search term %r via rule=%s", cleaned, name)
            return cleaned

    remainder = _TRAILING_STATUS_RE.sub("", drop_target_phrase(text))
    remainder = _LEADING_STATUS_RE.sub("", remainder)
    cleaned = clean_search_term(remainder)
    logger.debug("Search term %r via fallback", cleaned)
    return cleaned


def extract_search_terms(term: str) -> list[str]:
    """Split a search term on " and " / " or " into atomic terms."""
    t = (term or "").strip().lower()
    if not t:
        return []
    if t in UNIVERSAL_WORDS:
        return [UNIVERSAL]

    out: list[str] = []
    for part in _CONNECTIVE_RE.split(t):
        part = _LEADING_ARTICLES_RE.sub("", part.strip()).strip()
        if part and part not in out:
            out.append(part)
    return out


# ---- task creation slots ----

_DOUBLE_QUOTED_RE = re.compile(r"[\"“]([^\"”]+)[\"”]")
_SINGLE_QUOTED_RE = re.compile(r"(?<!\w)'([^']+)'(?!\w)")

_CREATE_PREFIX_RE = re.compile(
    r"^\s*(?:please\s+)?(?:can\s+you\s+)?(?:create|add|make)\s+(?:me\s+)?(?:a\s+|an\s+|the\s+)?"
    r"(?:new\s+)?(?:(?:high|medium|low)[\s-]+priority\s+)?(?:task|todo)s?\b\s*(?:called|named|titled|to|for|:|-)?\s*",
    re.IGNORECASE,
)
_CREATE_TAIL_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\s+(?:in|to|into|for)\s+(?:the\s+|my\s+)?[\w-]+\s+notebook\b.*$", re.IGNORECASE),
    re.compile(r"\s+(?:in|to|into)\s+notebook\s+\S+.*$", re.IGNORECASE),
    re.compile(r"\s*,?\s+with\s+(?:a\s+)?(?:high|medium|low)\s+priority\b.*$", re.IGNORECASE),
    re.compile(r"\s*,?\s+(?:with\s+)?priority\s+(?:of\s+)?(?:high|medium|low)\b.*$", re.IGNORECASE),
    re.compile(r"\s*,?\s+(?:high|medium|low)\s+priority\b.*$", re.IGNORECASE),
)


def extract_task_title(prompt: str) -> str | None:
    """Title from the first quoted substring, else from boilerplate-stripped text."""
    text = (prompt or "").strip()
    if not text:
        return None

    m = _DOUBLE_QUOTED_RE.search(text) or _SINGLE_QUOTED_RE.search(text)
    if m:
        title = m.group(1).strip()
        return title or None

    title = _CREATE_PREFIX_RE.sub("", text, count=1)
    for rx in _CREATE_TAIL_RES:
        title = rx.sub("", title)
    title = title.strip(" \t.,;:!?-")
    return title or None


def determine_notebook_name(prompt: str, notebooks: Iterable[Any]) -> str | None:
    """
    Notebook for a new task: the first existing notebook named in the prompt,
    else the default notebook, else None.
    """
    text = (prompt or "").lower()
    books = list(notebooks)

    for nb in books:
        name = str(nb.name).strip()
        if name and re.search(rf"(?<![\w-]){re.escape(name.lower())}(?![\w-])", text):
            return name

    for nb in books:
        if getattr(nb, "is_default", False):
            return str(nb.name)
    return None


_PRIORITY_BEFORE_RE = re.compile(r"\b(high|medium|low)[\s-]+priority\b")
_PRIORITY_AFTER_RE = re.compile(r"\bpriority\b.*?\b(high|medium|low)\b")


def determine_priority(prompt: str) -> TaskPriority | None:
    text = (prompt or "").lower()
    m = _PRIORITY_BEFORE_RE.search(text) or _PRIORITY_AFTER_RE.search(text)
    return TaskPriority(m.group(1)) if m else None


_NOTEBOOK_HINT_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:for|in|from|of|to|into)\s+(?:the\s+|my\s+)?[\"']?([\w-]+)[\"']?\s+notebook\b"),
    re.compile(r"\bnotebook\s+[\"']?([\w-]+)[\"']?"),
)
_NOT_A_NAME = frozenset({"the", "my", "a", "an", "all", "this", "that", "default", "each", "every"})


def extract_notebook_hint(prompt: str) -> str | None:
    """Notebook name mentioned textually ("for the work notebook", "notebook work")."""
    text = (prompt or "").strip().lower()
    for rx in _NOTEBOOK_HINT_RES:
        m = rx.search(text)
        if m and m.group(1) not in _NOT_A_NAME:
            return m.group(1)
    return None
