# src/todo_companion/interpreter/status.py

"""
Status normalization.

Free-text status phrases ("in porgress", "to-do", "finished", "arch") are mapped
onto the four canonical TaskStatus values. extract_target_status() finds the
status a request wants to move tasks *to*, using an ordered rule table: the
first rule that yields a status wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from types import MappingProxyType

from ..tasks.task_models import TaskStatus

logger = logging.getLogger(__name__)

# Table order matters for the whole-prompt scan (rule e).
STATUS_VARIANTS: MappingProxyType[str, TaskStatus] = MappingProxyType(
    {
        # in_progress
        "in_progress": TaskStatus.IN_PROGRESS,
        "in progress": TaskStatus.IN_PROGRESS,
        "inprogress": TaskStatus.IN_PROGRESS,
        "in-progress": TaskStatus.IN_PROGRESS,
        "in porgress": TaskStatus.IN_PROGRESS,
        "in pogress": TaskStatus.IN_PROGRESS,
        "in progres": TaskStatus.IN_PROGRESS,
        "in prog": TaskStatus.IN_PROGRESS,
        "in-prog": TaskStatus.IN_PROGRESS,
        "n prgrs": TaskStatus.IN_PROGRESS,
        # todo
        "todo": TaskStatus.TODO,
        "to do": TaskStatus.TODO,
        "to-do": TaskStatus.TODO,
        "to_do": TaskStatus.TODO,
        # done
        "done": TaskStatus.DONE,
        "complete": TaskStatus.DONE,
        "completed": TaskStatus.DONE,
        "finish": TaskStatus.DONE,
        "finished": TaskStatus.DONE,
        # archived
        "archived": TaskStatus.ARCHIVED,
        "archive": TaskStatus.ARCHIVED,
        "arch": TaskStatus.ARCHIVED,
        # aliases
        "pending": TaskStatus.TODO,
    }
)

# "progress" with 1-2 missing/transposed letters, optionally glued to "in"/"n".
PROGRESS_RE = re.compile(r"\bi?n[\s_-]*p(?:ro|or|r|o)?g(?:r?e?s{1,2}|rs)?\b")

_SEPARATORS_RE = re.compile(r"[\s_-]+")
_EDGE_PUNCT = " \t\r\n'\"`.,;:!?()[]{}"


def normalize_status(value: str | TaskStatus | None) -> TaskStatus | None:
    """
    Map a status phrase to a canonical TaskStatus (or None).

    Idempotent: canonical values map to themselves.
    """
    if value is None:
        return None
    if isinstance(value, TaskStatus):
        return value

    text = str(value).strip(_EDGE_PUNCT).lower()
    if not text:
        return None

    hit = STATUS_VARIANTS.get(text)
    if hit is not None:
        return hit

    folded = _SEPARATORS_RE.sub(" ", text).strip()
    for candidate in (folded, folded.replace(" ", ""), folded.replace(" ", "_")):
        hit = STATUS_VARIANTS.get(candidate)
        if hit is not None:
            return hit

    if PROGRESS_RE.fullmatch(folded):
        return TaskStatus.IN_PROGRESS
    return None


def status_from_phrase(phrase: str) -> TaskStatus | None:
    """
    Resolve the status named at the start of `phrase`.

    Tries the longest leading word group first ("in progress please" -> in_progress),
    then a fuzzy "in p..." check on the whole phrase.
    """
    words = phrase.strip(_EDGE_PUNCT).split()
    for n in range(min(3, len(words)), 0, -1):
        hit = normalize_status(" ".join(words[:n]))
        if hit is not None:
            return hit

    if PROGRESS_RE.match(phrase.strip(_EDGE_PUNCT)):
        return TaskStatus.IN_PROGRESS
    return None


# ---- rules for extract_target_status (applied in order) ----

_RELATED_TO_RE = re.compile(r"\b(?:related\s+to|about)\b.*\bto\s+([a-z_\s-]+)")
_SET_STATUS_RE = re.compile(r"\bset\s+(?:the\s+)?status\s+of\s+(?:the\s+)?tasks?\b.*\bto\s+([a-z_\s-]+)")
_TO_RE = re.compile(r"\b(?:to|into|as)\s+((?:[a-z_-]+\s*){1,3})")
_AS_RE = re.compile(r"\bas\s+([a-z_\s-]+)$")
_TRUNCATED_RE = re.compile(r"(?:\s(?:in|to)|['\"`])$")


def _rule_related_to(text: str) -> TaskStatus | None:
    m = _RELATED_TO_RE.search(text)
    return status_from_phrase(m.group(1)) if m else None


def _rule_set_status_of(text: str) -> TaskStatus | None:
    m = _SET_STATUS_RE.search(text)
    return status_from_phrase(m.group(1)) if m else None


def _rule_to_into_as(text: str) -> TaskStatus | None:
    for m in _TO_RE.finditer(text):
        hit = status_from_phrase(m.group(1))
        if hit is not None:
            return hit
    return None


def _rule_as(text: str) -> TaskStatus | None:
    m = _AS_RE.search(text)
    return status_from_phrase(m.group(1)) if m else None


def _rule_scan_variants(text: str) -> TaskStatus | None:
    for variant, status in STATUS_VARIANTS.items():
        if re.search(rf"(?<![\w-]){re.escape(variant)}(?![\w-])", text):
            return status
    return None


def _rule_fuzzy_progress(text: str) -> TaskStatus | None:
    return TaskStatus.IN_PROGRESS if PROGRESS_RE.search(text) else None


def _rule_truncated(text: str) -> TaskStatus | None:
    if not _TRUNCATED_RE.search(text):
        return None
    if re.search(r"pro?g|porg", text):
        return TaskStatus.IN_PROGRESS
    if re.search(r"todo|pending", text):
        return TaskStatus.TODO
    if re.search(r"done|complete", text):
        return TaskStatus.DONE
    if re.search(r"arch", text):
        return TaskStatus.ARCHIVED
    # "move X to in" was cut off right before "progress".
    if text.endswith(" in"):
        return TaskStatus.IN_PROGRESS
    return None


TARGET_STATUS_RULES: tuple[tuple[str, Callable[[str], TaskStatus | None]], ...] = (
    ("related_to", _rule_related_to),
    ("set_status_of", _rule_set_status_of),
    ("to_into_as", _rule_to_into_as),
    ("as", _rule_as),
    ("scan_variants", _rule_scan_variants),
    ("fuzzy_progress", _rule_fuzzy_progress),
    ("truncated", _rule_truncated),
)


def extract_target_status(prompt: str) -> TaskStatus | None:
    """Status the request wants tasks moved to, or None."""
    text = (prompt or "").strip().lower()
    if not text:
        return None

    for name, rule in TARGET_STATUS_RULES:
        hit = rule(text)
        if hit is not None:
            logger.debug("Target status %s via rule=%s", hit.value, name)
            return hit
    return None
