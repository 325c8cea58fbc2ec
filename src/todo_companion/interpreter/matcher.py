# src/todo_companion/interpreter/matcher.py

from __future__ import annotations

import logging
import re

from ..core.ports import TaskRepo
from ..tasks.task_models import MatchedTask, Task
from .extractor import (
    UNIVERSAL,
    clean_search_term,
    drop_target_phrase,
    extract_search_terms,
)

logger = logging.getLogger(__name__)

_AND_RE = re.compile(r"\band\b")
_OR_RE = re.compile(r"\bor\b")
_RELATED_TO_RE = re.compile(r"\brelated\s+to\s+(.+)$")


def term_matches_task(task: Task, term: str) -> bool:
    """
    One atomic term against one task.

    Matches on: numeric id, case-insensitive substring of
    title/description/tags/notebook name, or exact status.
    """
    t = (term or "").strip().lower()
    if not t:
        return False
    if t == UNIVERSAL:
        return True

    if t.isascii() and t.isdigit() and int(t) == task.id:
        return True

    haystacks = (
        task.title,
        task.description or "",
        task.tags_text,
        task.notebook_name,
    )
    if any(t in h.lower() for h in haystacks):
        return True

    return t == task.status.value


def task_matches_any_term(task: Task, terms: list[str], prompt: str) -> bool:
    """
    Evaluate a term list against a task.

    Compound semantics come from the full prompt, not the term list:
    - single term: a lone match suffices
    - "or" anywhere: any matching term is enough
    - "and" without "or": every term, and that answer is final
    - "related to T1 (or|and) T2": any of the sub-terms after "related to"
    - anything else: every term
    """
    if not terms:
        return False
    if UNIVERSAL in terms:
        return True

    hits = [term_matches_task(task, t) for t in terms]
    if len(terms) == 1:
        return hits[0]

    text = (prompt or "").lower()
    has_or = bool(_OR_RE.search(text))
    has_and = bool(_AND_RE.search(text))

    if has_or and any(hits):
        return True
    if has_and and not has_or:
        return all(hits)

    related = _RELATED_TO_RE.search(text)
    if related:
        sub_terms = extract_search_terms(clean_search_term(drop_target_phrase(related.group(1))))
        return any(term_matches_task(task, t) for t in sub_terms)

    return all(hits)


class TaskMatcher:
    """Resolves a search term against the task corpus held by a TaskRepo."""

    def __init__(self, store: TaskRepo) -> None:
        self._store = store

    def find_all_tasks(self) -> list[Task]:
        """Scope for universal requests: the default notebook if any, else every notebook."""
        default = self._store.default_notebook()
        if default is not None:
            return list(self._store.list_tasks(default.id))

        out: list[Task] = []
        for nb in self._store.list_notebooks():
            out.extend(self._store.list_tasks(nb.id))
        return out

    def iter_corpus(self) -> list[Task]:
        """Every task: notebook enumeration order, then ascending task id."""
        out: list[Task] = []
        for nb in self._store.list_notebooks():
            out.extend(self._store.list_tasks(nb.id))
        return out

    def search(self, search_term: str, prompt: str) -> list[MatchedTask]:
        terms = extract_search_terms(search_term)
        if not terms:
            return []

        if terms == [UNIVERSAL]:
            matched = [MatchedTask.from_task(t) for t in self.find_all_tasks()]
        else:
            matched = [
                MatchedTask.from_task(t)
                for t in self.iter_corpus()
                if task_matches_any_term(t, terms, prompt)
            ]

        logger.debug("Matcher: terms=%s matched=%d", terms, len(matched))
        return matched
