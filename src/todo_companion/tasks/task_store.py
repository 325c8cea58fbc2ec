# src/todo_companion/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import re
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .task_models import Notebook, Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

_TAGS_RE = re.compile(r"^[a-zA-Z0-9,\s\-_]*$")


def normalize_tags(raw: str | Iterable[str] | None) -> list[str]:
    """Split/clean tags; keeps first-seen order and drops duplicates."""
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    out: list[str] = []
    for p in parts:
        tag = str(p).strip()
        if tag and tag not in out:
            out.append(tag)
    return out


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class TaskStore:
    """
    SQLite notebook/task store.

    The schema is simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Invariant: at most one notebook has is_default = 1. set_default_notebook()
    clears the previous default in the same transaction.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.debug("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS notebooks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    is_default INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    notebook_id INTEGER NOT NULL REFERENCES notebooks(id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'todo',
                    priority TEXT,
                    tags TEXT NOT NULL DEFAULT '',
                    due_at REAL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("priority", "TEXT")
            add_col("tags", "TEXT NOT NULL DEFAULT ''")
            add_col("due_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_notebook ON tasks(notebook_id, id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status, due_at)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_notebook(row: sqlite3.Row) -> Notebook:
        return Notebook(
            id=int(row["id"]),
            name=str(row["name"]),
            is_default=bool(row["is_default"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            notebook_id=int(row["notebook_id"]),
            notebook_name=str(row["notebook_name"]),
            title=str(row["title"]),
            description=row["description"],
            status=TaskStatus.from_db(row["status"]),
            priority=TaskPriority.from_db(row["priority"]),
            tags=normalize_tags(row["tags"]),
            due_at=float(row["due_at"]) if row["due_at"] is not None else None,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    _TASK_SELECT = """
        SELECT t.*, n.name AS notebook_name
        FROM tasks t
        JOIN notebooks n ON n.id = t.notebook_id
    """

    @staticmethod
    def _validate_tags(tags: list[str]) -> str:
        text = ",".join(tags)
        if not _TAGS_RE.match(text):
            raise ValueError("tags may only contain letters, numbers, spaces, '-' and '_'")
        return text

    # ---- notebooks ----

    def count_notebooks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM notebooks").fetchone()
            return int(n)
        finally:
            conn.close()

    def list_notebooks(self) -> list[Notebook]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM notebooks ORDER BY id ASC").fetchall()
            return [self._row_to_notebook(r) for r in rows]
        finally:
            conn.close()

    def get_notebook(self, name: str) -> Notebook | None:
        if not name or not name.strip():
            return None
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM notebooks WHERE name = ? COLLATE NOCASE", (name.strip(),)
            ).fetchone()
            return self._row_to_notebook(row) if row else None
        finally:
            conn.close()

    def default_notebook(self) -> Notebook | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM notebooks WHERE is_default = 1 ORDER BY id ASC LIMIT 1"
            ).fetchone()
            return self._row_to_notebook(row) if row else None
        finally:
            conn.close()

    def create_notebook(self, name: str, *, is_default: bool = False) -> Notebook:
        name = (name or "").strip()
        if not name:
            raise ValueError("notebook name is required")

        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if is_default:
                cur.execute("UPDATE notebooks SET is_default = 0, updated_at = ? WHERE is_default = 1", (now,))
            try:
                cur.execute(
                    "INSERT INTO notebooks(name, is_default, created_at, updated_at) VALUES (?, ?, ?, ?)",
                    (name, 1 if is_default else 0, now, now),
                )
            except sqlite3.IntegrityError as e:
                raise ValueError(f"notebook '{name}' already exists") from e
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for notebooks insert")
            logger.debug("Notebook created id=%s name=%s default=%s", rowid, name, is_default)
            return Notebook(id=int(rowid), name=name, is_default=is_default, created_at=now, updated_at=now)
        finally:
            conn.close()

    def set_default_notebook(self, name: str) -> Notebook | None:
        """Flag `name` as the default notebook. Returns None if it doesn't exist."""
        nb = self.get_notebook(name)
        if nb is None:
            return None

        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute("UPDATE notebooks SET is_default = 0, updated_at = ? WHERE is_default = 1", (now,))
            conn.execute("UPDATE notebooks SET is_default = 1, updated_at = ? WHERE id = ?", (now, nb.id))
            conn.commit()
        finally:
            conn.close()

        nb.is_default = True
        nb.updated_at = now
        logger.debug("Default notebook set to %s", nb.name)
        return nb

    # ---- tasks ----

    def count_tasks(self, notebook_id: int | None = None) -> int:
        conn = self._get_conn()
        try:
            if notebook_id is None:
                (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            else:
                (n,) = conn.execute(
                    "SELECT COUNT(*) FROM tasks WHERE notebook_id = ?", (int(notebook_id),)
                ).fetchone()
            return int(n)
        finally:
            conn.close()

    def list_tasks(
        self,
        notebook_id: int,
        *,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
    ) -> list[Task]:
        """Tasks of one notebook in ascending id order."""
        sql = self._TASK_SELECT + " WHERE t.notebook_id = ?"
        params: list[Any] = [int(notebook_id)]
        if status is not None:
            sql += " AND t.status = ?"
            params.append(status.value)
        if priority is not None:
            sql += " AND t.priority = ?"
            params.append(priority.value)
        sql += " ORDER BY t.id ASC"

        conn = self._get_conn()
        try:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def get_task(self, task_id: int, *, notebook_id: int | None = None) -> Task | None:
        sql = self._TASK_SELECT + " WHERE t.id = ?"
        params: list[Any] = [int(task_id)]
        if notebook_id is not None:
            sql += " AND t.notebook_id = ?"
            params.append(int(notebook_id))

        conn = self._get_conn()
        try:
            row = conn.execute(sql, params).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def add_task(
        self,
        notebook_id: int,
        *,
        title: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority | None = None,
        tags: str | Iterable[str] | None = None,
        due_at: float | None = None,
        task_id: int | None = None,
    ) -> Task:
        """
        Insert a task and return it.

        `task_id` is only for imports/seeding where ids must be preserved.
        """
        if not title or not title.strip():
            raise ValueError("title is required")

        tag_list = normalize_tags(tags)
        tags_text = self._validate_tags(tag_list)
        now = time.time()

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks(
                    id, notebook_id, title, description, status, priority,
                    tags, due_at, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    int(notebook_id),
                    title.strip(),
                    description.strip() if description else None,
                    status.value,
                    priority.value if priority is not None else None,
                    tags_text,
                    due_at,
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            new_id = int(rowid)
        except sqlite3.IntegrityError as e:
            raise ValueError(f"cannot insert task: {e}") from e
        finally:
            conn.close()

        logger.debug(
            "Task added id=%s notebook_id=%s status=%s due_at=%s",
            new_id,
            notebook_id,
            status.value,
            due_at,
        )
        task = self.get_task(new_id)
        if task is None:
            raise RuntimeError(f"Task {new_id} vanished right after insert")
        return task

    def update_task_status(self, task_id: int, new_status: TaskStatus) -> None:
        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?",
                (new_status.value, now, int(task_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def delete_task(self, task_id: int) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def search_tasks(self, query: str, *, notebook_id: int | None = None) -> list[Task]:
        """Case-insensitive substring search over title, description and tags."""
        q = "%" + _escape_like((query or "").strip().lower()) + "%"
        sql = (
            self._TASK_SELECT
            + " WHERE (LOWER(t.title) LIKE ? ESCAPE '\\'"
            " OR LOWER(COALESCE(t.description, '')) LIKE ? ESCAPE '\\'"
            " OR LOWER(t.tags) LIKE ? ESCAPE '\\')"
        )
        params: list[Any] = [q, q, q]
        if notebook_id is not None:
            sql += " AND t.notebook_id = ?"
            params.append(int(notebook_id))
        sql += " ORDER BY n.id ASC, t.id ASC"

        conn = self._get_conn()
        try:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def notebook_statistics(self, notebook_id: int) -> dict[str, int]:
        """Per-status counts plus a 'total' key."""
        stats = {s.value: 0 for s in TaskStatus}
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS n FROM tasks WHERE notebook_id = ? GROUP BY status",
                (int(notebook_id),),
            ).fetchall()
        finally:
            conn.close()

        for row in rows:
            status = TaskStatus.from_db(row["status"])
            stats[status.value] += int(row["n"])
        stats["total"] = sum(stats.values())
        return stats
