# src/gtd/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..core.errors import (
    AmbiguousIDError,
    ConstraintViolation,
    SelfBlockError,
    TaskNotFoundError,
    ValidationError,
)
from ..core.ports import Clock
from ..core.providers import SystemClock
from .lifecycle import check_transition
from .migrations import ensure_schema
from .task_ids import generate_id, is_prefix_candidate, short_form, suggest_similar
from .task_models import (
    Task,
    TaskKind,
    TaskPriority,
    TaskState,
    format_tags,
    parse_tags,
    validate_task,
)

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT id, parent, priority, state, kind, title, description, author,
           created, updated, source, blocked_by, tags
    FROM tasks
    """

_PRIORITY_ORDER = """
    CASE priority
        WHEN 'high' THEN 0
        WHEN 'medium' THEN 1
        WHEN 'low' THEN 2
        ELSE 3
    END
    """

_STATE_ORDER = """
    CASE state
        WHEN 'IN_PROGRESS' THEN 0
        WHEN 'NEW' THEN 1
        ELSE 2
    END
    """

# Legacy rows keep TIMESTAMP text; compare everything as epoch seconds.
_CREATED_KEY = """
    CASE typeof(created)
        WHEN 'text' THEN (julianday(created) - 2440587.5) * 86400.0
        ELSE created
    END
    """


@dataclass(slots=True)
class ListOptions:
    """
    Filters for TaskStore.list().

    With all=False and no explicit state, INBOX and INVALID are always hidden,
    DONE unless show_done, CANCELLED unless show_cancelled.
    """

    state: str | None = None
    priority: str | None = None
    kind: str | None = None
    tag: str | None = None
    blocked: bool = False
    show_done: bool = False
    show_cancelled: bool = False
    limit: int = 0
    all: bool = False


def _to_ts(raw: Any) -> float:
    """Epoch seconds; legacy rows may still hold 'YYYY-MM-DD HH:MM:SS' text (UTC)."""
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw)
    try:
        return float(raw)
    except (TypeError, ValueError):
        pass
    try:
        dt = datetime.fromisoformat(str(raw))
    except ValueError:
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.timestamp()


def _check_enum(value: str | None, enum_cls: type, label: str) -> None:
    if value is None:
        return
    try:
        enum_cls(value)
    except ValueError:
        raise ValidationError(f"invalid {label}: {value}") from None


class TaskStore:
    """
    SQLite task store.

    Schema handling:
    - create table/indexes/trigger if missing
    - rebuild the table when the state CHECK predates INBOX/INVALID
      (see migrations.py), before any other operation

    Thread-safety:
    - each method opens its own SQLite connection
    - WAL + busy timeout let two CLI invocations race without "database is locked"
    """

    def __init__(
        self,
        db_path: str | Path = "claude-tasks.db",
        *,
        clock: Clock | None = None,
        busy_timeout: float = 5.0,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock: Clock = clock or SystemClock()
        self._busy_timeout = float(busy_timeout)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self, *, foreign_keys: bool = True) -> sqlite3.Connection:
        # Autocommit mode: multi-statement writes go through _transaction().
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._busy_timeout,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn, foreign_keys=foreign_keys)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection, *, foreign_keys: bool) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA foreign_keys={'ON' if foreign_keys else 'OFF'}")

    @contextlib.contextmanager
    def _connect(self, *, foreign_keys: bool = True) -> Iterator[sqlite3.Connection]:
        conn = self._get_conn(foreign_keys=foreign_keys)
        try:
            yield conn
        finally:
            conn.close()

    @contextlib.contextmanager
    def _transaction(self, *, foreign_keys: bool = True) -> Iterator[sqlite3.Connection]:
        """BEGIN IMMEDIATE ... COMMIT; any exception rolls back and propagates."""
        with self._connect(foreign_keys=foreign_keys) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            try:
                conn.execute("COMMIT")
            except sqlite3.IntegrityError as e:
                conn.execute("ROLLBACK")
                raise ConstraintViolation(str(e)) from e

    def _ensure_schema(self) -> None:
        # Table rebuild must run with FK enforcement off (DROP TABLE would cascade checks).
        with self._connect(foreign_keys=False) as conn:
            if ensure_schema(conn):
                logger.info("TaskStore migration: state constraint widened db=%s", self._db_path)

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            kind=TaskKind(row["kind"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            author=str(row["author"] or ""),
            priority=TaskPriority.from_db(row["priority"]),
            state=TaskState.from_db(row["state"]),
            parent=row["parent"],
            blocked_by=row["blocked_by"],
            tags=parse_tags(row["tags"]),
            source=row["source"] or None,
            created=_to_ts(row["created"]),
            updated=_to_ts(row["updated"]),
        )

    def _fetch_all(self, conn: sqlite3.Connection, sql: str, params: Any = ()) -> list[Task]:
        return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]

    def _fetch_exact(self, conn: sqlite3.Connection, task_id: str) -> Task | None:
        row = conn.execute(f"{_SELECT} WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def _children(self, conn: sqlite3.Connection, parent_id: str) -> list[Task]:
        return self._fetch_all(
            conn,
            f"{_SELECT} WHERE parent = ? ORDER BY {_PRIORITY_ORDER}, {_CREATED_KEY} ASC",
            (parent_id,),
        )

    def _suggestions(self, conn: sqlite3.Connection, ref: str) -> list[str]:
        rows = conn.execute(
            f"SELECT id, title FROM tasks ORDER BY {_CREATED_KEY} DESC"
        ).fetchall()
        return suggest_similar(ref, [(str(r["id"]), str(r["title"])) for r in rows])

    @staticmethod
    def _check_self_block(task: Task) -> None:
        if task.blocked_by is not None and task.blocked_by == task.id:
            raise SelfBlockError(task.id)

    # ---- public API: CRUD ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def create(self, task: Task) -> Task:
        """
        Validate and insert a task. Assigns an id when the caller left it empty,
        and stamps created/updated from the clock.

        Raises ValidationError, SelfBlockError or ConstraintViolation
        (dangling parent/blocked_by, duplicate id).
        """
        validate_task(task)
        now = self._clock.now()
        task_id = task.id or generate_id(task.kind, task.title, task.description, now)
        if task.blocked_by is not None and task.blocked_by == task_id:
            raise SelfBlockError(task_id)

        try:
            with self._transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO tasks(
                        id, parent, priority, state, kind, title, description,
                        author, created, updated, source, blocked_by, tags
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        task_id,
                        task.parent,
                        str(task.priority),
                        str(task.state),
                        str(task.kind),
                        task.title.strip(),
                        task.description.strip(),
                        task.author,
                        now,
                        now,
                        task.source,
                        task.blocked_by,
                        format_tags(task.tags),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ConstraintViolation(str(e)) from e

        task.id = task_id
        task.title = task.title.strip()
        task.description = task.description.strip()
        task.created = now
        task.updated = now
        logger.info(
            "Task created id=%s kind=%s state=%s parent=%s",
            short_form(task_id),
            task.kind,
            task.state,
            task.parent and short_form(task.parent),
        )
        return task

    def update(self, task: Task) -> Task:
        """Full replace of every mutable field; id and created never change."""
        validate_task(task)
        self._check_self_block(task)
        now = self._clock.now()

        try:
            with self._transaction() as conn:
                cur = conn.execute(
                    """
                    UPDATE tasks
                    SET parent = ?, priority = ?, state = ?, kind = ?, title = ?,
                        description = ?, author = ?, source = ?, blocked_by = ?,
                        tags = ?, updated = ?
                    WHERE id = ?
                    """,
                    (
                        task.parent,
                        str(task.priority),
                        str(task.state),
                        str(task.kind),
                        task.title.strip(),
                        task.description.strip(),
                        task.author,
                        task.source,
                        task.blocked_by,
                        format_tags(task.tags),
                        now,
                        task.id,
                    ),
                )
                if cur.rowcount == 0:
                    raise TaskNotFoundError(task.id)
        except sqlite3.IntegrityError as e:
            raise ConstraintViolation(str(e)) from e

        task.title = task.title.strip()
        task.description = task.description.strip()
        task.updated = now
        logger.debug("Task updated id=%s", short_form(task.id))
        return task

    def delete(self, task_id: str) -> None:
        """
        Remove one row by exact id. No cascade: children and blocked tasks keep
        dangling references, so FK enforcement is off for this statement.
        """
        with self._transaction(foreign_keys=False) as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            if cur.rowcount == 0:
                raise TaskNotFoundError(task_id)
        logger.info("Task deleted id=%s", short_form(task_id))

    def get_by_id(self, ref: str) -> Task:
        """
        Resolve a full id or a unique prefix (4..39 chars), like git.

        Raises TaskNotFoundError (with suggestions) or AmbiguousIDError.
        """
        ref = (ref or "").strip().lower()
        with self._connect() as conn:
            task = self._fetch_exact(conn, ref)
            if task is not None:
                return task

            if not is_prefix_candidate(ref):
                raise TaskNotFoundError(ref, self._suggestions(conn, ref))

            matches = self._fetch_all(
                conn,
                f"{_SELECT} WHERE substr(id, 1, ?) = ? ORDER BY {_CREATED_KEY} DESC",
                (len(ref), ref),
            )
            if not matches:
                raise TaskNotFoundError(ref, self._suggestions(conn, ref))

        if len(matches) > 1:
            raise AmbiguousIDError(
                ref,
                len(matches),
                [f"{t.short_id} ({t.title})" for t in matches],
            )
        return matches[0]

    # ---- public API: queries ----

    def get_children(self, parent_id: str) -> list[Task]:
        """Direct children, ordered by priority rank then created ascending."""
        with self._connect() as conn:
            return self._children(conn, parent_id)

    def list(self, opts: ListOptions | None = None) -> list[Task]:
        opts = opts or ListOptions()
        _check_enum(opts.state, TaskState, "state")
        _check_enum(opts.priority, TaskPriority, "priority")
        _check_enum(opts.kind, TaskKind, "kind")

        conditions: list[str] = []
        params: list[Any] = []

        if not opts.all and not opts.state:
            hidden = [str(TaskState.INBOX), str(TaskState.INVALID)]
            if not opts.show_done:
                hidden.append(str(TaskState.DONE))
            if not opts.show_cancelled:
                hidden.append(str(TaskState.CANCELLED))
            conditions.append(f"state NOT IN ({', '.join('?' for _ in hidden)})")
            params.extend(hidden)

        if opts.state:
            conditions.append("state = ?")
            params.append(opts.state)
        if opts.priority:
            conditions.append("priority = ?")
            params.append(opts.priority)
        if opts.kind:
            conditions.append("kind = ?")
            params.append(opts.kind)
        if opts.tag:
            # Substring match on the stored text: "db" also matches "database".
            conditions.append("tags LIKE ?")
            params.append(f"%{opts.tag}%")
        if opts.blocked:
            conditions.append("blocked_by IS NOT NULL")

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"{_SELECT} {where} ORDER BY {_STATE_ORDER}, {_PRIORITY_ORDER}, {_CREATED_KEY} DESC"
        if not opts.all and opts.limit > 0:
            sql += " LIMIT ?"
            params.append(int(opts.limit))

        with self._connect() as conn:
            return self._fetch_all(conn, sql, params)

    def list_all(self) -> list[Task]:
        return self.list(ListOptions(all=True))

    def list_by_state(self, state: str) -> list[Task]:
        """Every task in exactly `state`, newest first (no default hiding)."""
        _check_enum(state, TaskState, "state")
        with self._connect() as conn:
            return self._fetch_all(
                conn,
                f"{_SELECT} WHERE state = ? ORDER BY {_CREATED_KEY} DESC",
                (str(state),),
            )

    def search(self, text: str) -> list[Task]:
        """Case-insensitive substring match on title or description, newest first."""
        needle = (text or "").lower()
        with self._connect() as conn:
            return self._fetch_all(
                conn,
                f"""
                {_SELECT}
                WHERE instr(lower(title), ?) > 0
                   OR instr(lower(coalesce(description, '')), ?) > 0
                ORDER BY {_CREATED_KEY} DESC
                """,
                (needle, needle),
            )

    # ---- public API: lifecycle / blocking ----

    def update_state(self, ref: str, target: str) -> Task:
        """
        Move a task to `target` if the state machine allows it.

        The task and its children are read and the state written in one
        transaction; a rejected transition writes nothing.
        Raises IllegalTransitionError / ParentIncompleteError.
        """
        _check_enum(target, TaskState, "state")
        target_state = TaskState(target)
        task_id = self.get_by_id(ref).id
        now = self._clock.now()

        with self._transaction() as conn:
            task = self._fetch_exact(conn, task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            children = self._children(conn, task_id)
            try:
                check_transition(task, target_state, children)
            except Exception as e:
                logger.debug("Transition rejected id=%s: %s", short_form(task_id), e)
                raise
            conn.execute(
                "UPDATE tasks SET state = ?, updated = ? WHERE id = ?",
                (str(target_state), now, task_id),
            )

        logger.info(
            "Task state changed id=%s %s -> %s",
            short_form(task_id),
            task.state,
            target_state,
        )
        task.state = target_state
        task.updated = now
        return task

    def block(self, task_ref: str, blocker_ref: str) -> Task:
        """Mark `task_ref` as blocked by `blocker_ref` (last write wins)."""
        task = self.get_by_id(task_ref)
        blocker = self.get_by_id(blocker_ref)
        if task.id == blocker.id:
            raise SelfBlockError(task.id)

        now = self._clock.now()
        try:
            with self._transaction() as conn:
                conn.execute(
                    "UPDATE tasks SET blocked_by = ?, updated = ? WHERE id = ?",
                    (blocker.id, now, task.id),
                )
        except sqlite3.IntegrityError as e:
            raise ConstraintViolation(str(e)) from e

        logger.info("Task blocked id=%s by=%s", task.short_id, blocker.short_id)
        task.blocked_by = blocker.id
        task.updated = now
        return task

    def unblock(self, task_ref: str) -> Task:
        """Clear blocked_by; already-unblocked tasks are returned unchanged."""
        task = self.get_by_id(task_ref)
        if task.blocked_by is None:
            return task

        now = self._clock.now()
        with self._transaction() as conn:
            conn.execute(
                "UPDATE tasks SET blocked_by = NULL, updated = ? WHERE id = ?",
                (now, task.id),
            )

        logger.info("Task unblocked id=%s", task.short_id)
        task.blocked_by = None
        task.updated = now
        return task
