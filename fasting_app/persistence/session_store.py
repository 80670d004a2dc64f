"""SQLite persistence layer for sessions, profile and milestone markers."""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Union

import orjson
import structlog

from ..errors import MalformedDataError, PersistenceError
from ..state.models import Profile, Session
from ..utils.time import format_timestamp, parse_timestamp
from .base import BaseSessionStore, notified_stages_key


class SQLiteSessionStore(BaseSessionStore):
    """SQLite-based session persistence layer."""

    def __init__(self, db_path: Union[str, Path] = "fasting.db"):
        self.db_path = Path(db_path)
        self.logger = structlog.get_logger("fasting.store")
        self._lock = threading.Lock()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._write("init", "schema") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    plan_id TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    completed INTEGER NOT NULL DEFAULT 0,
                    actual_fasting_hours REAL NOT NULL DEFAULT 0
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS profile (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    level INTEGER NOT NULL,
                    total_completed_fasts INTEGER NOT NULL,
                    current_streak INTEGER NOT NULL,
                    longest_streak INTEGER NOT NULL,
                    total_hours_fasted REAL NOT NULL,
                    last_fasting_date TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_sessions_start_time ON sessions(start_time)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_sessions_end_time ON sessions(end_time)
            """)

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", db_path=str(self.db_path), error=str(e))
            raise
        finally:
            if conn:
                conn.close()

    @contextmanager
    def _write(self, operation: str, target: str):
        """Serialized, committed write; sqlite errors become PersistenceError."""
        with self._lock:
            try:
                with self._get_connection() as conn:
                    yield conn
                    conn.commit()
            except sqlite3.Error as e:
                self.logger.error(
                    "Failed to persist",
                    operation=operation,
                    target=target,
                    error=str(e)
                )
                raise PersistenceError(
                    f"Failed to {operation} {target}: {e}",
                    operation=operation,
                    target=target
                ) from e

    @contextmanager
    def _read(self, operation: str, target: str):
        """Read connection; sqlite errors become PersistenceError."""
        try:
            with self._get_connection() as conn:
                yield conn
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Failed to {operation} {target}: {e}",
                operation=operation,
                target=target
            ) from e

    def load_all(self) -> list[Session]:
        """Load all sessions ordered by start time."""
        with self._read("load", "sessions") as conn:
            rows = conn.execute("""
                SELECT * FROM sessions ORDER BY start_time
            """).fetchall()

        return [self._row_to_session(row) for row in rows]

    def append(self, session: Session) -> None:
        """
        Store a new session.

        Raises:
            PersistenceError: if the write fails or the id already exists
        """
        with self._write("append", f"session:{session.id}") as conn:
            conn.execute("""
                INSERT INTO sessions (
                    id, plan_id, start_time, end_time, completed, actual_fasting_hours
                ) VALUES (?, ?, ?, ?, ?, ?)
            """, self._session_params(session))

        self.logger.info(
            "Session stored",
            session_id=session.id,
            plan_id=session.plan_id,
            session_key=session.session_key
        )

    def update_by_id(self, session_id: str, mutator: Callable[[Session], Session]) -> Session:
        """Read, mutate and write back one session inside a single transaction."""
        target = f"session:{session_id}"

        with self._write("update", target) as conn:
            row = conn.execute("""
                SELECT * FROM sessions WHERE id = ?
            """, (session_id,)).fetchone()

            if row is None:
                raise PersistenceError(
                    f"Session {session_id} not found",
                    operation="update",
                    target=target
                )

            updated = mutator(self._row_to_session(row))
            conn.execute("""
                UPDATE sessions SET
                    plan_id = ?,
                    start_time = ?,
                    end_time = ?,
                    completed = ?,
                    actual_fasting_hours = ?
                WHERE id = ?
            """, (*self._session_params(updated)[1:], session_id))

        self.logger.info(
            "Session updated",
            session_id=session_id,
            status=updated.status.value,
            actual_fasting_hours=round(updated.actual_fasting_hours, 4)
        )

        return updated

    def load_profile(self) -> Profile:
        with self._read("load", "profile") as conn:
            row = conn.execute("SELECT * FROM profile WHERE id = 1").fetchone()

        if row is None:
            return Profile()

        return Profile(
            level=row["level"],
            total_completed_fasts=row["total_completed_fasts"],
            current_streak=row["current_streak"],
            longest_streak=row["longest_streak"],
            total_hours_fasted=row["total_hours_fasted"],
            last_fasting_date=parse_timestamp(row["last_fasting_date"])
        )

    def save_profile(self, profile: Profile) -> None:
        """Write the single profile row, last writer wins."""
        with self._write("save", "profile") as conn:
            conn.execute("""
                INSERT OR REPLACE INTO profile (
                    id, level, total_completed_fasts, current_streak,
                    longest_streak, total_hours_fasted, last_fasting_date
                ) VALUES (1, ?, ?, ?, ?, ?, ?)
            """, (
                profile.level,
                profile.total_completed_fasts,
                profile.current_streak,
                profile.longest_streak,
                profile.total_hours_fasted,
                format_timestamp(profile.last_fasting_date)
            ))

    def load_notified_stages(self, session_key: str) -> set[int]:
        key = notified_stages_key(session_key)

        with self._read("load", key) as conn:
            row = conn.execute("""
                SELECT value FROM kv_store WHERE key = ?
            """, (key,)).fetchone()

        if row is None:
            return set()

        try:
            return {int(stage) for stage in orjson.loads(row["value"])}
        except (orjson.JSONDecodeError, TypeError, ValueError) as e:
            raise MalformedDataError(
                f"Unreadable milestone markers for {key}",
                raw_data=str(row["value"]),
                expected_format="JSON array of integers",
                context={"session_key": session_key}
            ) from e

    def save_notified_stages(self, session_key: str, stages: Iterable[int]) -> None:
        key = notified_stages_key(session_key)
        value = orjson.dumps(sorted(stages))

        with self._write("save", key) as conn:
            conn.execute("""
                INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)
            """, (key, value))

    def clear_notified_stages(self, session_key: str) -> None:
        key = notified_stages_key(session_key)

        with self._write("clear", key) as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def _session_params(self, session: Session) -> tuple:
        return (
            session.id,
            session.plan_id,
            format_timestamp(session.start_time),
            format_timestamp(session.end_time),
            1 if session.completed else 0,
            session.actual_fasting_hours
        )

    def _row_to_session(self, row: sqlite3.Row) -> Session:
        """Convert database row to Session object."""
        return Session(
            id=row["id"],
            plan_id=row["plan_id"],
            start_time=parse_timestamp(row["start_time"]),
            end_time=parse_timestamp(row["end_time"]),
            completed=bool(row["completed"]),
            actual_fasting_hours=row["actual_fasting_hours"]
        )
