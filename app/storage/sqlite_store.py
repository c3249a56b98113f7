# app/storage/sqlite_store.py
from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import date, datetime
from typing import Iterable, List, Optional

from pydantic import ValidationError

from models import Question, LeaderboardEntry
from app.errors import FetchError, StoreError

logger = logging.getLogger(__name__)

# DB file path: app/storage/trivia.db
DEFAULT_DB_PATH = os.path.join(os.path.dirname(__file__), "trivia.db")

# scope value of the global (all days) leaderboard
ALL_SCOPE = "all"


def _to_iso(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


def _from_iso(s: str) -> datetime:
    return datetime.fromisoformat(s)


def scope_key(day: Optional[date]) -> str:
    return day.isoformat() if day else ALL_SCOPE


def _day_from_scope(scope: str) -> Optional[date]:
    return None if scope == ALL_SCOPE else date.fromisoformat(scope)


class SqliteStore:
    """Question pool and leaderboard, one SQLite file."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        with self._connect() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS questions (
                    id TEXT PRIMARY KEY,
                    question TEXT NOT NULL,
                    answers_json TEXT NOT NULL,     -- JSON array, display order
                    correct_answer TEXT NOT NULL,
                    day TEXT                        -- ISO date or NULL (any day)
                )
                """
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_questions_day ON questions(day)"
            )

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS leaderboard (
                    user_id TEXT NOT NULL,
                    scope TEXT NOT NULL,            -- 'all' | ISO date
                    username TEXT NOT NULL,
                    metric REAL NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, scope)
                )
                """
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_leaderboard_scope_metric "
                "ON leaderboard(scope, metric)"
            )
            conn.commit()

    # --------------------
    # Questions
    # --------------------
    def save_question(self, question: Question) -> None:
        self.save_questions([question])

    def save_questions(self, questions: Iterable[Question]) -> int:
        rows = [
            (
                q.id,
                q.question,
                json.dumps(q.answers, ensure_ascii=False),
                q.correct_answer,
                q.day.isoformat() if q.day else None,
            )
            for q in questions
        ]
        try:
            self.init_db()
            with self._connect() as conn:
                conn.executemany(
                    """
                    INSERT INTO questions(id, question, answers_json, correct_answer, day)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        question=excluded.question,
                        answers_json=excluded.answers_json,
                        correct_answer=excluded.correct_answer,
                        day=excluded.day
                    """,
                    rows,
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error("Error saving questions: %s", e)
            raise StoreError(f"Could not save questions: {e}") from e
        return len(rows)

    def fetch_questions(self, day: Optional[date] = None) -> List[Question]:
        """All questions, or only those tagged with `day`."""
        try:
            self.init_db()
            with self._connect() as conn:
                if day is None:
                    rows = conn.execute(
                        "SELECT id, question, answers_json, correct_answer, day FROM questions ORDER BY rowid"
                    ).fetchall()
                else:
                    rows = conn.execute(
                        """
                        SELECT id, question, answers_json, correct_answer, day
                        FROM questions
                        WHERE day=?
                        ORDER BY rowid
                        """,
                        (day.isoformat(),),
                    ).fetchall()
        except sqlite3.Error as e:
            logger.error("Error fetching questions: %s", e)
            raise FetchError(f"Could not load questions: {e}") from e

        try:
            return [
                Question(
                    id=r["id"],
                    question=r["question"],
                    answers=json.loads(r["answers_json"]),
                    correct_answer=r["correct_answer"],
                    day=date.fromisoformat(r["day"]) if r["day"] else None,
                )
                for r in rows
            ]
        except (ValidationError, ValueError, TypeError) as e:
            logger.error("Malformed question row: %s", e)
            raise FetchError(f"Could not load questions: {e}") from e

    # --------------------
    # Leaderboard
    # --------------------
    def upsert_entry(self, entry: LeaderboardEntry) -> None:
        """One row per (user_id, scope): a repeat overwrites."""
        updated = entry.updated_at or datetime.now().astimezone()
        try:
            self.init_db()
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO leaderboard(user_id, scope, username, metric, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, scope) DO UPDATE SET
                        username=excluded.username,
                        metric=excluded.metric,
                        updated_at=excluded.updated_at
                    """,
                    (entry.user_id, scope_key(entry.day), entry.username, float(entry.metric), _to_iso(updated)),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error("Error saving leaderboard entry: %s", e)
            raise StoreError(f"Could not save score: {e}") from e

    def fetch_top(self, day: Optional[date] = None, limit: int = 10, ascending: bool = True) -> List[LeaderboardEntry]:
        order = "ASC" if ascending else "DESC"
        try:
            self.init_db()
            with self._connect() as conn:
                rows = conn.execute(
                    f"""
                    SELECT user_id, scope, username, metric, updated_at
                    FROM leaderboard
                    WHERE scope=?
                    ORDER BY metric {order}, updated_at ASC
                    LIMIT ?
                    """,
                    (scope_key(day), limit),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error("Error fetching leaderboard: %s", e)
            raise FetchError(f"Could not load leaderboard: {e}") from e
        return [self._row_to_entry(r) for r in rows]

    def fetch_by_identity(self, user_id: str, day: Optional[date] = None) -> Optional[LeaderboardEntry]:
        try:
            self.init_db()
            with self._connect() as conn:
                row = conn.execute(
                    """
                    SELECT user_id, scope, username, metric, updated_at
                    FROM leaderboard
                    WHERE user_id=? AND scope=?
                    """,
                    (user_id, scope_key(day)),
                ).fetchone()
        except sqlite3.Error as e:
            logger.error("Error fetching leaderboard entry: %s", e)
            raise FetchError(f"Could not load leaderboard entry: {e}") from e
        return self._row_to_entry(row) if row else None

    def count_entries(self, user_id: Optional[str] = None, day: Optional[date] = None) -> int:
        where = "WHERE scope=?"
        params: list = [scope_key(day)]
        if user_id is not None:
            where += " AND user_id=?"
            params.append(user_id)
        try:
            self.init_db()
            with self._connect() as conn:
                row = conn.execute(f"SELECT COUNT(*) AS n FROM leaderboard {where}", params).fetchone()
        except sqlite3.Error as e:
            logger.error("Error counting leaderboard entries: %s", e)
            raise FetchError(f"Could not load leaderboard: {e}") from e
        return int(row["n"])

    @staticmethod
    def _row_to_entry(r: sqlite3.Row) -> LeaderboardEntry:
        return LeaderboardEntry(
            user_id=r["user_id"],
            username=r["username"],
            metric=float(r["metric"]),
            day=_day_from_scope(r["scope"]),
            updated_at=_from_iso(r["updated_at"]),
        )

    def reset_db(self) -> None:
        """DELETE ALL DATA but keep tables (testing only)."""
        self.init_db()
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM leaderboard")
            cur.execute("DELETE FROM questions")
            conn.commit()
