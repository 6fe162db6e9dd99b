"""
Local SQLite store for client-side state.

Holds data the app keeps on-device, in a single local.db:
- ask_step_cache: AI answers about recipe steps (90-day TTL)
- asked_steps: "asked once per card" markers
- feedback_outbox: feedback that could not be delivered yet
"""

import hashlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ASK_STEP_TTL_DAYS = 90


def _hash_key(key_string: str) -> str:
    return hashlib.md5(key_string.encode()).hexdigest()[:16]


class LocalStore:
    """Interface for the on-device SQLite database.

    Caching is optional: read and write failures are logged and treated as
    a miss, never raised to the caller.
    """

    def __init__(self, db_dir: str = "data", clock: Callable[[], float] = time.time):
        """
        Initialize the local store.

        Args:
            db_dir: Directory containing the database file
            clock: Returns the current time in epoch seconds
        """
        self.db_dir = Path(db_dir)
        self.db_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_dir / "local.db"
        self.clock = clock

        self._init_database()

    def _init_database(self):
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS ask_step_cache (
                    key TEXT PRIMARY KEY,
                    answer TEXT NOT NULL,
                    cached_at REAL NOT NULL,
                    expires_at REAL NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS asked_steps (
                    key TEXT PRIMARY KEY,
                    asked_at REAL NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS feedback_outbox (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    payload_json TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    attempts INTEGER DEFAULT 1
                )
            """)

            conn.commit()

    # --- Ask-step answers ---

    @staticmethod
    def _answer_key(title: str, step: str, question: Optional[str] = None) -> str:
        return "ask_step:" + _hash_key(f"{title}:{step}:{question or 'default'}")

    def get_cached_answer(self, title: str, step: str, question: Optional[str] = None) -> Optional[str]:
        """Get a cached answer, or None on miss. Expired entries are deleted."""
        if not title or not step:
            return None

        key = self._answer_key(title, step, question)
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT answer, expires_at FROM ask_step_cache WHERE key = ?", (key,)
                ).fetchone()
                if row is None:
                    return None

                answer, expires_at = row
                if self.clock() > expires_at:
                    conn.execute("DELETE FROM ask_step_cache WHERE key = ?", (key,))
                    return None
                return answer or None
        except sqlite3.Error as e:
            logger.warning(f"Cache get error: {e}")
            return None

    def set_cached_answer(self, title: str, step: str, answer: str, question: Optional[str] = None):
        """Cache an answer for a step."""
        key = self._answer_key(title, step, question)
        now = self.clock()
        expires_at = now + ASK_STEP_TTL_DAYS * 24 * 60 * 60
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO ask_step_cache (key, answer, cached_at, expires_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (key, answer, now, expires_at),
                )
        except sqlite3.Error as e:
            logger.warning(f"Cache set error: {e}")

    def clear_cached_answer(self, title: str, step: str, question: Optional[str] = None):
        key = self._answer_key(title, step, question)
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM ask_step_cache WHERE key = ?", (key,))
        except sqlite3.Error as e:
            logger.warning(f"Cache clear error: {e}")

    @staticmethod
    def _asked_key(title: str, step_index: int) -> str:
        return "ask_step:asked:" + _hash_key(f"{title}:{step_index}")

    def has_been_asked(self, title: str, step_index: int) -> bool:
        """Check whether the AI was already asked about this step card."""
        if not title or not isinstance(step_index, int):
            return False
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT 1 FROM asked_steps WHERE key = ?", (self._asked_key(title, step_index),)
                ).fetchone()
                return row is not None
        except sqlite3.Error as e:
            logger.warning(f"hasBeenAsked error: {e}")
            return False

    def mark_as_asked(self, title: str, step_index: int):
        if not title or not isinstance(step_index, int):
            return
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO asked_steps (key, asked_at) VALUES (?, ?)",
                    (self._asked_key(title, step_index), self.clock()),
                )
        except sqlite3.Error as e:
            logger.warning(f"Mark as asked error: {e}")

    # --- Feedback outbox ---

    def enqueue_feedback(self, payload: Dict[str, Any]) -> int:
        """Queue an undelivered feedback payload. Returns its outbox id."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "INSERT INTO feedback_outbox (payload_json, created_at) VALUES (?, ?)",
                (json.dumps(payload), self.clock()),
            )
            return cursor.lastrowid

    def pending_feedback(self) -> List[Dict[str, Any]]:
        """List queued feedback, oldest first."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT id, payload_json, attempts FROM feedback_outbox ORDER BY id"
            ).fetchall()

        return [
            {"id": row["id"], "payload": json.loads(row["payload_json"]), "attempts": row["attempts"]}
            for row in rows
        ]

    def remove_feedback(self, outbox_id: int):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM feedback_outbox WHERE id = ?", (outbox_id,))

    def record_feedback_attempt(self, outbox_id: int):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "UPDATE feedback_outbox SET attempts = attempts + 1 WHERE id = ?", (outbox_id,)
            )
