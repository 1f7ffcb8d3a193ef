from __future__ import annotations

import math
import os
import sqlite3
import threading
import time

from cvreview.core.config import settings

_conn: sqlite3.Connection | None = None
_conn_lock = threading.Lock()


class ReviewRateLimitExceeded(Exception):
    def __init__(self, retry_after_s: int):
        super().__init__(f"Review rate limit exceeded; retry in {retry_after_s}s.")
        self.retry_after_s = retry_after_s


def _get_connection() -> sqlite3.Connection:
    global _conn
    with _conn_lock:
        if _conn is not None:
            return _conn

        db_path = settings.review_rate_limit_db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        _conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        _conn.execute("PRAGMA journal_mode=WAL;")
        _conn.execute("PRAGMA busy_timeout=5000;")
        _conn.execute(
            """
            CREATE TABLE IF NOT EXISTS review_requests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                caller_key TEXT NOT NULL,
                route_key TEXT NOT NULL,
                created_at REAL NOT NULL
            );
            """
        )
        _conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_review_requests_lookup
            ON review_requests (caller_key, route_key, created_at);
            """
        )
        return _conn


def enforce_review_rate_limit(caller_key: str, route_key: str, limit: int, window_seconds: int = 60) -> int:
    """Record one request in the sliding window and return how many are left."""
    now = time.time()
    cutoff = now - window_seconds
    conn = _get_connection()

    with _conn_lock:
        cursor = conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        try:
            cursor.execute("DELETE FROM review_requests WHERE created_at < ?", (cutoff,))
            count, oldest = cursor.execute(
                """
                SELECT COUNT(1), MIN(created_at)
                FROM review_requests
                WHERE caller_key = ? AND route_key = ? AND created_at >= ?
                """,
                (caller_key, route_key, cutoff),
            ).fetchone()
            count = int(count or 0)
            if count >= limit:
                conn.rollback()
                retry_after = max(1, math.ceil((oldest or now) + window_seconds - now))
                raise ReviewRateLimitExceeded(retry_after)

            cursor.execute(
                "INSERT INTO review_requests (caller_key, route_key, created_at) VALUES (?, ?, ?)",
                (caller_key, route_key, now),
            )
            conn.commit()
        except ReviewRateLimitExceeded:
            raise
        except Exception:
            conn.rollback()
            raise
    return limit - count - 1


def clear_review_rate_limit_events() -> None:
    conn = _get_connection()
    with _conn_lock:
        conn.execute("DELETE FROM review_requests")
