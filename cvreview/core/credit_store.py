from __future__ import annotations

import os
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from cvreview.core.config import settings
from cvreview.core.guardrail_config import get_guardrail_value

_conn: sqlite3.Connection | None = None
_conn_lock = threading.Lock()


class InsufficientCredits(Exception):
    def __init__(self, user_id: str):
        super().__init__("You have used all your credits.")
        self.user_id = user_id


@dataclass(frozen=True)
class CreditProfile:
    user_id: str
    tier: str
    credits: int
    daily_credits_limit: int


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def tier_daily_limit(tier: str) -> int:
    limit = get_guardrail_value(f"credits.tiers.{tier}.daily_limit")
    if limit is None:
        raise ValueError(f"Unknown subscription tier '{tier}'.")
    return int(limit)


def _default_tier() -> str:
    return str(get_guardrail_value("credits.default_tier", "free"))


def _get_connection() -> sqlite3.Connection:
    global _conn
    with _conn_lock:
        if _conn is not None:
            return _conn

        db_path = settings.credits_db_path
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
        _conn.execute("PRAGMA synchronous=NORMAL;")
        _conn.execute("PRAGMA busy_timeout=5000;")
        _conn.execute(
            """
            CREATE TABLE IF NOT EXISTS profiles (
                user_id TEXT PRIMARY KEY,
                tier TEXT NOT NULL,
                credits INTEGER NOT NULL,
                daily_credits_limit INTEGER NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        return _conn


def init_credit_store() -> None:
    _get_connection()


def _row_to_profile(row: tuple) -> CreditProfile:
    return CreditProfile(
        user_id=row[0],
        tier=row[1],
        credits=int(row[2]),
        daily_credits_limit=int(row[3]),
    )


def get_or_create_profile(user_id: str) -> CreditProfile:
    conn = _get_connection()
    tier = _default_tier()
    limit = tier_daily_limit(tier)
    with _conn_lock:
        conn.execute(
            """
            INSERT OR IGNORE INTO profiles (user_id, tier, credits, daily_credits_limit, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, tier, limit, limit, _utc_now()),
        )
        row = conn.execute(
            "SELECT user_id, tier, credits, daily_credits_limit FROM profiles WHERE user_id = ?",
            (user_id,),
        ).fetchone()
    return _row_to_profile(row)


def consume_credit(user_id: str) -> CreditProfile:
    get_or_create_profile(user_id)
    conn = _get_connection()

    with _conn_lock:
        cursor = conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        try:
            cursor.execute(
                """
                UPDATE profiles
                SET credits = credits - 1, updated_at = ?
                WHERE user_id = ? AND credits >= 1
                """,
                (_utc_now(), user_id),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                raise InsufficientCredits(user_id)
            row = cursor.execute(
                "SELECT user_id, tier, credits, daily_credits_limit FROM profiles WHERE user_id = ?",
                (user_id,),
            ).fetchone()
            conn.commit()
        except InsufficientCredits:
            raise
        except Exception:
            conn.rollback()
            raise
    return _row_to_profile(row)


def apply_subscription_tier(user_id: str, tier: str) -> CreditProfile:
    """Move a user to a tier and refill the balance to its limit immediately."""
    limit = tier_daily_limit(tier)
    get_or_create_profile(user_id)
    conn = _get_connection()
    with _conn_lock:
        conn.execute(
            """
            UPDATE profiles
            SET tier = ?, daily_credits_limit = ?, credits = ?, updated_at = ?
            WHERE user_id = ?
            """,
            (tier, limit, limit, _utc_now(), user_id),
        )
    return get_or_create_profile(user_id)


def refill_daily_credits() -> int:
    conn = _get_connection()
    with _conn_lock:
        cursor = conn.execute(
            """
            UPDATE profiles
            SET credits = daily_credits_limit, updated_at = ?
            WHERE credits < daily_credits_limit
            """,
            (_utc_now(),),
        )
        return int(cursor.rowcount or 0)


def clear_profiles() -> None:
    conn = _get_connection()
    with _conn_lock:
        conn.execute("DELETE FROM profiles")
