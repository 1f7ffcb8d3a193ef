from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from cvreview.core.config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_db_path() -> Path:
    return Path(settings.analytics_db_path)


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS review_runs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at TEXT NOT NULL,
            run_id TEXT NOT NULL,
            model TEXT NOT NULL,
            status TEXT NOT NULL,
            error_code TEXT,
            latency_ms INTEGER,
            role_match TEXT,
            hallucination_corrected INTEGER,
            capped INTEGER
        )
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_review_runs_created_at
        ON review_runs (created_at)
        """
    )


def _connect() -> sqlite3.Connection:
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    _ensure_schema(conn)
    return conn


def init_db() -> None:
    if not settings.analytics_enabled:
        return
    with _connect() as conn:
        conn.commit()
    purge_old_records()


def log_review_run(
    *,
    run_id: str,
    model: str,
    status: str,
    error_code: str | None = None,
    latency_ms: int | None = None,
    role_match: str | None = None,
    hallucination_corrected: bool | None = None,
    capped: bool | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO review_runs (
                created_at, run_id, model, status, error_code, latency_ms,
                role_match, hallucination_corrected, capped
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                run_id,
                model,
                status,
                error_code,
                latency_ms,
                role_match,
                None if hallucination_corrected is None else (1 if hallucination_corrected else 0),
                None if capped is None else (1 if capped else 0),
            ),
        )
        conn.commit()


def purge_old_records() -> dict[str, int]:
    if not settings.analytics_enabled:
        return {"review_runs": 0}

    retention_days = max(1, int(settings.analytics_retention_days))
    cutoff = (datetime.now(timezone.utc) - timedelta(days=retention_days)).isoformat()
    with _connect() as conn:
        cur = conn.execute("DELETE FROM review_runs WHERE created_at < ?", (cutoff,))
        conn.commit()
        return {"review_runs": int(cur.rowcount or 0)}


def get_review_runs(run_id: str) -> list[dict[str, Any]]:
    if not settings.analytics_enabled:
        return []
    with _connect() as conn:
        cur = conn.execute(
            """
            SELECT run_id, model, status, error_code, latency_ms, role_match, hallucination_corrected, capped
            FROM review_runs
            WHERE run_id = ?
            ORDER BY id
            """,
            (run_id,),
        )
        return [{col[0]: row[idx] for idx, col in enumerate(cur.description)} for row in cur.fetchall()]
