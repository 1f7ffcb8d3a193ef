from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    rate_limit: str
    rate_limit_enabled: bool
    review_rate_limit: int
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_credentials: bool
    credits_db_path: str
    credits_refill_interval_s: int
    analytics_enabled: bool
    analytics_db_path: str
    analytics_retention_days: int
    review_rate_limit_db_path: str
    max_upload_mb: int
    jina_reader_enabled: bool
    scraper_timeout_s: float
    job_offer_max_chars: int


settings = Settings(
    api_key=_get_env("API_KEY"),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    review_rate_limit=_get_env_int("REVIEW_RATE_LIMIT", 10),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ],
    ),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    credits_db_path=_get_env("CREDITS_DB_PATH", "data/credits.db") or "data/credits.db",
    credits_refill_interval_s=_get_env_int("CREDITS_REFILL_INTERVAL_S", 86400),
    analytics_enabled=_get_env_bool("ANALYTICS_ENABLED", True),
    analytics_db_path=_get_env("ANALYTICS_DB_PATH", "data/analytics.db") or "data/analytics.db",
    analytics_retention_days=_get_env_int("ANALYTICS_RETENTION_DAYS", 180),
    review_rate_limit_db_path=_get_env("REVIEW_RATE_LIMIT_DB_PATH", "data/review_rate_limit.db") or "data/review_rate_limit.db",
    max_upload_mb=_get_env_int("MAX_UPLOAD_MB", 10),
    jina_reader_enabled=_get_env_bool("JINA_READER_ENABLED", True),
    scraper_timeout_s=float(_get_env("SCRAPER_TIMEOUT_S", "12") or "12"),
    job_offer_max_chars=_get_env_int("JOB_OFFER_MAX_CHARS", 20000),
)

if settings.review_rate_limit < 1:
    raise RuntimeError("REVIEW_RATE_LIMIT must be a positive integer.")
