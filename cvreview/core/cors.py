from __future__ import annotations

from cvreview.core.config import settings


def cors_allowed_origins() -> list[str]:
    return [origin for origin in settings.cors_allowed_origins if origin != "*"]


def cors_allow_credentials() -> bool:
    # Browsers reject credentialed requests against a wildcard origin.
    return settings.cors_allow_credentials and bool(cors_allowed_origins())
