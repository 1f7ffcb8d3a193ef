from __future__ import annotations

import re

from fastapi import HTTPException, status

from cvreview.core.config import settings

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_.:@-]{3,128}$")


def check_api_key(x_api_key: str | None) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please provide a valid API key.",
        )


def require_user_id(x_user_id: str | None) -> str:
    """Caller identity as forwarded by the session layer in front of this service."""
    user_id = (x_user_id or "").strip()
    if not user_id or not _USER_ID_RE.match(user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Please log in.",
        )
    return user_id
