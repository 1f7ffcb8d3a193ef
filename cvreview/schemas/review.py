from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

RoleMatch = Literal["MATCH", "PARTIAL_MATCH", "MISMATCH"]
StatusColor = Literal["green", "yellow", "red"]
CategoryName = Literal[
    "Hard Skills",
    "Experience Relevance",
    "Impact/Results",
    "Soft Skills",
    "Formatting/ATS",
]

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class MalformedReviewError(ValueError):
    def __init__(self, message: str, *, code: str = "invalid_json"):
        super().__init__(message)
        self.code = code


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReviewMetadata(BaseModel):
    severity_applied: int = Field(default=5, ge=0, le=10)
    date: datetime = Field(default_factory=_utc_now)
    candidate_role_detected: str = ""
    job_offer_role_detected: str = ""
    role_match: RoleMatch


class CategoryScores(BaseModel):
    hard_skills: int = Field(ge=0, le=100)
    experience_relevance: int = Field(ge=0, le=100)
    impact_results: int = Field(ge=0, le=100)
    soft_skills: int = Field(ge=0, le=100)
    formatting_ats: int = Field(ge=0, le=100)


class ScoreBlock(BaseModel):
    final_score: int = Field(ge=0, le=100)
    categories: CategoryScores


class FeedbackCard(BaseModel):
    category_name: CategoryName
    score: int = Field(ge=0, le=100)
    short_comment: str = ""
    status_color: StatusColor


class ReviewResult(BaseModel):
    review_metadata: ReviewMetadata
    scores: ScoreBlock
    feedback_cards: list[FeedbackCard] = Field(min_length=5, max_length=5)
    actionable_feedback: list[str] = Field(min_length=3, max_length=3)


class CreditBalanceResponse(BaseModel):
    user_id: str
    tier: str
    credits: int = Field(ge=0)
    daily_credits_limit: int = Field(ge=0)


def strip_code_fence(raw_text: str) -> str:
    return _CODE_FENCE_RE.sub("", (raw_text or "").strip()).strip()


def parse_review_payload(raw_text: str | None) -> ReviewResult:
    """Parse raw model output into a validated ReviewResult.

    Models sometimes wrap the JSON in a Markdown fence despite being told not
    to, so the fence is stripped first. Anything else that is off (empty text,
    broken JSON, missing required blocks) is fatal for the request.
    """
    text = strip_code_fence(raw_text or "")
    if not text:
        raise MalformedReviewError("Empty response from AI.", code="empty_response")

    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedReviewError(f"AI produced invalid JSON: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise MalformedReviewError("AI response is not a JSON object.", code="invalid_schema")

    try:
        return ReviewResult.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise MalformedReviewError(
            f"AI response failed schema validation: {', '.join(fields[:8])}",
            code="invalid_schema",
        ) from exc
