from __future__ import annotations

from dataclasses import dataclass

from cvreview.core.guardrail_config import get_guardrail_value
from cvreview.schemas.review import ReviewResult


@dataclass(frozen=True)
class HallucinationVerdict:
    detected: bool
    has_overlap: bool
    copied_from_candidate: bool


def significant_tokens(text: str | None) -> list[str]:
    min_len = int(get_guardrail_value("hallucination.min_token_length", 4))
    return [token for token in (text or "").lower().split() if len(token) >= min_len]


def _tokens_related(left: str, right: str) -> bool:
    return left in right or right in left


def detect_job_role_hallucination(
    extracted_title: str | None,
    candidate_role: str | None,
    job_role: str | None,
) -> HallucinationVerdict:
    """Decide whether the model's job role was invented or copied from the CV.

    Only the scraped title is trusted. With no title there is nothing to
    validate against, so the verdict never fires.
    """
    title_tokens = significant_tokens(extracted_title)
    job_tokens = significant_tokens(job_role)
    candidate_tokens = significant_tokens(candidate_role)

    has_overlap = any(
        _tokens_related(title_token, job_token)
        for title_token in title_tokens
        for job_token in job_tokens
    )
    copied_from_candidate = bool(candidate_tokens) and all(
        any(_tokens_related(candidate_token, job_token) for job_token in job_tokens)
        for candidate_token in candidate_tokens
    )
    detected = bool((extracted_title or "").strip()) and (not has_overlap or copied_from_candidate)
    return HallucinationVerdict(
        detected=detected,
        has_overlap=has_overlap,
        copied_from_candidate=copied_from_candidate,
    )


def correct_job_role(result: ReviewResult, verdict: HallucinationVerdict, extracted_title: str) -> ReviewResult:
    if not verdict.detected:
        return result
    metadata = result.review_metadata.model_copy(update={"job_offer_role_detected": extracted_title.strip()})
    return result.model_copy(update={"review_metadata": metadata})
