from __future__ import annotations

import logging
from dataclasses import dataclass

from cvreview.guardrails.colors import enforce_status_colors
from cvreview.guardrails.domains import detect_domain
from cvreview.guardrails.hallucination import correct_job_role, detect_job_role_hallucination
from cvreview.guardrails.mismatch import resolve_role_match
from cvreview.guardrails.scoring import apply_cross_domain_caps
from cvreview.schemas.review import ReviewResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardrailReport:
    candidate_domain: str | None
    job_domain: str | None
    hallucination_corrected: bool
    is_mismatch: bool
    capped: bool


def run_guardrails(
    result: ReviewResult,
    *,
    extracted_job_title: str = "",
    severity_level: int | None = None,
) -> tuple[ReviewResult, GuardrailReport]:
    """Validate and correct one parsed review; the input instance is left untouched."""
    if severity_level is not None:
        metadata = result.review_metadata.model_copy(update={"severity_applied": severity_level})
        result = result.model_copy(update={"review_metadata": metadata})

    metadata = result.review_metadata
    candidate_domain = detect_domain(metadata.candidate_role_detected)
    job_domain = detect_domain(metadata.job_offer_role_detected)
    logger.info(
        "guardrail_domains candidate=%r (%s) job=%r (%s) extracted_title=%r",
        metadata.candidate_role_detected,
        candidate_domain,
        metadata.job_offer_role_detected,
        job_domain,
        extracted_job_title,
    )

    verdict = detect_job_role_hallucination(
        extracted_job_title,
        metadata.candidate_role_detected,
        metadata.job_offer_role_detected,
    )
    if verdict.detected:
        logger.warning(
            "guardrail_hallucination model_job_role=%r extracted_title=%r overlap=%s copied=%s",
            metadata.job_offer_role_detected,
            extracted_job_title,
            verdict.has_overlap,
            verdict.copied_from_candidate,
        )
        result = correct_job_role(result, verdict, extracted_job_title)
        job_domain = detect_domain(result.review_metadata.job_offer_role_detected)

    decision = resolve_role_match(
        result.review_metadata.role_match,
        candidate_domain,
        job_domain,
        extracted_job_title,
    )
    if decision.role_match != result.review_metadata.role_match:
        metadata = result.review_metadata.model_copy(update={"role_match": decision.role_match})
        result = result.model_copy(update={"review_metadata": metadata})

    if decision.is_cross_domain:
        logger.info("guardrail_cross_domain candidate=%s job=%s capping", candidate_domain, job_domain)
        result = apply_cross_domain_caps(result, candidate_domain, job_domain)
    elif decision.is_mismatch:
        logger.info("guardrail_same_domain_mismatch domain=%s role_match=%s", candidate_domain, decision.role_match)

    result = enforce_status_colors(result)
    report = GuardrailReport(
        candidate_domain=candidate_domain,
        job_domain=job_domain,
        hallucination_corrected=verdict.detected,
        is_mismatch=decision.is_mismatch,
        capped=decision.is_cross_domain,
    )
    return result, report


def apply_guardrails(
    result: ReviewResult,
    *,
    extracted_job_title: str = "",
    severity_level: int | None = None,
) -> ReviewResult:
    corrected, _report = run_guardrails(
        result,
        extracted_job_title=extracted_job_title,
        severity_level=severity_level,
    )
    return corrected
