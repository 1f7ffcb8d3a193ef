from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone

from cvreview.analytics.db import log_review_run
from cvreview.core.credit_store import InsufficientCredits, consume_credit, get_or_create_profile
from cvreview.guardrails import extract_job_title, run_guardrails
from cvreview.schemas.review import MalformedReviewError, ReviewResult, parse_review_payload
from cvreview.services.job_scraper import scrape_job_offer
from cvreview.services.portfolio_text import extract_portfolio_text
from cvreview.services.review_llm import ReviewLLMError, review_completion
from cvreview.services.review_prompt import build_review_messages

logger = logging.getLogger(__name__)


class ReviewAnalysisError(RuntimeError):
    def __init__(self, message: str, *, code: str = "analysis_failed"):
        super().__init__(message)
        self.code = code


def _log_run(**fields) -> None:
    try:
        log_review_run(**fields)
    except Exception:  # pragma: no cover - analytics must not break reviews
        logger.debug("review_run_logging_failed", exc_info=True)


def run_review(
    *,
    user_id: str,
    portfolio_bytes: bytes,
    job_offer_url: str | None,
    severity_level: int,
) -> ReviewResult:
    profile = get_or_create_profile(user_id)
    if profile.credits < 1:
        raise InsufficientCredits(user_id)

    portfolio_text = extract_portfolio_text(portfolio_bytes)
    if not portfolio_text:
        raise ValueError("No extractable text found in the portfolio PDF.")

    job_offer_text = ""
    extracted_job_title = ""
    if job_offer_url and job_offer_url.strip():
        job_offer_text = scrape_job_offer(job_offer_url)
        extracted_job_title = extract_job_title(job_offer_text)
        logger.info(
            "job_offer_scraped chars=%s extracted_title=%r",
            len(job_offer_text),
            extracted_job_title,
        )

    run_id = uuid.uuid4().hex
    started = time.perf_counter()
    messages = build_review_messages(
        portfolio_text=portfolio_text,
        job_offer_text=job_offer_text,
        extracted_job_title=extracted_job_title,
        severity_level=severity_level,
        now=datetime.now(timezone.utc),
    )

    model = "unknown"
    try:
        raw_text, model = review_completion(messages)
        parsed = parse_review_payload(raw_text)
    except ReviewLLMError as exc:
        _log_run(
            run_id=run_id,
            model=model,
            status="error",
            error_code=exc.code,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )
        if exc.code == "empty_response":
            raise ReviewAnalysisError(str(exc), code=exc.code) from exc
        raise
    except MalformedReviewError as exc:
        logger.error("review_payload_invalid model=%s code=%s: %s", model, exc.code, exc)
        _log_run(
            run_id=run_id,
            model=model,
            status="invalid_schema",
            error_code=exc.code,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )
        raise ReviewAnalysisError(str(exc), code=exc.code) from exc

    result, report = run_guardrails(
        parsed,
        extracted_job_title=extracted_job_title,
        severity_level=severity_level,
    )
    _log_run(
        run_id=run_id,
        model=model,
        status="success",
        latency_ms=int((time.perf_counter() - started) * 1000),
        role_match=result.review_metadata.role_match,
        hallucination_corrected=report.hallucination_corrected,
        capped=report.capped,
    )

    try:
        consume_credit(user_id)
    except InsufficientCredits:
        # Balance drained by a concurrent request after the upfront check.
        logger.warning("credit_deduction_skipped user_id=%s balance_exhausted", user_id)
    except Exception as exc:
        logger.error("credit_deduction_failed user_id=%s: %s", user_id, exc)
    return result
