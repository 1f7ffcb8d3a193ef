from __future__ import annotations

import math

from cvreview.core.guardrail_config import get_guardrail_value
from cvreview.schemas.review import CategoryScores, ReviewResult

_DEFAULT_WEIGHTS = {
    "hard_skills": 0.4,
    "experience_relevance": 0.3,
    "impact_results": 0.1,
    "soft_skills": 0.1,
    "formatting_ats": 0.1,
}


def cross_domain_cap() -> int:
    return int(get_guardrail_value("mismatch.cross_domain_cap", 15))


def compute_final_score(categories: CategoryScores) -> int:
    weights = get_guardrail_value("scoring.weights", _DEFAULT_WEIGHTS)
    total = sum(getattr(categories, key) * float(weight) for key, weight in weights.items())
    # Guard against float noise such as 26.999999999999996.
    return max(0, min(100, math.floor(round(total, 6))))


def build_mismatch_feedback(candidate_domain: str | None, job_domain: str | None) -> list[str]:
    if candidate_domain and job_domain and candidate_domain != job_domain:
        intro = f"Your profile is in the {candidate_domain} field, which is very different from {job_domain}."
    else:
        intro = "Your profile does not align with the specific requirements of this role."
    return [
        intro,
        "You are missing key technical skills required for this specific role.",
        "Consider roles that align closer with your demonstrated experience.",
    ]


def apply_cross_domain_caps(
    result: ReviewResult,
    candidate_domain: str | None,
    job_domain: str | None,
) -> ReviewResult:
    """Cap the job-specific scores and discard the model's narrative feedback."""
    cap = cross_domain_cap()
    capped_categories = get_guardrail_value(
        "mismatch.capped_categories",
        ("hard_skills", "experience_relevance", "impact_results"),
    )
    capped_cards = set(
        get_guardrail_value(
            "mismatch.capped_cards",
            ("Hard Skills", "Experience Relevance", "Impact/Results"),
        )
    )

    categories = result.scores.categories.model_copy(
        update={key: min(getattr(result.scores.categories, key), cap) for key in capped_categories}
    )
    cards = [
        card.model_copy(update={"score": min(card.score, cap), "status_color": "red"})
        if card.category_name in capped_cards
        else card.model_copy()
        for card in result.feedback_cards
    ]
    scores = result.scores.model_copy(
        update={"categories": categories, "final_score": compute_final_score(categories)}
    )
    return result.model_copy(
        update={
            "scores": scores,
            "feedback_cards": cards,
            "actionable_feedback": build_mismatch_feedback(candidate_domain, job_domain),
        }
    )
