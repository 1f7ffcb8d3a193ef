from __future__ import annotations

from dataclasses import dataclass

from cvreview.schemas.review import RoleMatch


@dataclass(frozen=True)
class MismatchDecision:
    is_mismatch: bool
    is_cross_domain: bool
    role_match: RoleMatch


def resolve_role_match(
    role_match: RoleMatch,
    candidate_domain: str | None,
    job_domain: str | None,
    extracted_title: str | None,
) -> MismatchDecision:
    """Settle the final role-match label for one review.

    Keyword domains are too coarse to tell "Full Stack" from "Embedded", so
    only a cross-domain disagreement is forced to MISMATCH. Anything softer
    becomes PARTIAL_MATCH, and a MATCH is never downgraded.
    """
    is_cross_domain = bool(candidate_domain and job_domain and candidate_domain != job_domain)
    job_unverified = bool(candidate_domain and not job_domain and (extracted_title or "").strip())
    is_mismatch = role_match == "MISMATCH" or is_cross_domain or job_unverified

    if not is_mismatch:
        return MismatchDecision(is_mismatch=False, is_cross_domain=False, role_match=role_match)

    if is_cross_domain:
        resolved: RoleMatch = "MISMATCH"
    elif role_match == "MATCH":
        resolved = "MATCH"
    else:
        resolved = "PARTIAL_MATCH"
    return MismatchDecision(is_mismatch=True, is_cross_domain=is_cross_domain, role_match=resolved)
