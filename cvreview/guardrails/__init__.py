from .colors import enforce_status_colors, status_color_for
from .domains import ProfessionalDomain, detect_domain
from .hallucination import HallucinationVerdict, correct_job_role, detect_job_role_hallucination
from .mismatch import MismatchDecision, resolve_role_match
from .pipeline import GuardrailReport, apply_guardrails, run_guardrails
from .scoring import apply_cross_domain_caps, build_mismatch_feedback, compute_final_score
from .titles import extract_job_title

__all__ = [
    "ProfessionalDomain",
    "detect_domain",
    "extract_job_title",
    "HallucinationVerdict",
    "detect_job_role_hallucination",
    "correct_job_role",
    "MismatchDecision",
    "resolve_role_match",
    "apply_cross_domain_caps",
    "build_mismatch_feedback",
    "compute_final_score",
    "status_color_for",
    "enforce_status_colors",
    "GuardrailReport",
    "run_guardrails",
    "apply_guardrails",
]
