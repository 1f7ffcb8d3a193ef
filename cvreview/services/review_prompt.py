from __future__ import annotations

from datetime import datetime

from cvreview.ai.types import ChatMessage
from cvreview.core.config import settings
from cvreview.core.guardrail_config import get_guardrail_value

_OUTPUT_SCHEMA = """{
  "review_metadata": {
    "severity_applied": %(severity)d,
    "date": "%(date)s",
    "candidate_role_detected": "(string: role from CV)",
    "job_offer_role_detected": "(string: role from job offer)",
    "role_match": "MATCH" | "PARTIAL_MATCH" | "MISMATCH"
  },
  "scores": {
    "final_score": (0-100),
    "categories": {
      "hard_skills": (0-100),
      "experience_relevance": (0-100),
      "impact_results": (0-100),
      "soft_skills": (0-100),
      "formatting_ats": (0-100)
    }
  },
  "feedback_cards": [
    {"category_name": "Hard Skills", "score": (0-100), "short_comment": "Max 25 words.", "status_color": "green|yellow|red"},
    {"category_name": "Experience Relevance", "score": (0-100), "short_comment": "Max 25 words.", "status_color": "green|yellow|red"},
    {"category_name": "Impact/Results", "score": (0-100), "short_comment": "Max 25 words.", "status_color": "green|yellow|red"},
    {"category_name": "Soft Skills", "score": (0-100), "short_comment": "Max 25 words.", "status_color": "green|yellow|red"},
    {"category_name": "Formatting/ATS", "score": (0-100), "short_comment": "Max 25 words.", "status_color": "green|yellow|red"}
  ],
  "actionable_feedback": ["action 1", "action 2", "action 3"]
}"""


def _severity_label(severity_level: int) -> str:
    if severity_level <= 3:
        return "encouraging"
    if severity_level <= 7:
        return "professional"
    return "brutal"


def build_system_prompt(severity_level: int, now: datetime) -> str:
    green_min = int(get_guardrail_value("colors.green_min", 75))
    yellow_min = int(get_guardrail_value("colors.yellow_min", 55))
    schema = _OUTPUT_SCHEMA % {"severity": severity_level, "date": now.isoformat()}
    return (
        "You are a strict, honest hiring manager reviewing a candidate's CV against a job offer. "
        "Output ONLY valid JSON, no markdown.\n"
        "Every score reflects fit for the JOB OFFER, not general CV quality.\n"
        "1. Identify candidate_role_detected from the CV and job_offer_role_detected from the JOB OFFER.\n"
        "2. Compare the two roles. Different professional fields (e.g. software developer vs CNC operator) "
        "are a MISMATCH: hard skills, experience and impact must then be low (0-15). "
        "Same field but different title: score proportionally to skill overlap.\n"
        "3. Soft skills and formatting are scored on CV quality regardless of mismatch.\n"
        "4. Name the specific missing skills and unmet explicit requirements in the feedback.\n"
        f"Status colors: red (<{yellow_min}), yellow ({yellow_min}-{green_min - 1}), green ({green_min}+).\n"
        f"Severity level: {severity_level}/10 ({_severity_label(severity_level)}).\n\n"
        f"OUTPUT JSON SCHEMA:\n{schema}"
    )


def build_review_messages(
    *,
    portfolio_text: str,
    job_offer_text: str,
    extracted_job_title: str,
    severity_level: int,
    now: datetime,
) -> list[ChatMessage]:
    sections: list[str] = []
    if job_offer_text:
        offer = job_offer_text[: settings.job_offer_max_chars]
        sections.append(
            "JOB OFFER THE CANDIDATE IS APPLYING FOR:\n"
            f"{offer}\n"
            "END OF JOB OFFER\n\n"
            "Evaluate the CV below AGAINST this job offer."
        )
    else:
        sections.append(
            "No specific job offer provided. Evaluate the CV against general industry "
            "standards for the role described in the CV."
        )

    sections.append(f"CANDIDATE CV:\n{portfolio_text}\nEND OF CV")

    if job_offer_text and extracted_job_title:
        sections.append(
            f'THE JOB TITLE IS: "{extracted_job_title}". job_offer_role_detected must come from the '
            "job offer, not from the CV."
        )
    sections.append("Generate the JSON review now.")

    return [
        ChatMessage(role="system", content=build_system_prompt(severity_level, now)),
        ChatMessage(role="user", content="\n\n".join(sections)),
    ]
