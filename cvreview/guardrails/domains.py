from __future__ import annotations

from functools import lru_cache
from typing import Literal

from cvreview.core.guardrail_config import get_guardrail_value

ProfessionalDomain = Literal[
    "tech",
    "manual",
    "medical",
    "food",
    "textile",
    "education",
    "legal",
    "finance",
]


@lru_cache(maxsize=1)
def domain_keyword_table() -> tuple[tuple[str, tuple[str, ...]], ...]:
    """Ordered (domain, keywords) pairs as declared in cvreview/config/guardrails.yaml."""
    raw = get_guardrail_value("domains.keywords", {})
    table: list[tuple[str, tuple[str, ...]]] = []
    for domain, keywords in raw.items():
        clean = tuple(str(keyword).lower() for keyword in keywords if str(keyword))
        if clean:
            table.append((str(domain), clean))
    if not table:
        raise RuntimeError("Guardrail config defines no domain keywords (domains.keywords).")
    return tuple(table)


def detect_domain(role: str | None) -> ProfessionalDomain | None:
    lowered = (role or "").lower()
    if not lowered.strip():
        return None
    for domain, keywords in domain_keyword_table():
        if any(keyword in lowered for keyword in keywords):
            return domain  # type: ignore[return-value]
    return None
