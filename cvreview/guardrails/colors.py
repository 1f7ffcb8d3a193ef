from __future__ import annotations

from cvreview.core.guardrail_config import get_guardrail_value
from cvreview.schemas.review import ReviewResult, StatusColor


def status_color_for(score: int) -> StatusColor:
    if score >= int(get_guardrail_value("colors.green_min", 75)):
        return "green"
    if score >= int(get_guardrail_value("colors.yellow_min", 55)):
        return "yellow"
    return "red"


def enforce_status_colors(result: ReviewResult) -> ReviewResult:
    cards = [
        card.model_copy(update={"status_color": status_color_for(card.score)})
        for card in result.feedback_cards
    ]
    return result.model_copy(update={"feedback_cards": cards})
