from __future__ import annotations

import logging
import os
import time
from functools import lru_cache
from typing import Sequence

from openai import OpenAI, OpenAIError

from cvreview.ai.types import ChatMessage

logger = logging.getLogger(__name__)


class ReviewLLMError(RuntimeError):
    def __init__(self, message: str, *, code: str = "llm_unavailable"):
        super().__init__(message)
        self.code = code


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def review_llm_enabled() -> bool:
    if not _env_bool("REVIEW_LLM_ENABLED", True):
        return False
    provider = (os.getenv("AI_PROVIDER") or "openai").strip().lower()
    if provider != "openai":
        return False
    api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
    return bool(api_key) and not _looks_like_placeholder(api_key)


@lru_cache(maxsize=1)
def _client() -> OpenAI:
    return OpenAI(
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        base_url=(os.getenv("OPENAI_BASE_URL") or None),
        timeout=float(os.getenv("REVIEW_LLM_TIMEOUT_S", "60")),
        max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "2")),
    )


def candidate_models() -> list[str]:
    """Primary model first, then AI_MODEL_FALLBACKS in order, without duplicates."""
    primary = (os.getenv("AI_MODEL") or os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip()
    fallbacks = [item.strip() for item in (os.getenv("AI_MODEL_FALLBACKS") or "gpt-4o").split(",")]
    models: list[str] = []
    for name in [primary, *fallbacks]:
        if name and name not in models:
            models.append(name)
    return models


def review_completion(
    messages: Sequence[ChatMessage],
    *,
    temperature: float = 0.2,
    max_output_tokens: int = 1800,
) -> tuple[str, str]:
    """Return (raw JSON text, model name) from the first model that answers."""
    if not review_llm_enabled():
        raise ReviewLLMError("Review model is not configured.", code="llm_disabled")

    payload = [message.as_openai() for message in messages]
    last_error: Exception | None = None
    saw_empty = False
    for model in candidate_models():
        started = time.perf_counter()
        try:
            response = _client().chat.completions.create(
                model=model,
                messages=payload,
                temperature=temperature,
                response_format={"type": "json_object"},
                max_tokens=max_output_tokens,
            )
        except OpenAIError as exc:
            logger.warning("review_llm_failed model=%s: %s", model, exc)
            last_error = exc
            continue

        content = response.choices[0].message.content if response.choices else ""
        latency_ms = int((time.perf_counter() - started) * 1000)
        if not content:
            logger.warning("review_llm_empty model=%s latency_ms=%s", model, latency_ms)
            saw_empty = True
            continue
        logger.info("review_llm_success model=%s latency_ms=%s chars=%s", model, latency_ms, len(content))
        return str(content), model

    if saw_empty and last_error is None:
        raise ReviewLLMError("Empty response from AI.", code="empty_response")
    raise ReviewLLMError("All review models failed. Try again later.", code="llm_unavailable") from last_error
