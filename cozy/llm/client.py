"""Async Claude API client for the single-shot AI functions."""

from __future__ import annotations

import logging
from typing import Any

import anthropic

from cozy.config import settings
from cozy.errors import UpstreamError
from cozy.llm.models import resolve_model

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


def is_configured() -> bool:
    return bool(settings.anthropic_api_key)


async def complete_text(
    messages: list[dict[str, Any]],
    *,
    system: str | None = None,
    model: str | None = None,
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> str:
    """Single-shot Claude call — no tools, no streaming.

    API and connection errors surface as :class:`UpstreamError` so the HTTP
    layer can answer 502.
    """
    client = _get_client()
    kwargs: dict[str, Any] = {
        "model": resolve_model(model),
        "max_tokens": max_tokens or settings.ai_max_tokens,
        "messages": messages,
    }
    if system is not None:
        kwargs["system"] = system
    if temperature is not None:
        kwargs["temperature"] = temperature
    try:
        response = await client.messages.create(**kwargs)
    except anthropic.APIError as exc:
        logger.error("Claude request failed: %s", exc)
        raise UpstreamError(f"AI service error: {exc}") from exc

    text = "".join(block.text for block in response.content if block.type == "text")
    if not text:
        raise UpstreamError("AI service returned an empty response")
    return text
