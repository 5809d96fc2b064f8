"""Friendly model names for the AI functions."""

import logging

from cozy.config import settings

logger = logging.getLogger(__name__)

MODEL_MAP: dict[str, str] = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-6-20250612",
}

# Reverse lookup: full model string → friendly name
FRIENDLY_NAMES: dict[str, str] = {v: k for k, v in MODEL_MAP.items()}


def resolve_model(name_or_id: str | None = None) -> str:
    """Full model ID for a friendly name or ID; unknown names fall back to haiku."""
    name_or_id = name_or_id or settings.ai_model
    if name_or_id in MODEL_MAP:
        return MODEL_MAP[name_or_id]
    if name_or_id in FRIENDLY_NAMES:
        return name_or_id
    logger.warning("Unknown model %r, using haiku", name_or_id)
    return MODEL_MAP["haiku"]


def friendly(model_id: str) -> str:
    """Return the friendly name for a model ID, or the ID itself."""
    return FRIENDLY_NAMES.get(model_id, model_id)
