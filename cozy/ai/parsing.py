"""Structured results from free-form model output.

Models are asked for JSON but often wrap it in prose or markdown fences, or
ignore the request entirely. :func:`parse_or_default` turns whatever came
back into either a validated model or a caller-supplied default; it never
raises.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n(.*?)\n?```", re.DOTALL)


class CamelModel(BaseModel):
    """Accepts and emits the camelCase keys the frontend speaks."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CompatibilityResult(CamelModel):
    compatibility_score: int = Field(ge=0, le=100)
    compatibility_reasons: list[str]
    potential_challenges: list[str] = Field(default_factory=list)
    recommended_activities: list[str] = Field(default_factory=list)
    ai_response: str | None = None

    @field_validator("compatibility_score", mode="before")
    @classmethod
    def _round_score(cls, value: Any) -> Any:
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("score must be a finite number")
            return round(value)
        return value


class ConversationAnalysis(CamelModel):
    conversation_quality: str
    engagement_level: str
    suggested_topics: list[str] = Field(default_factory=list)
    improvement_tips: list[str] = Field(default_factory=list)
    readiness_for_meeting: str = ""


class ProfileSuggestions(CamelModel):
    profile_strengths: list[str]
    bio_suggestions: str | list[str]
    interest_suggestions: list[str] = Field(default_factory=list)
    answer_tips: list[str] = Field(default_factory=list)
    overall_impression: str = ""


@dataclass
class Parsed(Generic[T]):
    """Outcome of :func:`parse_or_default`."""

    value: T | dict[str, Any]
    fallback_used: bool
    raw: str

    def to_payload(self) -> dict[str, Any]:
        if isinstance(self.value, BaseModel):
            return self.value.model_dump(by_alias=True, exclude_none=True)
        return dict(self.value)


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Find a JSON object in *text*.

    Tries the whole text, then a fenced ```json block, then the span from
    the first ``{`` to the last ``}``.
    """
    text = text.strip()
    if not text:
        return None

    data = _loads_object(text)
    if data is not None:
        return data

    match = _FENCED_JSON.search(text)
    if match:
        data = _loads_object(match.group(1).strip())
        if data is not None:
            return data

    start = text.find("{")
    end = text.rfind("}") + 1
    if start >= 0 and end > start:
        return _loads_object(text[start:end])
    return None


def parse_or_default(text: str, model: type[T], default: dict[str, Any]) -> Parsed[T]:
    """Validate *text* as *model*, or fall back to *default*."""
    data = extract_json_object(text)
    if data is None:
        logger.warning("No JSON object in model output: %s", text[:200])
        return Parsed(value=default, fallback_used=True, raw=text)
    try:
        return Parsed(value=model.model_validate(data), fallback_used=False, raw=text)
    except ValidationError as exc:
        logger.warning(
            "Model output failed %s validation (%d errors): %s",
            model.__name__,
            exc.error_count(),
            text[:200],
        )
        return Parsed(value=default, fallback_used=True, raw=text)
