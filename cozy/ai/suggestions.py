"""Suggestions for improving a user's dating profile."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from cozy.ai.parsing import ProfileSuggestions, parse_or_default
from cozy.ai.registry import function_registry
from cozy.errors import NotFoundError, ValidationError
from cozy.llm import client
from cozy.profiles.models import missing_fields

if TYPE_CHECKING:
    from cozy.services import Services

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an AI dating profile consultant. You'll analyze a user's dating profile and "
    "questionnaire answers to provide helpful suggestions for improvement."
)

_INSTRUCTIONS = """\
Analyze this dating profile and provide suggestions for improvement:

Profile: {profile}

Provide:
1. An analysis of the current profile strengths
2. Suggestions for improving the bio
3. Recommendations for additional interests or topics to mention
4. Tips for better questionnaire answers

Return your analysis in JSON format with these fields:
{{
  "profileStrengths": string[],
  "bioSuggestions": string,
  "interestSuggestions": string[],
  "answerTips": string[],
  "overallImpression": string
}}"""

DEFAULT_SUGGESTIONS = [
    "Add more detail to your bio to showcase your personality",
    "Include specific interests rather than general ones",
    "Add a friendly, approachable photo",
    "Be more specific in your questionnaire answers",
]


def fallback_result(raw: str) -> dict[str, Any]:
    return {
        "analysis": "Analysis could not be structured properly.",
        "suggestions": list(DEFAULT_SUGGESTIONS),
        "rawAnalysis": raw,
    }


@function_registry.function("ai-profile-suggestions")
async def suggest_profile_improvements(payload: dict[str, Any], services: Services) -> dict[str, Any]:
    user_id = payload.get("userId")
    if not user_id:
        raise ValidationError("userId is required")

    profile = payload.get("currentProfile")
    if not profile:
        stored = await services.profiles.get(user_id)
        if stored is None:
            raise NotFoundError("Profile", user_id)
        profile = stored.public_dict()

    try:
        answers = await services.questionnaire.get_answers_with_questions(user_id)
    except Exception:
        logger.exception("Failed to load answers for %s", user_id)
        answers = []

    if not client.is_configured():
        missing = missing_fields(profile)
        analysis = (
            f"Your profile is missing: {', '.join(missing)}."
            if missing
            else "Your profile covers the basics."
        )
        return {"analysis": analysis, "suggestions": list(DEFAULT_SUGGESTIONS)}

    profile_data = {"profile": profile, "answers": [a.to_prompt_dict() for a in answers]}
    raw = await client.complete_text(
        [{"role": "user", "content": _INSTRUCTIONS.format(profile=json.dumps(profile_data, indent=2))}],
        system=SYSTEM_PROMPT,
        temperature=0.7,
    )
    return parse_or_default(raw, ProfileSuggestions, fallback_result(raw)).to_payload()
