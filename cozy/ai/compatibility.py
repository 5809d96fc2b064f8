"""Compatibility analysis between two users."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import TYPE_CHECKING, Any

from cozy.ai.offline import answer_overlap
from cozy.ai.parsing import CompatibilityResult, parse_or_default
from cozy.ai.registry import function_registry
from cozy.errors import NotFoundError, ValidationError
from cozy.llm import client

if TYPE_CHECKING:
    from cozy.profiles.models import Profile
    from cozy.questionnaire.models import AnsweredQuestion
    from cozy.services import Services

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an AI dating compatibility analyst. You'll analyze two user profiles "
    "and their questionnaire answers to determine compatibility."
)

_INSTRUCTIONS = """\
Analyze the compatibility between these two users and provide a compatibility \
score between 0-100 as well as reasons for compatibility:

User 1: {user_one}

User 2: {user_two}

Return the analysis in JSON format with these fields:
{{
  "compatibilityScore": number,
  "compatibilityReasons": string[],
  "potentialChallenges": string[],
  "recommendedActivities": string[]
}}"""


def fallback_result(raw: str, score: int | None = None) -> dict[str, Any]:
    """Default payload when the model's answer can't be used."""
    return {
        "compatibilityScore": score if score is not None else random.randint(70, 89),
        "compatibilityReasons": ["Based on shared interests", "Complementary personalities"],
        "potentialChallenges": ["Communication differences", "Different expectations"],
        "recommendedActivities": ["Coffee date", "Outdoor activities"],
        "aiResponse": raw,
    }


def _user_block(profile: Profile, answers: list[AnsweredQuestion]) -> str:
    data = {
        "profile": profile.public_dict(),
        "answers": [a.to_prompt_dict() for a in answers],
    }
    return json.dumps(data, indent=2)


@function_registry.function("ai-compatibility", participants=("userOneId", "userTwoId"))
async def analyze_compatibility(payload: dict[str, Any], services: Services) -> dict[str, Any]:
    user_one_id = payload.get("userOneId")
    user_two_id = payload.get("userTwoId")
    if not user_one_id or not user_two_id:
        raise ValidationError("Both userOneId and userTwoId are required")

    profile_one, profile_two, answers_one, answers_two = await asyncio.gather(
        services.profiles.get(user_one_id),
        services.profiles.get(user_two_id),
        services.questionnaire.get_answers_with_questions(user_one_id),
        services.questionnaire.get_answers_with_questions(user_two_id),
    )
    if profile_one is None:
        raise NotFoundError("Profile", user_one_id)
    if profile_two is None:
        raise NotFoundError("Profile", user_two_id)

    if client.is_configured():
        raw = await client.complete_text(
            [{
                "role": "user",
                "content": _INSTRUCTIONS.format(
                    user_one=_user_block(profile_one, answers_one),
                    user_two=_user_block(profile_two, answers_two),
                ),
            }],
            system=SYSTEM_PROMPT,
            temperature=0.5,
        )
        parsed = parse_or_default(raw, CompatibilityResult, fallback_result(raw))
        result = parsed.to_payload()
    else:
        overlap = answer_overlap(
            {a.question_id: a.answer for a in answers_one},
            {a.question_id: a.answer for a in answers_two},
        )
        shared = {a.question_id for a in answers_one} & {a.question_id for a in answers_two}
        result = fallback_result("", score=overlap if shared else None)

    try:
        await services.matches.upsert_score(user_one_id, user_two_id, result["compatibilityScore"])
    except Exception:
        logger.exception("Failed to save match score for %s / %s", user_one_id, user_two_id)

    return result
