"""Coaching feedback on a conversation between two users."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from cozy.ai.offline import conversation_insight
from cozy.ai.parsing import ConversationAnalysis, parse_or_default
from cozy.ai.registry import function_registry
from cozy.errors import ValidationError
from cozy.llm import client

if TYPE_CHECKING:
    from cozy.chat.models import Message
    from cozy.services import Services

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an AI dating conversation coach. You'll analyze conversations between two "
    "people who are in the early stages of dating, and provide helpful insights."
)

_INSTRUCTIONS = """\
Analyze this conversation between two people who are dating and provide insights:

User profiles:
You: {you}
Other person: {other}

Conversation:
{conversation}

Provide:
1. An analysis of the conversation flow and engagement
2. Potential conversation topics based on shared interests
3. Suggestions for how to improve the conversation
4. When it might be appropriate to suggest meeting in person

Return your analysis in JSON format with these fields:
{{
  "conversationQuality": string,
  "engagementLevel": string,
  "suggestedTopics": string[],
  "improvementTips": string[],
  "readinessForMeeting": string
}}"""

NO_MESSAGES_RESULT: dict[str, Any] = {
    "analysis": "Not enough conversation data to analyze.",
    "suggestions": [
        "Start a conversation by asking about their interests.",
        "Share something about yourself to encourage reciprocation.",
    ],
}

DEFAULT_TOPICS = ["Ask about their hobbies", "Share a recent experience", "Discuss favorite places"]


def fallback_result(raw: str) -> dict[str, Any]:
    return {
        "analysis": "Analysis could not be structured properly.",
        "rawAnalysis": raw,
        "suggestedTopics": list(DEFAULT_TOPICS),
    }


def format_conversation(messages: list[Message], user_id: str) -> list[dict[str, str]]:
    return [
        {
            "speaker": "You" if m.sender_id == user_id else "Other",
            "message": m.content,
            "timestamp": m.created_at,
        }
        for m in messages
    ]


@function_registry.function("ai-conversation-analysis", participants=("userId",))
async def analyze_conversation(payload: dict[str, Any], services: Services) -> dict[str, Any]:
    user_id = payload.get("userId")
    other_id = payload.get("otherUserId")
    if not user_id or not other_id:
        raise ValidationError("Both userId and otherUserId are required")

    messages = await services.messages.history(user_id, other_id)
    if not messages:
        return {k: list(v) if isinstance(v, list) else v for k, v in NO_MESSAGES_RESULT.items()}

    if not client.is_configured():
        return {
            "analysis": conversation_insight(len(messages)),
            "suggestedTopics": list(DEFAULT_TOPICS),
        }

    you, other = await asyncio.gather(
        services.profiles.get(user_id),
        services.profiles.get(other_id),
    )
    prompt = _INSTRUCTIONS.format(
        you=json.dumps(you.public_dict() if you else None, indent=2),
        other=json.dumps(other.public_dict() if other else None, indent=2),
        conversation=json.dumps(format_conversation(messages, user_id), indent=2),
    )
    raw = await client.complete_text(
        [{"role": "user", "content": prompt}],
        system=SYSTEM_PROMPT,
        temperature=0.7,
    )
    return parse_or_default(raw, ConversationAnalysis, fallback_result(raw)).to_payload()
