"""Dating assistant chat."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from cozy.ai import session as assistant_sessions
from cozy.ai.offline import keyword_reply, last_user_message
from cozy.ai.registry import function_registry
from cozy.errors import ValidationError
from cozy.llm import client
from cozy.llm.models import resolve_model

if TYPE_CHECKING:
    from cozy.services import Services

logger = logging.getLogger(__name__)

BASE_PROMPT = (
    "You are a helpful AI dating assistant. Your goal is to provide advice, suggestions, "
    "and conversation starters to help people connect better."
)

OFFLINE_MODEL = "offline"


def build_system_prompt(
    user_profile: dict[str, Any] | None, other_profile: dict[str, Any] | None
) -> str:
    """The base prompt, plus who is talking to whom when both profiles are known."""
    prompt = BASE_PROMPT
    if user_profile and other_profile:
        other_name = other_profile.get("name") or "them"
        prompt += f" You're helping {user_profile.get('name') or 'the user'} chat with {other_name}."
        if other_profile.get("bio"):
            prompt += f" {other_name}'s bio says: \"{other_profile['bio']}\"."
        if other_profile.get("location"):
            prompt += f" They are from {other_profile['location']}."
    return prompt


def _clean_messages(messages: Any) -> list[dict[str, str]]:
    if not isinstance(messages, list):
        raise ValidationError("messages must be a list")
    cleaned = [
        {"role": m["role"], "content": str(m.get("content", ""))}
        for m in messages
        if isinstance(m, dict) and m.get("role") in ("user", "assistant") and m.get("content")
    ]
    if not cleaned:
        raise ValidationError("messages are required")
    return cleaned


@function_registry.function("ai-dating-assistant")
async def dating_assistant(payload: dict[str, Any], services: Services) -> dict[str, Any]:
    messages = _clean_messages(payload.get("messages"))
    session_id = payload.get("sessionId")
    history = None
    if session_id:
        history = assistant_sessions.get_session(payload.get("userId") or "anonymous", str(session_id))
        for m in messages:
            history.add(m["role"], m["content"])
        messages = history.to_api_messages()

    if client.is_configured():
        reply = await client.complete_text(
            messages,
            system=build_system_prompt(payload.get("userProfile"), payload.get("otherUserProfile")),
            temperature=0.7,
            max_tokens=800,
        )
        model = resolve_model()
    else:
        reply = keyword_reply(last_user_message(messages))
        model = OFFLINE_MODEL

    if history is not None:
        history.add("assistant", reply)
    return {"message": reply, "model": model}
