"""Heuristics used when no Anthropic API key is configured."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

# Checked in order; the first keyword hit wins.
_KEYWORD_REPLIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("dating", "relationship"),
        "Building a healthy relationship takes time and effort. Focus on communication, "
        "trust, and understanding each other's needs and boundaries.",
    ),
    (
        ("profile", "bio"),
        "A good dating profile highlights your personality, interests, and what makes you "
        "unique. Be honest and authentic, and include some conversation starters.",
    ),
    (
        ("message", "chat"),
        "When starting a conversation, show genuine interest by asking open-ended questions. "
        "Reference something from their profile to show you've paid attention.",
    ),
    (
        ("photo", "picture"),
        "Choose photos that show the real you, including a clear face shot, a full-body "
        "photo, and pictures of you doing activities you enjoy. Avoid using filters that "
        "dramatically change your appearance.",
    ),
    (
        ("date", "meetup"),
        "For a first date, choose a public place where you can talk easily. Coffee shops, "
        "casual restaurants, or a walk in a park are good options. Keep it relatively short "
        "(1-2 hours) to leave room for anticipation if things go well.",
    ),
)

DEFAULT_REPLY = (
    "I'm here to help with all your dating and relationship questions. Feel free to ask "
    "about creating your profile, sending messages, planning dates, or developing "
    "meaningful connections."
)


def keyword_reply(prompt: str) -> str:
    lowered = prompt.lower()
    for keywords, reply in _KEYWORD_REPLIES:
        if any(k in lowered for k in keywords):
            return reply
    return DEFAULT_REPLY


def conversation_insight(message_count: int) -> str:
    """A canned observation based only on how long the conversation is."""
    if message_count <= 1:
        return "The conversation is just getting started. Keep it going by asking open-ended questions."
    if message_count >= 10:
        return (
            "This is a deep conversation! You might consider suggesting a video call or "
            "meeting in person if you feel comfortable."
        )
    if message_count > 5:
        return (
            "You're having a good conversation! Consider introducing a new topic or asking "
            "about their interests to keep the momentum going."
        )
    return (
        "Keep the conversation going by being curious about them, sharing about yourself, "
        "and looking for common interests."
    )


def answer_overlap(first: Mapping[int, str], second: Mapping[int, str]) -> int:
    """Percentage of shared questions answered identically; 0 with nothing shared."""
    shared = [qid for qid in first if qid in second]
    if not shared:
        return 0
    same = sum(
        1 for qid in shared if str(first[qid]).strip().lower() == str(second[qid]).strip().lower()
    )
    return round(same / len(shared) * 100)


def last_user_message(messages: Sequence[Mapping[str, str]]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return str(message.get("content", ""))
    return ""
