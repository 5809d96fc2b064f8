"""Tests for the offline AI heuristics."""

import pytest

from cozy.ai.offline import (
    DEFAULT_REPLY,
    answer_overlap,
    conversation_insight,
    keyword_reply,
    last_user_message,
)


@pytest.mark.parametrize(
    ("prompt", "fragment"),
    [
        ("How do I keep a RELATIONSHIP healthy?", "healthy relationship"),
        ("Can you fix my bio?", "dating profile"),
        ("What should my first message say?", "open-ended questions"),
        ("Which photo should I use?", "real you"),
        ("Where should we meetup?", "public place"),
    ],
)
def test_keyword_reply(prompt: str, fragment: str) -> None:
    assert fragment in keyword_reply(prompt)


def test_first_keyword_group_wins() -> None:
    # "dating" is checked before "profile"
    assert "healthy relationship" in keyword_reply("my dating profile")


def test_default_reply() -> None:
    assert keyword_reply("hello there") == DEFAULT_REPLY


@pytest.mark.parametrize(
    ("count", "fragment"),
    [
        (0, "just getting started"),
        (1, "just getting started"),
        (3, "Keep the conversation going"),
        (5, "Keep the conversation going"),
        (6, "good conversation"),
        (10, "deep conversation"),
        (40, "deep conversation"),
    ],
)
def test_conversation_insight(count: int, fragment: str) -> None:
    assert fragment in conversation_insight(count)


def test_answer_overlap() -> None:
    first = {1: "Pizza", 2: "Mountains", 3: "Dogs"}
    second = {1: " pizza ", 2: "Beach", 4: "Cats"}
    assert answer_overlap(first, second) == 50


def test_answer_overlap_nothing_shared() -> None:
    assert answer_overlap({1: "a"}, {2: "a"}) == 0
    assert answer_overlap({}, {}) == 0


def test_last_user_message() -> None:
    messages = [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "reply"},
        {"role": "user", "content": "second"},
        {"role": "assistant", "content": "reply again"},
    ]
    assert last_user_message(messages) == "second"
    assert last_user_message([]) == ""
