"""Tests for in-memory assistant sessions."""

from collections import OrderedDict

import pytest

from cozy.ai import session as assistant_sessions
from cozy.ai.session import AssistantSession, get_session


@pytest.fixture(autouse=True)
def _fresh_sessions(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(assistant_sessions, "_sessions", OrderedDict())


def test_session_add_and_retrieve() -> None:
    """Turns should be stored and retrievable."""
    session = AssistantSession(window_size=10)
    session.add("user", "hello")
    session.add("assistant", "hi there")

    msgs = session.to_api_messages()
    assert msgs == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "hi there"},
    ]


def test_session_sliding_window() -> None:
    """Session should trim to window_size."""
    session = AssistantSession(window_size=3)
    for i in range(5):
        session.add("user", f"msg {i}")

    msgs = session.to_api_messages()
    assert len(msgs) == 3
    assert msgs[0]["content"] == "msg 2"
    assert msgs[2]["content"] == "msg 4"


def test_window_never_opens_with_assistant_turn() -> None:
    session = AssistantSession(window_size=2)
    session.add("user", "q1")
    session.add("assistant", "a1")
    session.add("user", "q2")

    assert session.to_api_messages() == [{"role": "user", "content": "q2"}]


def test_get_session_creates_and_reuses() -> None:
    s1 = get_session("user-a", "chat-1")
    assert get_session("user-a", "chat-1") is s1
    assert get_session("user-a", "chat-2") is not s1


def test_sessions_are_per_user() -> None:
    """Another user with the same session id gets their own history."""
    mine = get_session("user-a", "shared-id")
    mine.add("user", "secret")
    assert get_session("user-b", "shared-id").to_api_messages() == []


def test_least_recently_used_session_forgotten(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(assistant_sessions, "MAX_SESSIONS", 2)
    first = get_session("user-a", "1")
    first.add("user", "hello")
    get_session("user-a", "2")
    assert get_session("user-a", "1") is first
    get_session("user-a", "3")

    assert list(assistant_sessions._sessions) == ["user-a:1", "user-a:3"]
    assert get_session("user-a", "1").to_api_messages() == [{"role": "user", "content": "hello"}]
    assert get_session("user-a", "2").to_api_messages() == []
