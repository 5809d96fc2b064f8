"""Tests for SessionContext — one client's auth/profile state."""

import logging
from unittest.mock import AsyncMock

import pytest

from cozy.auth.context import SessionContext, SessionStatus
from cozy.profiles.models import ProfileUpdate
from cozy.services import Services

PASSWORD = "correct horse battery"


def _anonymous_notices(caplog: pytest.LogCaptureFixture) -> list[tuple[str, int]]:
    prefix = "Notification for anonymous: "
    return [
        (r.getMessage()[len(prefix) :], r.levelno)
        for r in caplog.records
        if r.getMessage().startswith(prefix)
    ]


async def test_start_without_token_is_signed_out(services: Services) -> None:
    ctx = services.session_context()
    assert ctx.state.status == SessionStatus.LOADING

    state = await ctx.start(None)

    assert state.status == SessionStatus.SIGNED_OUT
    assert state.session is None


async def test_start_with_valid_token(services: Services, make_user) -> None:
    session = await make_user("ana@example.com", complete=True)
    ctx = services.session_context()

    state = await ctx.start(session.token)

    assert state.status == SessionStatus.SIGNED_IN
    assert state.user_id == session.user_id
    assert state.has_completed_profile


async def test_start_with_incomplete_profile(services: Services, make_user) -> None:
    session = await make_user("ana@example.com")
    state = await services.session_context().start(session.token)
    assert state.status == SessionStatus.SIGNED_IN
    assert not state.has_completed_profile


async def test_start_with_unknown_token(services: Services) -> None:
    state = await services.session_context().start("not-a-token")
    assert state.status == SessionStatus.SIGNED_OUT


async def test_failed_session_lookup_signs_out_with_notice(
    services: Services, caplog: pytest.LogCaptureFixture
) -> None:
    auth = AsyncMock()
    auth.on_session_change = lambda listener: (lambda: None)
    auth.get_session.side_effect = RuntimeError("db down")
    ctx = SessionContext(auth, services.profiles, services.notifier)

    state = await ctx.start("token")

    assert state.status == SessionStatus.SIGNED_OUT
    assert _anonymous_notices(caplog) == [
        ("Failed to initialize authentication", logging.WARNING)
    ]
    assert len(services.toasts) == 0


async def test_missing_profile_fails_closed(
    services: Services, make_user, caplog: pytest.LogCaptureFixture
) -> None:
    session = await make_user("ana@example.com")
    profiles = AsyncMock()
    profiles.get.return_value = None
    ctx = SessionContext(services.auth, profiles, services.notifier)

    state = await ctx.start(session.token)

    assert state.status == SessionStatus.SIGNED_OUT
    assert _anonymous_notices(caplog) == [("Could not load your profile", logging.WARNING)]


async def test_sign_up_and_sign_in(services: Services) -> None:
    ctx = services.session_context()
    await ctx.start(None)

    assert await ctx.sign_up("ana@example.com", PASSWORD, "Ana") is True
    assert ctx.state.profile.name == "Ana"
    await ctx.sign_out()
    assert ctx.state.status == SessionStatus.SIGNED_OUT

    assert await ctx.sign_in("ana@example.com", PASSWORD) is True
    assert ctx.state.status == SessionStatus.SIGNED_IN


async def test_bad_sign_in_returns_false_and_notifies(
    services: Services, caplog: pytest.LogCaptureFixture
) -> None:
    ctx = services.session_context()
    await ctx.start(None)

    assert await ctx.sign_in("nobody@example.com", PASSWORD) is False
    assert ctx.state.status == SessionStatus.SIGNED_OUT
    assert _anonymous_notices(caplog) == [("Invalid email or password", logging.WARNING)]


async def test_listeners_hear_changes(services: Services) -> None:
    ctx = services.session_context()
    seen = []
    sub = ctx.subscribe(lambda state: seen.append(state.status))

    await ctx.start(None)
    await ctx.sign_up("ana@example.com", PASSWORD, "Ana")
    sub.unsubscribe()
    await ctx.sign_out()

    assert seen == [SessionStatus.SIGNED_OUT, SessionStatus.SIGNED_IN]
    assert not sub.active


async def test_sign_out_elsewhere_updates_context(services: Services, make_user) -> None:
    session = await make_user("ana@example.com")
    ctx = services.session_context()
    await ctx.start(session.token)

    await services.auth.sign_out(session.token)

    assert ctx.state.status == SessionStatus.SIGNED_OUT


async def test_closed_context_ignores_late_events(services: Services, make_user) -> None:
    session = await make_user("ana@example.com")
    ctx = services.session_context()
    await ctx.start(session.token)
    seen = []
    ctx.subscribe(seen.append)

    ctx.close()
    await services.auth.sign_out(session.token)

    assert ctx.closed
    assert ctx.state.status == SessionStatus.SIGNED_IN
    assert seen == []


async def test_refresh_profile_picks_up_edits(services: Services, make_user) -> None:
    session = await make_user("ana@example.com")
    ctx = services.session_context()
    await ctx.start(session.token)
    assert not ctx.state.has_completed_profile

    await services.profiles.update(
        session.user_id, ProfileUpdate(bio="Hi", location="Porto", gender="female")
    )
    state = await ctx.refresh_profile()

    assert state.has_completed_profile

