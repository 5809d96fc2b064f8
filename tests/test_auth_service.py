"""Tests for AuthService — accounts, sessions and change notifications."""

from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from cozy.auth.models import AuthEvent
from cozy.auth.service import AuthService
from cozy.errors import AuthError, ConflictError, ValidationError
from cozy.profiles.store import ProfileStore

pytestmark = pytest.mark.usefixtures("_no_turso")

PASSWORD = "correct horse battery"


@pytest.fixture
async def profiles(tmp_path: Path) -> ProfileStore:
    return ProfileStore(db_path=tmp_path / "test.db")


@pytest.fixture
async def auth(tmp_path: Path, profiles: ProfileStore) -> AuthService:
    return AuthService(profiles, db_path=tmp_path / "test.db")


# -- sign_up ---------------------------------------------------------------------


async def test_sign_up_creates_profile_stub(auth: AuthService, profiles: ProfileStore) -> None:
    session = await auth.sign_up("Ana@Example.com ", PASSWORD, "Ana")
    assert session.email == "ana@example.com"
    profile = await profiles.require(session.user_id)
    assert profile.name == "Ana"
    assert not profile.is_complete


async def test_sign_up_duplicate_email(auth: AuthService) -> None:
    await auth.sign_up("ana@example.com", PASSWORD)
    with pytest.raises(ConflictError):
        await auth.sign_up("ANA@example.com", PASSWORD)


async def test_sign_up_rolls_back_when_profile_fails(
    auth: AuthService, profiles: ProfileStore
) -> None:
    with (
        patch.object(profiles, "create_stub", AsyncMock(side_effect=RuntimeError("disk full"))),
        pytest.raises(RuntimeError),
    ):
        await auth.sign_up("ana@example.com", PASSWORD, "Ana")

    with pytest.raises(AuthError):
        await auth.sign_in("ana@example.com", PASSWORD)
    session = await auth.sign_up("ana@example.com", PASSWORD, "Ana")
    assert (await profiles.require(session.user_id)).name == "Ana"


async def test_sign_in_restores_missing_profile(auth: AuthService, profiles: ProfileStore) -> None:
    created = await auth.sign_up("ana@example.com", PASSWORD, "Ana")
    db = await profiles._connect()
    try:
        await db.execute("DELETE FROM profiles WHERE id = ?", (created.user_id,))
        await db.commit()
    finally:
        await db.close()

    session = await auth.sign_in("ana@example.com", PASSWORD)
    profile = await profiles.get(session.user_id)
    assert profile is not None
    assert profile.email == "ana@example.com"


@pytest.mark.parametrize(
    ("email", "password"),
    [("not-an-email", PASSWORD), ("ana@example.com", "short"), ("ana@example.com", "x" * 73)],
)
async def test_sign_up_validation(auth: AuthService, email: str, password: str) -> None:
    with pytest.raises(ValidationError):
        await auth.sign_up(email, password)


# -- sign_in / get_session / sign_out ----------------------------------------------


async def test_sign_in_with_correct_password(auth: AuthService) -> None:
    created = await auth.sign_up("ana@example.com", PASSWORD)
    session = await auth.sign_in("ana@example.com", PASSWORD)
    assert session.user_id == created.user_id
    assert session.token != created.token


async def test_sign_in_wrong_password(auth: AuthService) -> None:
    await auth.sign_up("ana@example.com", PASSWORD)
    with pytest.raises(AuthError):
        await auth.sign_in("ana@example.com", "wrong password!")


async def test_sign_in_unknown_email(auth: AuthService) -> None:
    with pytest.raises(AuthError):
        await auth.sign_in("nobody@example.com", PASSWORD)


async def test_get_session(auth: AuthService) -> None:
    session = await auth.sign_up("ana@example.com", PASSWORD)
    assert await auth.get_session(session.token) == session
    assert await auth.get_session("bogus") is None
    assert await auth.get_session(None) is None


async def test_sign_out_ends_session(auth: AuthService) -> None:
    session = await auth.sign_up("ana@example.com", PASSWORD)
    assert await auth.sign_out(session.token) is True
    assert await auth.get_session(session.token) is None
    assert await auth.sign_out(session.token) is False


async def test_expired_session_is_dropped(tmp_path: Path, profiles: ProfileStore) -> None:
    auth = AuthService(profiles, db_path=tmp_path / "test.db", session_ttl=timedelta(seconds=-1))
    session = await auth.sign_up("ana@example.com", PASSWORD)
    assert session.is_expired
    assert await auth.get_session(session.token) is None


# -- listeners -------------------------------------------------------------------


async def test_listeners_hear_sign_in_and_out(auth: AuthService) -> None:
    events = []

    async def listener(event, session):
        events.append((event, session.user_id if session else None))

    unsubscribe = auth.on_session_change(listener)
    session = await auth.sign_up("ana@example.com", PASSWORD)
    await auth.sign_out(session.token)
    unsubscribe()
    await auth.sign_in("ana@example.com", PASSWORD)

    assert events == [
        (AuthEvent.SIGNED_IN, session.user_id),
        (AuthEvent.SIGNED_OUT, session.user_id),
    ]


async def test_failing_listener_does_not_break_sign_in(auth: AuthService) -> None:
    async def broken(event, session):
        raise RuntimeError("boom")

    auth.on_session_change(broken)
    session = await auth.sign_up("ana@example.com", PASSWORD)
    assert session.token
