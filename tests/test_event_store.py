"""Tests for EventStore — planned dates and invitations."""

from datetime import datetime
from pathlib import Path

import pytest

from cozy.errors import ConflictError, NotFoundError, ValidationError
from cozy.events.models import InvitationStatus
from cozy.events.store import EventStore

pytestmark = pytest.mark.usefixtures("_no_turso")


@pytest.fixture
async def store(tmp_path: Path) -> EventStore:
    return EventStore(db_path=tmp_path / "test.db")


async def _event(store: EventStore, title: str = "Picnic", day: int = 10):
    return await store.create_event(
        "alice", title, datetime(2026, 6, day, 18, 0), description="Bring fruit", location="Park"
    )


async def test_create_and_get_event(store: EventStore) -> None:
    event = await _event(store)
    fetched = await store.get_event(event.id)
    assert fetched.title == "Picnic"
    assert fetched.event_date == "2026-06-10T18:00:00"
    assert fetched.location == "Park"


async def test_blank_title_rejected(store: EventStore) -> None:
    with pytest.raises(ValidationError):
        await store.create_event("alice", "  ", datetime(2026, 6, 1))


async def test_get_unknown_event(store: EventStore) -> None:
    with pytest.raises(NotFoundError):
        await store.get_event("missing")


async def test_list_created_ordered_by_date(store: EventStore) -> None:
    await _event(store, "Later", day=20)
    await _event(store, "Sooner", day=5)
    events = await store.list_created("alice")
    assert [e.title for e in events] == ["Sooner", "Later"]


async def test_invite_and_respond(store: EventStore) -> None:
    event = await _event(store)
    invitation = await store.invite(event.id, "bob")
    assert invitation.status == InvitationStatus.PENDING

    pending = await store.pending_invitations("bob")
    assert [i.id for i in pending] == [invitation.id]
    assert pending[0].event.title == "Picnic"

    accepted = await store.respond(invitation.id, "accepted")
    assert accepted.status == InvitationStatus.ACCEPTED
    assert await store.pending_invitations("bob") == []
    assert [e.id for e in await store.list_attending("bob")] == [event.id]


async def test_declined_not_attending(store: EventStore) -> None:
    event = await _event(store)
    invitation = await store.invite(event.id, "bob")
    await store.respond(invitation.id, InvitationStatus.DECLINED)
    assert await store.list_attending("bob") == []


async def test_duplicate_invite_conflicts(store: EventStore) -> None:
    event = await _event(store)
    await store.invite(event.id, "bob")
    with pytest.raises(ConflictError):
        await store.invite(event.id, "bob")


async def test_cannot_invite_creator(store: EventStore) -> None:
    event = await _event(store)
    with pytest.raises(ValidationError):
        await store.invite(event.id, "alice")


async def test_respond_invalid_status(store: EventStore) -> None:
    event = await _event(store)
    invitation = await store.invite(event.id, "bob")
    with pytest.raises(ValidationError):
        await store.respond(invitation.id, "pending")
    with pytest.raises(ValidationError):
        await store.respond(invitation.id, "maybe")


async def test_respond_unknown_invitation(store: EventStore) -> None:
    with pytest.raises(NotFoundError):
        await store.respond("missing", "accepted")
