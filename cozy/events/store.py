"""EventStore — date events and invitations via libsql."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from cozy.db import SqlStore, make_id, utcnow
from cozy.errors import ConflictError, NotFoundError, ValidationError
from cozy.events.models import Event, EventInvitation, InvitationStatus

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_EVENTS = """
CREATE TABLE IF NOT EXISTS events (
    id          TEXT PRIMARY KEY,
    creator_id  TEXT NOT NULL,
    title       TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    location    TEXT NOT NULL DEFAULT '',
    event_date  TEXT NOT NULL,
    created_at  TEXT NOT NULL
)
"""

_CREATE_INVITATIONS = """
CREATE TABLE IF NOT EXISTS event_invitations (
    id         TEXT PRIMARY KEY,
    event_id   TEXT NOT NULL REFERENCES events(id),
    user_id    TEXT NOT NULL,
    status     TEXT NOT NULL DEFAULT 'pending',
    created_at TEXT NOT NULL,
    UNIQUE (event_id, user_id)
)
"""

_INVITATION_WITH_EVENT = """
SELECT i.id, i.event_id, i.user_id, i.status, i.created_at,
       e.id, e.creator_id, e.title, e.description, e.location, e.event_date, e.created_at
FROM event_invitations i
JOIN events e ON e.id = i.event_id
"""


def _invitation_from_row(row: tuple) -> EventInvitation:
    return EventInvitation(
        id=row[0],
        event_id=row[1],
        user_id=row[2],
        status=InvitationStatus(row[3]),
        created_at=row[4],
        event=Event.from_row(row[5:12]),
    )


class EventStore(SqlStore):
    """Persists dates users plan and the invitations they send."""

    _SCHEMA = (_CREATE_EVENTS, _CREATE_INVITATIONS)

    async def create_event(
        self,
        creator_id: str,
        title: str,
        event_date: datetime,
        description: str = "",
        location: str = "",
    ) -> Event:
        if not title.strip():
            raise ValidationError("Event title cannot be empty")
        event = Event(
            id=make_id(),
            creator_id=creator_id,
            title=title.strip(),
            description=description.strip(),
            location=location.strip(),
            event_date=event_date.isoformat(),
            created_at=utcnow(),
        )
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO events
                    (id, creator_id, title, description, location, event_date, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                event.to_row(),
            )
            await db.commit()
            logger.info("Created event %s by %s", event.id, creator_id)
            return event
        finally:
            await db.close()

    async def get_event(self, event_id: str) -> Event:
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT * FROM events WHERE id = ?", (event_id,))
            row = await cursor.fetchone()
        finally:
            await db.close()
        if row is None:
            raise NotFoundError("Event", event_id)
        return Event.from_row(row)

    async def list_created(self, user_id: str) -> list[Event]:
        """Events created by *user_id*, soonest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT * FROM events WHERE creator_id = ? ORDER BY event_date",
                (user_id,),
            )
            return [Event.from_row(row) for row in await cursor.fetchall()]
        finally:
            await db.close()

    async def invite(self, event_id: str, user_id: str) -> EventInvitation:
        """Invite a user to an event. Raises ``ConflictError`` if already invited."""
        event = await self.get_event(event_id)
        if event.creator_id == user_id:
            raise ValidationError("Cannot invite the event creator")

        invitation = EventInvitation(
            id=make_id(), event_id=event_id, user_id=user_id, created_at=utcnow(), event=event
        )
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT id FROM event_invitations WHERE event_id = ? AND user_id = ?",
                (event_id, user_id),
            )
            if await cursor.fetchone():
                raise ConflictError("User is already invited to this event")
            await db.execute(
                """
                INSERT INTO event_invitations (id, event_id, user_id, status, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (invitation.id, event_id, user_id, str(invitation.status), invitation.created_at),
            )
            await db.commit()
            return invitation
        finally:
            await db.close()

    async def get_invitation(self, invitation_id: str) -> EventInvitation:
        db = await self._connect()
        try:
            cursor = await db.execute(f"{_INVITATION_WITH_EVENT} WHERE i.id = ?", (invitation_id,))
            row = await cursor.fetchone()
        finally:
            await db.close()
        if row is None:
            raise NotFoundError("Invitation", invitation_id)
        return _invitation_from_row(row)

    async def respond(
        self, invitation_id: str, status: InvitationStatus | str
    ) -> EventInvitation:
        """Accept or decline an invitation."""
        try:
            new_status = InvitationStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Invalid invitation status: {status!r}") from exc
        if new_status == InvitationStatus.PENDING:
            raise ValidationError("An invitation can only be accepted or declined")

        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE event_invitations SET status = ? WHERE id = ?",
                (str(new_status), invitation_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise NotFoundError("Invitation", invitation_id)
        finally:
            await db.close()
        return await self.get_invitation(invitation_id)

    async def list_attending(self, user_id: str) -> list[Event]:
        """Events the user accepted an invitation to."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"{_INVITATION_WITH_EVENT} WHERE i.user_id = ? AND i.status = ? ORDER BY e.event_date",
                (user_id, str(InvitationStatus.ACCEPTED)),
            )
            return [_invitation_from_row(row).event for row in await cursor.fetchall()]
        finally:
            await db.close()

    async def pending_invitations(self, user_id: str) -> list[EventInvitation]:
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"{_INVITATION_WITH_EVENT} WHERE i.user_id = ? AND i.status = ? ORDER BY e.event_date",
                (user_id, str(InvitationStatus.PENDING)),
            )
            return [_invitation_from_row(row) for row in await cursor.fetchall()]
        finally:
            await db.close()
