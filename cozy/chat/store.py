"""MessageStore — direct messages between users via libsql."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cozy.chat.models import Conversation, Message
from cozy.db import SqlStore, make_id, utcnow
from cozy.errors import ValidationError

if TYPE_CHECKING:
    from pathlib import Path

    from cozy.profiles.store import ProfileStore

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS messages (
    id          TEXT PRIMARY KEY,
    sender_id   TEXT NOT NULL,
    receiver_id TEXT NOT NULL,
    content     TEXT NOT NULL,
    read        INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL
)
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS messages_receiver_unread ON messages (receiver_id, read)
"""

_THREAD_CLAUSE = "((sender_id = ? AND receiver_id = ?) OR (sender_id = ? AND receiver_id = ?))"


class MessageStore(SqlStore):
    """Persists direct messages. Append-only apart from the read flag."""

    _SCHEMA = (_CREATE_TABLE, _CREATE_INDEX)

    def __init__(self, profiles: ProfileStore, db_path: Path | None = None) -> None:
        super().__init__(db_path)
        self._profiles = profiles

    async def send(self, sender_id: str, receiver_id: str, content: str) -> Message:
        """Store a new unread message."""
        content = content.strip()
        if not content:
            raise ValidationError("Message cannot be empty")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message is longer than {MAX_MESSAGE_LENGTH} characters")
        if sender_id == receiver_id:
            raise ValidationError("Cannot send a message to yourself")

        message = Message(
            id=make_id(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            created_at=utcnow(),
        )
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO messages (id, sender_id, receiver_id, content, read, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                message.to_row(),
            )
            await db.commit()
            return message
        finally:
            await db.close()

    async def history(self, user_id: str, other_id: str) -> list[Message]:
        """Both directions of a conversation, oldest first, without marking anything read."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT * FROM messages WHERE {_THREAD_CLAUSE} ORDER BY created_at, rowid",
                (user_id, other_id, other_id, user_id),
            )
            rows = await cursor.fetchall()
            return [Message.from_row(row) for row in rows]
        finally:
            await db.close()

    async def thread(self, user_id: str, other_id: str) -> list[Message]:
        """Both directions of a conversation, oldest first.

        Opening the thread marks everything *other_id* sent to *user_id* as
        read. The returned messages show the read flag as it was before.
        """
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT * FROM messages WHERE {_THREAD_CLAUSE} ORDER BY created_at, rowid",
                (user_id, other_id, other_id, user_id),
            )
            rows = await cursor.fetchall()
            messages = [Message.from_row(row) for row in rows]

            if any(m.receiver_id == user_id and not m.read for m in messages):
                cursor = await db.execute(
                    """
                    UPDATE messages SET read = 1
                    WHERE receiver_id = ? AND sender_id = ? AND read = 0
                    """,
                    (user_id, other_id),
                )
                await db.commit()
                logger.debug("Marked %d message(s) read for %s", cursor.rowcount, user_id)
            return messages
        finally:
            await db.close()

    async def unread_count(self, user_id: str, sender_id: str | None = None) -> int:
        """Unread messages addressed to *user_id*, optionally from one sender."""
        sql = "SELECT COUNT(*) FROM messages WHERE receiver_id = ? AND read = 0"
        params: tuple = (user_id,)
        if sender_id is not None:
            sql += " AND sender_id = ?"
            params = (user_id, sender_id)
        db = await self._connect()
        try:
            cursor = await db.execute(sql, params)
            row = await cursor.fetchone()
            return int(row[0]) if row else 0
        finally:
            await db.close()

    async def recent_conversations(self, user_id: str) -> list[Conversation]:
        """One entry per counterpart with the latest message, newest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                SELECT * FROM messages
                WHERE sender_id = ? OR receiver_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (user_id, user_id),
            )
            rows = await cursor.fetchall()
        finally:
            await db.close()

        latest: dict[str, Message] = {}
        for row in rows:
            message = Message.from_row(row)
            other = message.receiver_id if message.sender_id == user_id else message.sender_id
            latest.setdefault(other, message)

        conversations: list[Conversation] = []
        for other_id, message in latest.items():
            profile = await self._profiles.get(other_id)
            if profile is None:
                logger.warning("Conversation with %s skipped: profile missing", other_id)
                continue
            unread = await self.unread_count(user_id, sender_id=other_id)
            conversations.append(Conversation(user=profile, last_message=message, unread_count=unread))
        return conversations
