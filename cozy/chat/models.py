"""Direct message data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cozy.profiles.models import Profile


@dataclass
class Message:
    """One direct message. Only ``read`` changes after it is sent."""

    id: str
    sender_id: str
    receiver_id: str
    content: str
    read: bool = False
    created_at: str = ""

    def to_row(self) -> tuple:
        return (
            self.id,
            self.sender_id,
            self.receiver_id,
            self.content,
            int(self.read),
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Message:
        return cls(
            id=row[0],
            sender_id=row[1],
            receiver_id=row[2],
            content=row[3],
            read=bool(row[4]),
            created_at=row[5],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Conversation:
    """The latest message exchanged with one other user."""

    user: Profile
    last_message: Message
    unread_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user": self.user.public_dict(),
            "last_message": self.last_message.to_dict(),
            "unread_count": self.unread_count,
        }
