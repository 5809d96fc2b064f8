"""Date event and invitation models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


@dataclass
class Event:
    id: str
    creator_id: str
    title: str
    description: str
    location: str
    event_date: str
    created_at: str = ""

    def to_row(self) -> tuple:
        return (
            self.id,
            self.creator_id,
            self.title,
            self.description,
            self.location,
            self.event_date,
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Event:
        return cls(*row[:7])

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class EventInvitation:
    id: str
    event_id: str
    user_id: str
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: str = ""
    event: Event | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "user_id": self.user_id,
            "status": str(self.status),
            "created_at": self.created_at,
            "event": self.event.to_dict() if self.event else None,
        }
