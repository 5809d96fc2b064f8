"""Match data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cozy.profiles.models import Profile


class MatchStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class Match:
    """A scored pairing of two users."""

    id: str
    user_id_1: str
    user_id_2: str
    match_score: int
    status: MatchStatus = MatchStatus.PENDING
    created_at: str = ""

    def other_user(self, user_id: str) -> str:
        """The id of the user on the other side of the match."""
        return self.user_id_2 if self.user_id_1 == user_id else self.user_id_1

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user_id_1, self.user_id_2)

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``matches`` column order."""
        return (
            self.id,
            self.user_id_1,
            self.user_id_2,
            self.match_score,
            str(self.status),
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Match:
        return cls(
            id=row[0],
            user_id_1=row[1],
            user_id_2=row[2],
            match_score=int(row[3]),
            status=MatchStatus(row[4]),
            created_at=row[5],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id_1": self.user_id_1,
            "user_id_2": self.user_id_2,
            "match_score": self.match_score,
            "status": str(self.status),
            "created_at": self.created_at,
        }


@dataclass
class UserMatch:
    """A match seen from one user's side, carrying the other user's profile."""

    match: Match
    user: Profile
    is_favorite: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.match.id,
            "user": self.user.public_dict(),
            "match_score": self.match.match_score,
            "status": str(self.match.status),
            "created_at": self.match.created_at,
            "is_favorite": self.is_favorite,
        }
