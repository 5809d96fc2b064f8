"""Profile data model."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any

from pydantic import BaseModel, Field

# Fields that must be filled in before the profile counts as complete.
REQUIRED_FIELDS = ("name", "bio", "location", "gender")


def missing_fields(values: dict[str, Any]) -> list[str]:
    """Required fields that are absent or blank in *values*."""
    return [f for f in REQUIRED_FIELDS if not str(values.get(f) or "").strip()]


@dataclass
class Profile:
    """A user's dating profile, keyed by the auth user id."""

    id: str
    email: str = ""
    name: str = ""
    avatar: str | None = None
    bio: str | None = None
    location: str | None = None
    gender: str | None = None
    date_of_birth: str | None = None
    created_at: str = ""

    @property
    def is_complete(self) -> bool:
        """True when name, bio, location and gender are all non-empty."""
        return not missing_fields(asdict(self))

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``profiles`` column order."""
        return (
            self.id,
            self.email,
            self.name,
            self.avatar,
            self.bio,
            self.location,
            self.gender,
            self.date_of_birth,
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Profile:
        return cls(
            id=row[0],
            email=row[1] or "",
            name=row[2] or "",
            avatar=row[3],
            bio=row[4],
            location=row[5],
            gender=row[6],
            date_of_birth=row[7],
            created_at=row[8],
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["is_complete"] = self.is_complete
        return data

    def public_dict(self) -> dict[str, Any]:
        """Profile as shown to other users (no email)."""
        data = self.to_dict()
        data.pop("email")
        return data


class ProfileUpdate(BaseModel):
    """Fields a user may change from the profile form.

    Omitted fields are left untouched.
    """

    name: str | None = Field(default=None, max_length=100)
    avatar: str | None = None
    bio: str | None = Field(default=None, max_length=2000)
    location: str | None = Field(default=None, max_length=200)
    gender: str | None = Field(default=None, max_length=50)
    date_of_birth: date | None = None
