"""Auth session model and change events."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class AuthEvent(StrEnum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


@dataclass(frozen=True)
class Session:
    """An opaque bearer token bound to one user until sign-out or expiry."""

    token: str
    user_id: str
    email: str
    expires_at: str

    @property
    def is_expired(self) -> bool:
        return datetime.fromisoformat(self.expires_at) <= datetime.now(UTC)

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.token,
            "user_id": self.user_id,
            "email": self.email,
            "expires_at": self.expires_at,
        }


# Listener signature: async (event, session_or_none) -> None
SessionListener = Callable[[AuthEvent, Session | None], Awaitable[None]]
