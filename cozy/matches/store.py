"""MatchStore — CRUD for matches via libsql."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cozy.config import settings
from cozy.db import SqlStore, make_id, utcnow
from cozy.errors import NotFoundError, ValidationError
from cozy.matches.models import Match, MatchStatus, UserMatch

if TYPE_CHECKING:
    from pathlib import Path

    from cozy.profiles.store import ProfileStore

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS matches (
    id          TEXT PRIMARY KEY,
    user_id_1   TEXT NOT NULL,
    user_id_2   TEXT NOT NULL,
    match_score INTEGER NOT NULL,
    status      TEXT NOT NULL DEFAULT 'pending',
    created_at  TEXT NOT NULL
)
"""

# One match per unordered pair of users.
_CREATE_PAIR_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS matches_pair
ON matches (min(user_id_1, user_id_2), max(user_id_1, user_id_2))
"""

_PAIR_CLAUSE = "((user_id_1 = ? AND user_id_2 = ?) OR (user_id_1 = ? AND user_id_2 = ?))"


def _check_score(score: float) -> int:
    value = round(score)
    if not 0 <= value <= 100:
        raise ValidationError(f"Match score must be between 0 and 100, got {score}")
    return value


class MatchStore(SqlStore):
    """Persists matches between pairs of users."""

    _SCHEMA = (_CREATE_TABLE, _CREATE_PAIR_INDEX)

    def __init__(self, profiles: ProfileStore, db_path: Path | None = None) -> None:
        super().__init__(db_path)
        self._profiles = profiles

    async def get(self, match_id: str) -> Match | None:
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT * FROM matches WHERE id = ?", (match_id,))
            row = await cursor.fetchone()
            return Match.from_row(row) if row else None
        finally:
            await db.close()

    async def find_pair(self, user_a: str, user_b: str) -> Match | None:
        """The match between two users, in either order."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT * FROM matches WHERE {_PAIR_CLAUSE}",
                (user_a, user_b, user_b, user_a),
            )
            row = await cursor.fetchone()
            return Match.from_row(row) if row else None
        finally:
            await db.close()

    async def create_match(self, user_id: str, other_id: str, score: float) -> Match:
        """Create a pending match, or return the one that already exists for the pair."""
        if user_id == other_id:
            raise ValidationError("Cannot match a user with themselves")
        existing = await self.find_pair(user_id, other_id)
        if existing is not None:
            return existing

        match = Match(
            id=make_id(),
            user_id_1=user_id,
            user_id_2=other_id,
            match_score=_check_score(score),
            created_at=utcnow(),
        )
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                INSERT INTO matches (id, user_id_1, user_id_2, match_score, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT DO NOTHING
                """,
                match.to_row(),
            )
            await db.commit()
            created = cursor.rowcount > 0
        finally:
            await db.close()

        if not created:
            # Another request matched the pair first
            return await self.find_pair(user_id, other_id)
        logger.info("Created match %s (%s <-> %s)", match.id, user_id, other_id)
        return match

    async def upsert_score(self, user_a: str, user_b: str, score: float) -> Match:
        """Record a compatibility score for a pair.

        Updates the score of an existing match (keeping its status), or
        creates a pending one.
        """
        value = _check_score(score)
        existing = await self.find_pair(user_a, user_b)
        if existing is None:
            existing = await self.create_match(user_a, user_b, value)
            if existing.match_score == value:
                return existing

        existing.match_score = value
        db = await self._connect()
        try:
            await db.execute(
                "UPDATE matches SET match_score = ? WHERE id = ?",
                (existing.match_score, existing.id),
            )
            await db.commit()
            return existing
        finally:
            await db.close()

    async def update_status(self, match_id: str, status: MatchStatus | str) -> Match:
        """Set a match's status. Raises ``NotFoundError`` for an unknown id."""
        try:
            new_status = MatchStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Invalid match status: {status!r}") from exc

        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE matches SET status = ? WHERE id = ?", (str(new_status), match_id)
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise NotFoundError("Match", match_id)
        finally:
            await db.close()

        logger.info("Match %s -> %s", match_id, new_status)
        match = await self.get(match_id)
        if match is None:
            raise NotFoundError("Match", match_id)
        return match

    async def accept(self, match_id: str) -> Match:
        return await self.update_status(match_id, MatchStatus.ACCEPTED)

    async def reject(self, match_id: str) -> Match:
        return await self.update_status(match_id, MatchStatus.REJECTED)

    async def list_for_user(self, user_id: str) -> list[UserMatch]:
        """Every match involving *user_id*, newest first, with the other user's profile."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                SELECT * FROM matches
                WHERE user_id_1 = ? OR user_id_2 = ?
                ORDER BY created_at DESC
                """,
                (user_id, user_id),
            )
            rows = await cursor.fetchall()
        finally:
            await db.close()

        result: list[UserMatch] = []
        for row in rows:
            match = Match.from_row(row)
            other = await self._profiles.get(match.other_user(user_id))
            if other is None:
                logger.warning("Match %s: profile of the other user is missing", match.id)
                continue
            result.append(UserMatch(match=match, user=other))
        return result

    async def favorites(self, user_id: str, limit: int | None = None) -> list[UserMatch]:
        """Accepted matches with the highest scores."""
        matches = [
            m for m in await self.list_for_user(user_id) if m.match.status == MatchStatus.ACCEPTED
        ]
        matches.sort(key=lambda m: m.match.match_score, reverse=True)
        top = matches[: limit or settings.favorite_match_limit]
        for m in top:
            m.is_favorite = True
        return top
