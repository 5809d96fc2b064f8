"""ProfileStore — CRUD for profiles via libsql."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from cozy.config import settings
from cozy.db import SqlStore, utcnow
from cozy.errors import NotFoundError, ValidationError
from cozy.profiles.models import Profile, ProfileUpdate
from cozy.storage import AVATARS_BUCKET, file_extension

if TYPE_CHECKING:
    from pathlib import Path

    from cozy.storage import BlobStore

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS profiles (
    id            TEXT PRIMARY KEY,
    email         TEXT NOT NULL DEFAULT '',
    name          TEXT NOT NULL DEFAULT '',
    avatar        TEXT,
    bio           TEXT,
    location      TEXT,
    gender        TEXT,
    date_of_birth TEXT,
    created_at    TEXT NOT NULL
)
"""


class ProfileStore(SqlStore):
    """Persists user profiles in SQLite / Turso."""

    _SCHEMA = (_CREATE_TABLE,)

    def __init__(self, db_path: Path | None = None, blobs: BlobStore | None = None) -> None:
        super().__init__(db_path)
        self._blobs = blobs

    async def create_stub(self, user_id: str, email: str, name: str = "") -> Profile:
        """Create the empty profile every new account starts with.

        Idempotent: an existing profile is returned unchanged.
        """
        existing = await self.get(user_id)
        if existing is not None:
            return existing

        profile = Profile(id=user_id, email=email, name=name.strip(), created_at=utcnow())
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                INSERT INTO profiles
                    (id, email, name, avatar, bio, location, gender, date_of_birth, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (id) DO NOTHING
                """,
                profile.to_row(),
            )
            await db.commit()
            created = cursor.rowcount > 0
        finally:
            await db.close()
        if not created:
            return await self.require(user_id)
        logger.info("Created profile stub for %s", user_id)
        return profile

    async def get(self, user_id: str) -> Profile | None:
        """Fetch one profile, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT * FROM profiles WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
            return Profile.from_row(row) if row else None
        finally:
            await db.close()

    async def require(self, user_id: str) -> Profile:
        """Fetch one profile. Raises ``NotFoundError`` if missing."""
        profile = await self.get(user_id)
        if profile is None:
            raise NotFoundError("Profile", user_id)
        return profile

    async def update(self, user_id: str, changes: ProfileUpdate) -> Profile:
        """Apply the fields set in *changes* and return the updated profile."""
        profile = await self.require(user_id)
        fields = changes.model_dump(exclude_unset=True)
        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError("Name cannot be empty")

        for key, value in fields.items():
            if key == "date_of_birth" and value is not None:
                value = value.isoformat()
            elif isinstance(value, str):
                value = value.strip()
            setattr(profile, key, value)

        db = await self._connect()
        try:
            await db.execute(
                """
                UPDATE profiles
                SET name = ?, avatar = ?, bio = ?, location = ?, gender = ?, date_of_birth = ?
                WHERE id = ?
                """,
                (
                    profile.name,
                    profile.avatar,
                    profile.bio,
                    profile.location,
                    profile.gender,
                    profile.date_of_birth,
                    user_id,
                ),
            )
            await db.commit()
            logger.info("Updated profile %s (fields: %s)", user_id, ", ".join(fields) or "none")
            return profile
        finally:
            await db.close()

    async def is_complete(self, user_id: str) -> bool:
        """True when the profile exists and has every required field filled in."""
        profile = await self.get(user_id)
        return profile is not None and profile.is_complete

    async def list_others(self, user_id: str, limit: int | None = None) -> list[Profile]:
        """Candidate matches: every profile except *user_id*."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT * FROM profiles WHERE id != ? ORDER BY created_at DESC LIMIT ?",
                (user_id, limit or settings.potential_match_limit),
            )
            rows = await cursor.fetchall()
            return [Profile.from_row(row) for row in rows]
        finally:
            await db.close()

    async def upload_avatar(self, user_id: str, filename: str, data: bytes) -> Profile:
        """Store an avatar image and point the profile at its public URL."""
        if self._blobs is None:
            msg = "ProfileStore was created without a BlobStore"
            raise RuntimeError(msg)
        previous = (await self.require(user_id)).avatar
        path = f"{user_id}/{int(time.time() * 1000)}.{file_extension(filename)}"
        try:
            url = self._blobs.upload(AVATARS_BUCKET, path, data)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        profile = await self.update(user_id, ProfileUpdate(avatar=url))

        old_path = self._blobs.path_from_url(AVATARS_BUCKET, previous) if previous else None
        if old_path and previous != url:
            try:
                self._blobs.delete(AVATARS_BUCKET, old_path)
            except (OSError, ValueError):
                logger.warning("Could not remove old avatar %s", previous, exc_info=True)
        return profile
