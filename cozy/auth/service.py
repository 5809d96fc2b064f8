"""AuthService — email/password accounts and bearer sessions via libsql.

Passwords are stored as bcrypt hashes; sessions are random tokens with an
expiry. Listeners registered with :meth:`AuthService.on_session_change` hear
about every sign-in and sign-out.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import bcrypt

from cozy.auth.models import AuthEvent, Session
from cozy.config import settings
from cozy.db import SqlStore, make_id, utcnow
from cozy.errors import AuthError, ConflictError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from cozy.auth.models import SessionListener
    from cozy.profiles.store import ProfileStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72  # bcrypt input limit

_CREATE_USERS = """
CREATE TABLE IF NOT EXISTS users (
    id            TEXT PRIMARY KEY,
    email         TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at    TEXT NOT NULL
)
"""

_CREATE_SESSIONS = """
CREATE TABLE IF NOT EXISTS sessions (
    token      TEXT PRIMARY KEY,
    user_id    TEXT NOT NULL REFERENCES users(id),
    email      TEXT NOT NULL,
    expires_at TEXT NOT NULL
)
"""


def _normalise_email(email: str) -> str:
    return email.strip().lower()


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def _check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))


def _validate_credentials(email: str, password: str) -> None:
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("A valid email address is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


class AuthService(SqlStore):
    """Accounts, sessions and session-change notifications."""

    _SCHEMA = (_CREATE_USERS, _CREATE_SESSIONS)

    def __init__(
        self,
        profiles: ProfileStore,
        db_path: Path | None = None,
        session_ttl: timedelta | None = None,
    ) -> None:
        super().__init__(db_path)
        self._profiles = profiles
        self._ttl = session_ttl or timedelta(hours=settings.session_ttl_hours)
        self._listeners: list[SessionListener] = []

    # -- Listeners -------------------------------------------------------------

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: AuthEvent, session: Session | None) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception:
                logger.exception("Session listener failed on %s", event)

    # -- Accounts --------------------------------------------------------------

    async def sign_up(self, email: str, password: str, name: str = "") -> Session:
        """Create an account with an empty profile and sign it in."""
        email = _normalise_email(email)
        _validate_credentials(email, password)

        user_id = make_id()
        password_hash = await asyncio.to_thread(_hash_password, password)
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                INSERT INTO users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)
                ON CONFLICT (email) DO NOTHING
                """,
                (user_id, email, password_hash, utcnow()),
            )
            if cursor.rowcount == 0:
                raise ConflictError("An account with this email already exists")
            await db.commit()
        finally:
            await db.close()

        logger.info("Registered user %s", user_id)
        try:
            await self._profiles.create_stub(user_id, email, name)
        except Exception:
            logger.exception("Could not create profile for %s, removing the account", user_id)
            await self._delete_user(user_id)
            raise
        return await self._start_session(user_id, email)

    async def sign_in(self, email: str, password: str) -> Session:
        """Exchange credentials for a new session. Raises ``AuthError``."""
        email = _normalise_email(email)
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT id, password_hash FROM users WHERE email = ?", (email,)
            )
            row = await cursor.fetchone()
        finally:
            await db.close()

        if row is None or not await asyncio.to_thread(_check_password, password, row[1]):
            logger.info("Failed sign-in for %s", email)
            raise AuthError("Invalid email or password")
        await self._profiles.create_stub(row[0], email)
        return await self._start_session(row[0], email)

    async def sign_out(self, token: str) -> bool:
        """End a session. Returns False when the token was unknown."""
        session = await self._lookup(token)
        db = await self._connect()
        try:
            cursor = await db.execute("DELETE FROM sessions WHERE token = ?", (token,))
            await db.commit()
            removed = cursor.rowcount > 0
        finally:
            await db.close()
        if removed:
            await self._emit(AuthEvent.SIGNED_OUT, session)
        return removed

    async def get_session(self, token: str | None) -> Session | None:
        """The live session for *token*, or None when unknown or expired."""
        if not token:
            return None
        session = await self._lookup(token)
        if session is None:
            return None
        if session.is_expired:
            await self._delete(token)
            logger.info("Session for %s expired", session.user_id)
            return None
        return session

    # -- Internal helpers ------------------------------------------------------

    async def _start_session(self, user_id: str, email: str) -> Session:
        expires_at = (datetime.now(UTC) + self._ttl).isoformat()
        session = Session(
            token=secrets.token_urlsafe(32), user_id=user_id, email=email, expires_at=expires_at
        )
        db = await self._connect()
        try:
            await db.execute(
                "INSERT INTO sessions (token, user_id, email, expires_at) VALUES (?, ?, ?, ?)",
                (session.token, session.user_id, session.email, session.expires_at),
            )
            await db.commit()
        finally:
            await db.close()
        await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def _lookup(self, token: str) -> Session | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT token, user_id, email, expires_at FROM sessions WHERE token = ?",
                (token,),
            )
            row = await cursor.fetchone()
            return Session(*row) if row else None
        finally:
            await db.close()

    async def _delete_user(self, user_id: str) -> None:
        db = await self._connect()
        try:
            await db.execute("DELETE FROM users WHERE id = ?", (user_id,))
            await db.commit()
        finally:
            await db.close()

    async def _delete(self, token: str) -> None:
        db = await self._connect()
        try:
            await db.execute("DELETE FROM sessions WHERE token = ?", (token,))
            await db.commit()
        finally:
            await db.close()
