"""libsql access for the record stores.

The ``libsql`` driver is synchronous; every call here is pushed onto a worker
thread with ``asyncio.to_thread()`` so handlers never block the event loop.

Where the data lives:

- ``TURSO_DATABASE_URL`` (+ ``TURSO_AUTH_TOKEN``) set → the hosted database
- otherwise → a local SQLite file at ``database_path``
- an explicit path (tests, the seed script) always wins
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import libsql

from cozy.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# Local files only; the hosted database manages its own journal.
_LOCAL_PRAGMAS = ("PRAGMA journal_mode=WAL", "PRAGMA busy_timeout=5000")


class Cursor:
    """Result of :meth:`Connection.execute`."""

    def __init__(self, raw: Any) -> None:
        self._raw = raw

    @property
    def rowcount(self) -> int:
        return self._raw.rowcount

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._raw.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._raw.fetchall)


class Connection:
    """One open libsql connection. Callers close it in a ``finally``."""

    def __init__(self, raw: Any) -> None:
        self._raw = raw

    async def execute(self, sql: str, params: tuple = ()) -> Cursor:
        return Cursor(await asyncio.to_thread(self._raw.execute, sql, params))

    async def last_insert_rowid(self) -> int:
        row = await (await self.execute("SELECT last_insert_rowid()")).fetchone()
        return int(row[0]) if row else 0

    async def commit(self) -> None:
        await asyncio.to_thread(self._raw.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._raw.close)


def _connect_file(path: Path) -> Any:
    path.parent.mkdir(parents=True, exist_ok=True)
    raw = libsql.connect(str(path))
    for pragma in _LOCAL_PRAGMAS:
        raw.execute(pragma)
    return raw


def _connect_remote() -> Any:
    return libsql.connect(
        database=settings.turso_database_url, auth_token=settings.turso_auth_token
    )


async def get_connection(local_path_override: Path | None = None) -> Connection:
    """Open a connection to the configured database (see module docstring)."""
    if local_path_override is not None:
        raw = await asyncio.to_thread(_connect_file, local_path_override)
    elif settings.turso_database_url:
        raw = await asyncio.to_thread(_connect_remote)
    else:
        raw = await asyncio.to_thread(_connect_file, settings.database_path)
    return Connection(raw)


def utcnow() -> str:
    """Current UTC time as an ISO 8601 string (the format every table stores)."""
    return datetime.now(UTC).isoformat()


def make_id() -> str:
    """Generate a new record ID."""
    return uuid.uuid4().hex


class SqlStore:
    """Base for libsql-backed record stores.

    Subclasses list their ``CREATE TABLE`` / ``CREATE INDEX`` statements in
    ``_SCHEMA``; they run on the first connection the store opens. Pass an
    explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _SCHEMA: tuple[str, ...] = ()

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    async def _connect(self) -> Connection:
        db = await get_connection(local_path_override=self._db_path)
        if not self._initialised:
            for statement in self._SCHEMA:
                await db.execute(statement)
            await db.commit()
            self._initialised = True
            logger.debug("%s schema ready", type(self).__name__)
        return db
