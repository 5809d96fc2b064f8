"""Tests for the libsql connection wrapper and SqlStore base."""

from pathlib import Path

import pytest

from cozy.db import SqlStore, get_connection, make_id, utcnow

pytestmark = pytest.mark.usefixtures("_no_turso")


class _NotesStore(SqlStore):
    _SCHEMA = ("CREATE TABLE IF NOT EXISTS notes (id INTEGER PRIMARY KEY, body TEXT)",)


async def test_local_connection_round_trip(tmp_path: Path) -> None:
    db = await get_connection(local_path_override=tmp_path / "sub" / "test.db")
    try:
        await db.execute("CREATE TABLE t (x INTEGER)")
        await db.execute("INSERT INTO t (x) VALUES (?)", (42,))
        await db.commit()
        cursor = await db.execute("SELECT x FROM t")
        assert await cursor.fetchall() == [(42,)]
    finally:
        await db.close()
    assert (tmp_path / "sub" / "test.db").exists()


async def test_last_insert_rowid(tmp_path: Path) -> None:
    db = await get_connection(local_path_override=tmp_path / "test.db")
    try:
        await db.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, x TEXT)")
        await db.execute("INSERT INTO t (x) VALUES ('a')")
        await db.execute("INSERT INTO t (x) VALUES ('b')")
        assert await db.last_insert_rowid() == 2
    finally:
        await db.close()


async def test_sql_store_creates_schema_once(tmp_path: Path) -> None:
    store = _NotesStore(tmp_path / "test.db")
    db = await store._connect()
    try:
        await db.execute("INSERT INTO notes (body) VALUES ('hi')")
        await db.commit()
    finally:
        await db.close()
    assert store._initialised

    db = await store._connect()
    try:
        cursor = await db.execute("SELECT COUNT(*) FROM notes")
        assert (await cursor.fetchone())[0] == 1
    finally:
        await db.close()


async def test_falls_back_to_database_path(tmp_path: Path, monkeypatch) -> None:
    target = tmp_path / "fallback" / "app.db"
    monkeypatch.setattr("cozy.config.settings.database_path", target)
    db = await get_connection()
    await db.close()
    assert target.exists()


def test_make_id_is_unique_hex() -> None:
    ids = {make_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(i) == 32 for i in ids)


def test_utcnow_is_iso_with_timezone() -> None:
    assert utcnow().endswith("+00:00")
