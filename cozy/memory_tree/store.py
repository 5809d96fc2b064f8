"""MemoryTreeStore — memory trees, branches and memories via libsql."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from cozy.db import SqlStore, make_id, utcnow
from cozy.errors import NotFoundError, ValidationError
from cozy.memory_tree.models import DEFAULT_BRANCH_NAME, Memory, MemoryBranch, MemoryTree
from cozy.storage import MEMORY_IMAGES_BUCKET, file_extension

if TYPE_CHECKING:
    from pathlib import Path

    from cozy.storage import BlobStore

logger = logging.getLogger(__name__)

_CREATE_TREES = """
CREATE TABLE IF NOT EXISTS memory_trees (
    id         TEXT PRIMARY KEY,
    user_id_1  TEXT NOT NULL,
    user_id_2  TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""

_CREATE_TREE_PAIR_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS memory_trees_pair
ON memory_trees (min(user_id_1, user_id_2), max(user_id_1, user_id_2))
"""

_CREATE_BRANCHES = """
CREATE TABLE IF NOT EXISTS memory_branches (
    id             TEXT PRIMARY KEY,
    memory_tree_id TEXT NOT NULL REFERENCES memory_trees(id),
    name           TEXT NOT NULL,
    created_at     TEXT NOT NULL
)
"""

_CREATE_MEMORIES = """
CREATE TABLE IF NOT EXISTS memories (
    id             TEXT PRIMARY KEY,
    memory_tree_id TEXT NOT NULL REFERENCES memory_trees(id),
    branch_id      TEXT NOT NULL REFERENCES memory_branches(id),
    title          TEXT NOT NULL,
    description    TEXT NOT NULL DEFAULT '',
    image_url      TEXT,
    created_by     TEXT NOT NULL,
    created_at     TEXT NOT NULL
)
"""


class MemoryTreeStore(SqlStore):
    """Persists the relationship journal shared by two users."""

    _SCHEMA = (_CREATE_TREES, _CREATE_TREE_PAIR_INDEX, _CREATE_BRANCHES, _CREATE_MEMORIES)

    def __init__(self, db_path: Path | None = None, blobs: BlobStore | None = None) -> None:
        super().__init__(db_path)
        self._blobs = blobs

    # -- Trees -----------------------------------------------------------------

    async def get_tree(self, user_id: str, other_id: str) -> MemoryTree | None:
        """The tree shared by two users with all branches and memories, or None."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                SELECT id, user_id_1, user_id_2, created_at FROM memory_trees
                WHERE (user_id_1 = ? AND user_id_2 = ?) OR (user_id_1 = ? AND user_id_2 = ?)
                """,
                (user_id, other_id, other_id, user_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            tree = MemoryTree(id=row[0], user_id_1=row[1], user_id_2=row[2], created_at=row[3])

            cursor = await db.execute(
                """
                SELECT id, memory_tree_id, name, created_at FROM memory_branches
                WHERE memory_tree_id = ? ORDER BY created_at, rowid
                """,
                (tree.id,),
            )
            branches = {
                r[0]: MemoryBranch(id=r[0], memory_tree_id=r[1], name=r[2], created_at=r[3])
                for r in await cursor.fetchall()
            }

            cursor = await db.execute(
                """
                SELECT id, memory_tree_id, branch_id, title, description, image_url,
                       created_by, created_at
                FROM memories WHERE memory_tree_id = ? ORDER BY created_at, rowid
                """,
                (tree.id,),
            )
            for r in await cursor.fetchall():
                memory = Memory.from_row(r)
                branch = branches.get(memory.branch_id)
                if branch is None:
                    logger.warning("Memory %s points at missing branch %s", memory.id, memory.branch_id)
                    continue
                branch.memories.append(memory)

            tree.branches = list(branches.values())
            return tree
        finally:
            await db.close()

    async def create_tree(self, user_id: str, other_id: str) -> MemoryTree:
        """Create the tree for a pair with its default branch.

        Returns the existing tree when the pair already has one.
        """
        if user_id == other_id:
            raise ValidationError("A memory tree needs two different users")
        existing = await self.get_tree(user_id, other_id)
        if existing is not None:
            return existing

        now = utcnow()
        tree = MemoryTree(id=make_id(), user_id_1=user_id, user_id_2=other_id, created_at=now)
        branch = MemoryBranch(
            id=make_id(), memory_tree_id=tree.id, name=DEFAULT_BRANCH_NAME, created_at=now
        )
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                INSERT INTO memory_trees (id, user_id_1, user_id_2, created_at) VALUES (?, ?, ?, ?)
                ON CONFLICT DO NOTHING
                """,
                (tree.id, tree.user_id_1, tree.user_id_2, tree.created_at),
            )
            created = cursor.rowcount > 0
            if created:
                await db.execute(
                    "INSERT INTO memory_branches (id, memory_tree_id, name, created_at)"
                    " VALUES (?, ?, ?, ?)",
                    (branch.id, branch.memory_tree_id, branch.name, branch.created_at),
                )
            await db.commit()
        finally:
            await db.close()

        if not created:
            # Another visitor created the pair's tree first
            return await self.get_tree(user_id, other_id)
        logger.info("Created memory tree %s (%s <-> %s)", tree.id, user_id, other_id)
        tree.branches = [branch]
        return tree

    async def get_or_create(self, user_id: str, other_id: str) -> MemoryTree:
        """Fetch the pair's tree, creating it on first visit."""
        tree = await self.get_tree(user_id, other_id)
        if tree is not None:
            return tree
        return await self.create_tree(user_id, other_id)

    async def get_tree_by_id(self, tree_id: str) -> MemoryTree:
        """Resolve a tree id to the full tree. Raises ``NotFoundError``."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT user_id_1, user_id_2 FROM memory_trees WHERE id = ?", (tree_id,)
            )
            row = await cursor.fetchone()
        finally:
            await db.close()
        if row is None:
            raise NotFoundError("Memory tree", tree_id)
        tree = await self.get_tree(row[0], row[1])
        if tree is None:
            raise NotFoundError("Memory tree", tree_id)
        return tree

    # -- Branches --------------------------------------------------------------

    async def add_branch(self, tree_id: str, name: str) -> MemoryBranch:
        """Add a named branch to a tree."""
        if not name.strip():
            raise ValidationError("Branch name cannot be empty")
        await self.get_tree_by_id(tree_id)

        branch = MemoryBranch(id=make_id(), memory_tree_id=tree_id, name=name.strip(), created_at=utcnow())
        db = await self._connect()
        try:
            await db.execute(
                "INSERT INTO memory_branches (id, memory_tree_id, name, created_at) VALUES (?, ?, ?, ?)",
                (branch.id, branch.memory_tree_id, branch.name, branch.created_at),
            )
            await db.commit()
            return branch
        finally:
            await db.close()

    async def get_branch(self, branch_id: str) -> MemoryBranch:
        """Look up a branch (without its memories). Raises ``NotFoundError``."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT id, memory_tree_id, name, created_at FROM memory_branches WHERE id = ?",
                (branch_id,),
            )
            row = await cursor.fetchone()
        finally:
            await db.close()
        if row is None:
            raise NotFoundError("Memory branch", branch_id)
        return MemoryBranch(id=row[0], memory_tree_id=row[1], name=row[2], created_at=row[3])

    # -- Memories --------------------------------------------------------------

    async def add_memory(
        self,
        branch_id: str,
        user_id: str,
        title: str,
        description: str = "",
        image: tuple[str, bytes] | None = None,
    ) -> Memory:
        """Add a note to a branch, optionally illustrated.

        *image* is ``(filename, data)``. A failed upload is logged and the
        memory is saved without an image.
        """
        if not title.strip():
            raise ValidationError("Memory title cannot be empty")
        branch = await self.get_branch(branch_id)

        image_url = None
        if image is not None:
            image_url = self._upload_image(branch, image)

        memory = Memory(
            id=make_id(),
            memory_tree_id=branch.memory_tree_id,
            branch_id=branch.id,
            title=title.strip(),
            description=description.strip(),
            image_url=image_url,
            created_by=user_id,
            created_at=utcnow(),
        )
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO memories
                    (id, memory_tree_id, branch_id, title, description, image_url,
                     created_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                memory.to_row(),
            )
            await db.commit()
            return memory
        finally:
            await db.close()

    def _upload_image(self, branch: MemoryBranch, image: tuple[str, bytes]) -> str | None:
        if self._blobs is None:
            logger.warning("No blob store configured; dropping memory image")
            return None
        filename, data = image
        path = f"{branch.memory_tree_id}/{branch.id}/{int(time.time() * 1000)}.{file_extension(filename)}"
        try:
            return self._blobs.upload(MEMORY_IMAGES_BUCKET, path, data)
        except (ValueError, OSError):
            logger.exception("Memory image upload failed (branch=%s)", branch.id)
            return None
