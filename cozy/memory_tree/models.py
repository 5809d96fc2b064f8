"""Memory tree data models: a tree per couple, named branches, illustrated notes."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

DEFAULT_BRANCH_NAME = "First Meeting"


@dataclass
class Memory:
    id: str
    memory_tree_id: str
    branch_id: str
    title: str
    description: str = ""
    image_url: str | None = None
    created_by: str = ""
    created_at: str = ""

    def to_row(self) -> tuple:
        return (
            self.id,
            self.memory_tree_id,
            self.branch_id,
            self.title,
            self.description,
            self.image_url,
            self.created_by,
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Memory:
        return cls(*row)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MemoryBranch:
    id: str
    memory_tree_id: str
    name: str
    created_at: str = ""
    memories: list[Memory] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MemoryTree:
    """Shared journal of a couple. ``user_id_1``/``user_id_2`` order is creation order."""

    id: str
    user_id_1: str
    user_id_2: str
    created_at: str = ""
    branches: list[MemoryBranch] = field(default_factory=list)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user_id_1, self.user_id_2)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
