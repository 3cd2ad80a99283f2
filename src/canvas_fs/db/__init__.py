from __future__ import annotations

from typing import TYPE_CHECKING

from canvas_fs.db.engine import get_engine
from canvas_fs.db.memory import InMemoryNodeStore
from canvas_fs.db.postgres import PostgresNodeStore

if TYPE_CHECKING:
    from canvas_fs.config import Settings
    from canvas_fs.core.ports.database import NodeStore


def create_store(settings: Settings) -> NodeStore:
    """Build the ``NodeStore`` selected by ``CANVAS_FS_STORAGE``."""
    if settings.storage == "memory":
        return InMemoryNodeStore()
    return PostgresNodeStore(get_engine(settings.database_url))


__all__ = [
    "InMemoryNodeStore",
    "PostgresNodeStore",
    "create_store",
    "get_engine",
]
