from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends

from canvas_fs.api.realtime import WebSocketHub
from canvas_fs.config import Settings
from canvas_fs.core.events import ChangeBroadcaster
from canvas_fs.core.ports.database import NodeStore
from canvas_fs.core.projects import ProjectService
from canvas_fs.core.tree import TreeService
from canvas_fs.db import create_store

_store: NodeStore | None = None
_broadcaster: ChangeBroadcaster | None = None
_hub: WebSocketHub | None = None


async def get_store() -> AsyncIterator[NodeStore]:
    """Yield a ``NodeStore`` instance, creating it lazily on first call."""
    global _store  # noqa: PLW0603
    if _store is None:
        _store = create_store(Settings.from_env())
    yield _store


def get_hub() -> WebSocketHub:
    global _hub  # noqa: PLW0603
    if _hub is None:
        _hub = WebSocketHub()
    return _hub


def get_broadcaster() -> ChangeBroadcaster:
    """Process-wide broadcaster with the WebSocket hub subscribed."""
    global _broadcaster  # noqa: PLW0603
    if _broadcaster is None:
        _broadcaster = ChangeBroadcaster()
        _broadcaster.subscribe(get_hub())
    return _broadcaster


async def get_tree_service(
    store: NodeStore = Depends(get_store),
    broadcaster: ChangeBroadcaster = Depends(get_broadcaster),
) -> TreeService:
    return TreeService(store, broadcaster)


async def get_project_service(
    store: NodeStore = Depends(get_store),
    broadcaster: ChangeBroadcaster = Depends(get_broadcaster),
) -> ProjectService:
    return ProjectService(store, broadcaster)


async def shutdown_database() -> None:
    global _store  # noqa: PLW0603
    if _store is not None:
        await _store.dispose()
        _store = None
