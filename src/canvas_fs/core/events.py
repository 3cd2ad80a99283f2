from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from canvas_fs.core.ports.notifier import ChangeObserver

logger = logging.getLogger(__name__)

NODE_CREATED = "node-created"
NODE_DELETED = "node-deleted"
NODE_MOVED = "node-moved"
FOLDER_EXPANDED = "folder-expanded"
FILE_UPDATED = "file-updated"
TREE_UPDATED = "tree-updated"
PROJECT_CREATED = "project-created"
PROJECT_DELETED = "project-deleted"


@dataclass(frozen=True)
class ChangeEvent:
    type: str
    project_id: str
    payload: dict[str, Any] = field(default_factory=dict)

    def as_message(self) -> dict[str, Any]:
        return {"type": self.type, "projectId": self.project_id, "data": self.payload}


class ChangeBroadcaster:
    """Fan committed changes out to subscribed observers.

    Delivery is best-effort: an observer that raises is logged and skipped, and
    missed events are never replayed. Implements ``ChangeObserver`` itself so
    broadcasters can be nested.
    """

    def __init__(self) -> None:
        self._observers: list[ChangeObserver] = []

    def subscribe(self, observer: ChangeObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: ChangeObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def observers(self) -> tuple[ChangeObserver, ...]:
        return tuple(self._observers)

    async def notify(self, event: ChangeEvent) -> None:
        for observer in list(self._observers):
            try:
                await observer.notify(event)
            except Exception:
                logger.exception("Observer %r failed on %s event", observer, event.type)
