"""WebSocket change feed: one room per project."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from canvas_fs.core.events import ChangeEvent

logger = logging.getLogger(__name__)

_PRESENCE_EVENTS = {
    "file-edit-start": "user-editing",
    "file-edit-end": "user-stopped-editing",
}


class WebSocketHub:
    """``ChangeObserver`` that pushes committed changes to connected clients.

    Sockets that fail to receive are dropped; nothing is queued for clients
    that are not connected.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, dict[Any, str]] = {}

    def join(self, project_id: str, websocket: Any) -> str:
        client_id = uuid.uuid4().hex[:12]
        self._rooms.setdefault(project_id, {})[websocket] = client_id
        logger.info("client %s joined project %s", client_id, project_id)
        return client_id

    def leave(self, project_id: str, websocket: Any) -> None:
        room = self._rooms.get(project_id)
        if room is None:
            return
        client_id = room.pop(websocket, None)
        if not room:
            del self._rooms[project_id]
        if client_id is not None:
            logger.info("client %s left project %s", client_id, project_id)

    def connection_count(self, project_id: str | None = None) -> int:
        if project_id is not None:
            return len(self._rooms.get(project_id, {}))
        return sum(len(room) for room in self._rooms.values())

    async def _send(self, project_id: str, message: dict[str, Any], exclude: Any = None) -> None:
        for websocket in list(self._rooms.get(project_id, {})):
            if websocket is exclude:
                continue
            try:
                await websocket.send_json(message)
            except Exception:
                logger.warning("Dropping unreachable client in project %s", project_id)
                self.leave(project_id, websocket)

    async def notify(self, event: ChangeEvent) -> None:
        await self._send(event.project_id, event.as_message())

    async def relay_presence(self, project_id: str, sender: Any, message: dict[str, Any]) -> bool:
        """Forward an editing-presence message from ``sender`` to the rest of its room."""
        event_type = _PRESENCE_EVENTS.get(str(message.get("type")))
        if event_type is None:
            return False
        data: dict[str, Any] = {
            "fileId": message.get("fileId"),
            "userId": self._rooms.get(project_id, {}).get(sender),
        }
        if event_type == "user-editing":
            data["userName"] = message.get("userName") or "Anonymous"
        await self._send(project_id, {"type": event_type, "projectId": project_id, "data": data}, exclude=sender)
        return True
