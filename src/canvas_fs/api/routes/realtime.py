import json

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from canvas_fs.api.dependencies import get_hub
from canvas_fs.api.realtime import WebSocketHub

router = APIRouter(tags=["realtime"])


@router.websocket("/ws/projects/{project_id}")
async def project_feed(websocket: WebSocket, project_id: str, hub: WebSocketHub = Depends(get_hub)) -> None:
    """Push change events for one project; accept editing-presence messages."""
    await websocket.accept()
    client_id = hub.join(project_id, websocket)
    try:
        await websocket.send_json({"type": "subscribed", "projectId": project_id, "clientId": client_id})
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "detail": "Messages must be JSON objects"})
                continue
            if not isinstance(message, dict) or not await hub.relay_presence(project_id, websocket, message):
                await websocket.send_json({"type": "error", "detail": "Unsupported message"})
    except WebSocketDisconnect:
        pass
    finally:
        hub.leave(project_id, websocket)
