"""Tests for the WebSocket hub."""

from unittest.mock import AsyncMock

import pytest

from canvas_fs.api.realtime import WebSocketHub
from canvas_fs.core.events import ChangeEvent


def _socket() -> AsyncMock:
    ws = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


@pytest.mark.asyncio
async def test_events_go_only_to_the_project_room() -> None:
    hub = WebSocketHub()
    a, b, other = _socket(), _socket(), _socket()
    hub.join("p1", a)
    hub.join("p1", b)
    hub.join("p2", other)

    await hub.notify(ChangeEvent("node-created", "p1", {"parentId": "root"}))

    expected = {"type": "node-created", "projectId": "p1", "data": {"parentId": "root"}}
    a.send_json.assert_awaited_once_with(expected)
    b.send_json.assert_awaited_once_with(expected)
    other.send_json.assert_not_awaited()


@pytest.mark.asyncio
async def test_dead_sockets_are_dropped() -> None:
    hub = WebSocketHub()
    alive, dead = _socket(), _socket()
    dead.send_json.side_effect = RuntimeError("closed")
    hub.join("p1", alive)
    hub.join("p1", dead)

    await hub.notify(ChangeEvent("tree-updated", "p1"))

    assert hub.connection_count("p1") == 1
    alive.send_json.assert_awaited_once()


@pytest.mark.asyncio
async def test_presence_is_relayed_to_other_clients() -> None:
    hub = WebSocketHub()
    editor, watcher = _socket(), _socket()
    editor_id = hub.join("p1", editor)
    hub.join("p1", watcher)

    relayed = await hub.relay_presence("p1", editor, {"type": "file-edit-start", "fileId": "f1", "userName": "Sam"})

    assert relayed is True
    editor.send_json.assert_not_awaited()
    watcher.send_json.assert_awaited_once_with(
        {"type": "user-editing", "projectId": "p1", "data": {"fileId": "f1", "userId": editor_id, "userName": "Sam"}}
    )


@pytest.mark.asyncio
async def test_edit_end_and_unknown_messages() -> None:
    hub = WebSocketHub()
    editor, watcher = _socket(), _socket()
    hub.join("p1", editor)
    hub.join("p1", watcher)

    assert await hub.relay_presence("p1", editor, {"type": "file-edit-end", "fileId": "f1"}) is True
    sent = watcher.send_json.await_args.args[0]
    assert sent["type"] == "user-stopped-editing"
    assert "userName" not in sent["data"]

    assert await hub.relay_presence("p1", editor, {"type": "delete-everything"}) is False


def test_leave_cleans_up_rooms() -> None:
    hub = WebSocketHub()
    ws = _socket()
    hub.join("p1", ws)
    hub.leave("p1", ws)
    hub.leave("p1", ws)
    assert hub.connection_count() == 0
