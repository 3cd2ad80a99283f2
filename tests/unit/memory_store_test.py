"""Tests for InMemoryNodeStore guarantees shared with the Postgres adapter."""

import asyncio

import pytest

from canvas_fs.core.errors import Conflict, DuplicateNode, StorageUnavailable, ValidationError
from canvas_fs.db import InMemoryNodeStore
from canvas_fs.models import FileSystemNode, Project


def _node(node_id: str, parent_id: str | None = None, project_id: str = "p1", kind: str = "folder") -> FileSystemNode:
    return FileSystemNode(id=node_id, project_id=project_id, type=kind, name=node_id, parent_id=parent_id)  # type: ignore[arg-type]


def test_insert_rejects_duplicate_key(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("a")))
    with pytest.raises(DuplicateNode):
        asyncio.run(store.insert_node(_node("a")))


def test_same_id_in_different_projects(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("a", project_id="p1")))
    asyncio.run(store.insert_node(_node("a", project_id="p2")))
    assert len(store.nodes) == 2


def test_insert_rejects_dangling_parent(store: InMemoryNodeStore) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(store.insert_node(_node("child", parent_id="ghost")))
    assert store.nodes == {}


def test_parent_must_be_in_same_project(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("root", project_id="p2")))
    with pytest.raises(ValidationError):
        asyncio.run(store.insert_node(_node("child", parent_id="root", project_id="p1")))


def test_list_nodes_keeps_creation_order(store: InMemoryNodeStore) -> None:
    for node_id in ["z", "a", "m"]:
        asyncio.run(store.insert_node(_node(node_id)))
    assert [n.id for n in asyncio.run(store.list_nodes("p1"))] == ["z", "a", "m"]


def test_returned_nodes_are_copies(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("a")))
    fetched = asyncio.run(store.get_node("p1", "a"))
    assert fetched is not None
    fetched.name = "changed"
    again = asyncio.run(store.get_node("p1", "a"))
    assert again is not None
    assert again.name == "a"


def test_update_node_changes_only_given_fields(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("a")))
    updated = asyncio.run(store.update_node("p1", "a", {"x": 3.0}))
    assert updated is not None
    assert updated.x == 3.0
    assert updated.name == "a"
    assert asyncio.run(store.update_node("p1", "missing", {"x": 1.0})) is None


def test_update_node_rejects_key_fields(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("a")))
    with pytest.raises(ValueError):
        asyncio.run(store.update_node("p1", "a", {"id": "b"}))


def test_delete_node_removes_orphaned_children(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("root")))
    asyncio.run(store.insert_node(_node("a", parent_id="root")))
    asyncio.run(store.insert_node(_node("b", parent_id="a", kind="file")))

    assert asyncio.run(store.delete_node("p1", "a")) is True
    assert [n.id for n in asyncio.run(store.list_nodes("p1"))] == ["root"]
    assert asyncio.run(store.delete_node("p1", "a")) is False


def test_delete_subtree_reports_every_removed_id(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("root")))
    asyncio.run(store.insert_node(_node("a", parent_id="root")))
    asyncio.run(store.insert_node(_node("b", parent_id="a")))
    asyncio.run(store.insert_node(_node("c", parent_id="b", kind="file")))
    asyncio.run(store.insert_node(_node("d", parent_id="a", kind="file")))

    assert asyncio.run(store.delete_subtree("p1", "a")) == ["a", "b", "d", "c"]
    assert [n.id for n in asyncio.run(store.list_nodes("p1"))] == ["root"]
    assert asyncio.run(store.delete_subtree("p1", "ghost")) == []


def test_insert_rejects_duplicate_sibling_name(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("root")))
    asyncio.run(store.insert_node(_node("a", parent_id="root")))
    clash = FileSystemNode(id="other", project_id="p1", type="file", name="a", parent_id="root")
    with pytest.raises(Conflict):
        asyncio.run(store.insert_node(clash))
    assert ("p1", "other") not in store.nodes


def test_replace_all_only_touches_one_project(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("keep", project_id="p2")))
    asyncio.run(store.insert_node(_node("old")))

    asyncio.run(store.replace_all("p1", [_node("new"), _node("leaf", parent_id="new", kind="file")]))

    assert [n.id for n in asyncio.run(store.list_nodes("p1"))] == ["new", "leaf"]
    assert [n.id for n in asyncio.run(store.list_nodes("p2"))] == ["keep"]


def test_replace_all_rejects_foreign_nodes(store: InMemoryNodeStore) -> None:
    asyncio.run(store.insert_node(_node("old")))
    with pytest.raises(ValidationError):
        asyncio.run(store.replace_all("p1", [_node("x", project_id="p2")]))
    assert [n.id for n in asyncio.run(store.list_nodes("p1"))] == ["old"]


def test_cursor_pages_by_project_then_id(store: InMemoryNodeStore) -> None:
    for project_id, node_id in [("p2", "a"), ("p1", "c"), ("p1", "a"), ("p1", "b")]:
        asyncio.run(store.insert_node(_node(node_id, project_id=project_id)))

    first = asyncio.run(store.list_nodes_cursor(limit=2))
    assert [(n.project_id, n.id) for n in first] == [("p1", "a"), ("p1", "b")]

    after = asyncio.run(store.list_nodes_cursor(limit=2, after=("p1", "b")))
    assert [(n.project_id, n.id) for n in after] == [("p1", "c"), ("p2", "a")]

    before = asyncio.run(store.list_nodes_cursor(limit=2, before=("p2", "a")))
    assert [(n.project_id, n.id) for n in before] == [("p1", "b"), ("p1", "c")]

    filtered = asyncio.run(store.list_nodes_cursor(limit=10, project_id="p2"))
    assert [n.id for n in filtered] == ["a"]


def test_insert_project_is_atomic_with_seed(store: InMemoryNodeStore) -> None:
    project = Project(id="p1", name="Demo")
    asyncio.run(store.insert_project(project, [_node("root")]))
    with pytest.raises(Conflict):
        asyncio.run(store.insert_project(project, [_node("other")]))
    assert [n.id for n in asyncio.run(store.list_nodes("p1"))] == ["root"]


def test_unavailable_store_raises(store: InMemoryNodeStore) -> None:
    store.available = False
    assert asyncio.run(store.ping()) is False
    with pytest.raises(StorageUnavailable):
        asyncio.run(store.list_nodes("p1"))
    with pytest.raises(StorageUnavailable):
        asyncio.run(store.insert_node(_node("a")))
