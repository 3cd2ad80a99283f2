"""Conversion between the canonical flat node set and the nested canvas view."""

from collections.abc import Iterator, Sequence

from canvas_fs.models import FileSystemNode


def _key(node: FileSystemNode) -> tuple[str, str]:
    return (node.project_id, node.id)


def assemble_hierarchy(flat_nodes: Sequence[FileSystemNode]) -> list[FileSystemNode]:
    """Group ``flat_nodes`` by ``parent_id`` and return the root nodes.

    Each returned node is a copy: folders get a ``children`` list (possibly
    empty), files never do. Children keep the relative order of ``flat_nodes``.
    A node whose parent is not part of the set is returned as a root.
    The input sequence and its nodes are left untouched.
    """
    views: dict[tuple[str, str], FileSystemNode] = {}
    for node in flat_nodes:
        children: list[FileSystemNode] | None = [] if node.type == "folder" else None
        views[_key(node)] = node.model_copy(update={"children": children}, deep=True)

    roots: list[FileSystemNode] = []
    for node in flat_nodes:
        view = views[_key(node)]
        parent = views.get((node.project_id, node.parent_id)) if node.parent_id else None
        if parent is not None and parent.children is not None:
            parent.children.append(view)
        else:
            roots.append(view)
    return roots


def flatten(hierarchy: Sequence[FileSystemNode]) -> list[FileSystemNode]:
    """Inverse of ``assemble_hierarchy``.

    Walks ``hierarchy`` depth-first (pre-order), drops ``children`` and stamps
    every node with the id of the node it was nested under; top-level nodes get
    ``parent_id=None``. Iterative, so arbitrarily deep trees are fine.
    """
    flat: list[FileSystemNode] = []
    stack: list[tuple[FileSystemNode, str | None]] = [(node, None) for node in reversed(hierarchy)]
    while stack:
        node, parent_id = stack.pop()
        flat.append(node.model_copy(update={"parent_id": parent_id, "children": None}))
        for child in reversed(node.children or []):
            stack.append((child, node.id))
    return flat


def iter_descendant_ids(flat_nodes: Sequence[FileSystemNode], node_id: str) -> Iterator[str]:
    """Yield the ids of every transitive descendant of ``node_id``, breadth-first."""
    by_parent: dict[str, list[str]] = {}
    for node in flat_nodes:
        if node.parent_id is not None:
            by_parent.setdefault(node.parent_id, []).append(node.id)

    seen = {node_id}
    frontier = [node_id]
    while frontier:
        next_frontier: list[str] = []
        for current in frontier:
            for child_id in by_parent.get(current, []):
                if child_id in seen:
                    continue
                seen.add(child_id)
                next_frontier.append(child_id)
                yield child_id
        frontier = next_frontier
