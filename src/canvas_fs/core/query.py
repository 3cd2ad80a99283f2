from datetime import datetime, timezone
from typing import Any

from canvas_fs.core.errors import ValidationError
from canvas_fs.core.ports.database import NodeStore
from canvas_fs.core.tree import NODE_TYPES
from canvas_fs.models import FileSystemNode

DEFAULT_SEARCH_LIMIT = 50
MAX_SEARCH_LIMIT = 200
RECENT_FILES = 5


async def search_nodes(
    store: NodeStore,
    query: str,
    project_id: str | None = None,
    node_type: str | None = None,
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> list[FileSystemNode]:
    """Case-insensitive substring search over node names and file content.

    Results are ordered by most recent modification and capped at ``limit``.
    """
    if not query or not query.strip():
        raise ValidationError("Search query is required")
    if node_type is not None and node_type not in NODE_TYPES:
        raise ValidationError(f"Type filter must be 'file' or 'folder', got {node_type!r}")
    limit = max(1, min(limit, MAX_SEARCH_LIMIT))
    return await store.search_nodes(query.strip(), project_id=project_id, node_type=node_type, limit=limit)


async def node_statistics(store: NodeStore, project_id: str | None = None) -> dict[str, Any]:
    """Return node counts, file size aggregates, language breakdown and recent files."""
    nodes = await store.list_nodes(project_id) if project_id else await store.list_all_nodes()
    files = [n for n in nodes if n.type == "file"]
    sizes = [n.size or 0 for n in files]

    languages: dict[str, dict[str, Any]] = {}
    for f in files:
        lang = f.metadata.language if f.metadata else "plaintext"
        entry = languages.setdefault(lang, {"language": lang, "count": 0, "total_size": 0})
        entry["count"] += 1
        entry["total_size"] += f.size or 0

    recent = sorted(files, key=lambda n: n.last_modified, reverse=True)[:RECENT_FILES]
    return {
        "overview": {
            "total_nodes": len(nodes),
            "total_files": len(files),
            "total_folders": len(nodes) - len(files),
            "total_size": sum(sizes),
            "average_file_size": round(sum(sizes) / len(sizes)) if sizes else 0,
            "largest_file_size": max(sizes, default=0),
        },
        "languages": sorted(languages.values(), key=lambda e: (-e["count"], e["language"])),
        "recent_files": [
            {
                "id": f.id,
                "project_id": f.project_id,
                "name": f.name,
                "size": f.size or 0,
                "last_modified": f.last_modified.isoformat(),
            }
            for f in recent
        ],
        "generated": datetime.now(timezone.utc).isoformat(),
    }
