import contextlib
import logging
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine

from canvas_fs.core.errors import Conflict, DuplicateNode, StorageUnavailable, ValidationError
from canvas_fs.db.helpers import (
    MUTABLE_NODE_FIELDS,
    NODE_COLUMNS,
    PROJECT_COLUMNS,
    escape_like,
    node_to_params,
    project_to_params,
    row_to_node,
    row_to_project,
)
from canvas_fs.models import FileSystemNode, NodeMetadata, Project, utcnow

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION = "23505"

_NODE_SELECT = f"SELECT {', '.join(NODE_COLUMNS)} FROM public.nodes"
_PROJECT_SELECT = f"SELECT {', '.join(PROJECT_COLUMNS)} FROM public.projects"

_INSERT_NODE = text(
    """
    INSERT INTO public.nodes
        (project_id, id, type, name, content, parent_id, x, y, expanded, size, last_modified, created_at, metadata)
    VALUES
        (:project_id, :id, :type, :name, :content, :parent_id, :x, :y, :expanded, :size, :last_modified,
         :created_at, CAST(:metadata AS JSONB))
    """
)

_UPSERT_NODE = text(
    """
    INSERT INTO public.nodes
        (project_id, id, type, name, content, parent_id, x, y, expanded, size, last_modified, created_at, metadata)
    VALUES
        (:project_id, :id, :type, :name, :content, :parent_id, :x, :y, :expanded, :size, :last_modified,
         :created_at, CAST(:metadata AS JSONB))
    ON CONFLICT (project_id, id) DO UPDATE SET
        type = EXCLUDED.type,
        name = EXCLUDED.name,
        content = EXCLUDED.content,
        parent_id = EXCLUDED.parent_id,
        x = EXCLUDED.x,
        y = EXCLUDED.y,
        expanded = EXCLUDED.expanded,
        size = EXCLUDED.size,
        last_modified = EXCLUDED.last_modified,
        metadata = EXCLUDED.metadata
    """
)

_INSERT_PROJECT = text(
    """
    INSERT INTO public.projects (id, name, description, owner, is_active, created_at, updated_at, settings)
    VALUES (:id, :name, :description, :owner, :is_active, :created_at, :updated_at, CAST(:settings AS JSONB))
    """
)

_LOCK_PROJECT = text("SELECT id FROM public.projects WHERE id = :project_id FOR UPDATE")

_DELETE_SUBTREE = text(
    """
    WITH RECURSIVE subtree AS (
        SELECT id, 0 AS depth FROM public.nodes WHERE project_id = :project_id AND id = :id
        UNION ALL
        SELECT n.id, s.depth + 1 FROM public.nodes n JOIN subtree s ON n.parent_id = s.id
        WHERE n.project_id = :project_id
    )
    DELETE FROM public.nodes n USING subtree s
    WHERE n.project_id = :project_id AND n.id = s.id
    RETURNING n.id, n.seq, s.depth
    """
)

_SIBLING_NAME_INDEX = "uq_nodes_sibling_name"


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _constraint_name(exc: DBAPIError) -> str | None:
    # asyncpg keeps the server error as the cause of SQLAlchemy's adapted exception
    driver_error = getattr(exc.orig, "__cause__", None)
    return getattr(driver_error, "constraint_name", None) or getattr(exc.orig, "constraint_name", None)


@contextlib.asynccontextmanager
async def _storage_errors(operation: str) -> AsyncIterator[None]:
    """Translate driver failures into the canvas-fs error taxonomy."""
    try:
        yield
    except IntegrityError as exc:
        if _sqlstate(exc) == _UNIQUE_VIOLATION:
            if _constraint_name(exc) == _SIBLING_NAME_INDEX:
                raise Conflict(f"{operation}: a node with that name already exists in the parent folder") from exc
            raise DuplicateNode(f"{operation}: {exc.orig}") from exc
        raise ValidationError(f"{operation}: integrity violation ({exc.orig})") from exc
    except (DBAPIError, PoolTimeoutError, OSError) as exc:
        logger.error("storage failure during %s: %s", operation, exc)
        raise StorageUnavailable(f"{operation} failed: {exc}") from exc


class PostgresNodeStore:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def ensure_ready(self) -> None:
        """Fail fast with ``StorageUnavailable`` when the schema has not been migrated."""
        async with _storage_errors("ensure_ready"), self._engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM public.nodes LIMIT 0"))
            await conn.execute(text("SELECT 1 FROM public.projects LIMIT 0"))

    async def _fetch_nodes(self, operation: str, sql: Any, params: dict[str, Any]) -> list[FileSystemNode]:
        async with _storage_errors(operation), self._engine.connect() as conn:
            result = await conn.execute(sql, params)
            return [row_to_node(row) for row in result.mappings().all()]

    async def list_nodes(self, project_id: str) -> list[FileSystemNode]:
        return await self._fetch_nodes(
            "list_nodes",
            text(f"{_NODE_SELECT} WHERE project_id = :project_id ORDER BY seq"),
            {"project_id": project_id},
        )

    async def list_all_nodes(self) -> list[FileSystemNode]:
        return await self._fetch_nodes(
            "list_all_nodes",
            text(
                f"{_NODE_SELECT} WHERE project_id IN (SELECT id FROM public.projects WHERE is_active) ORDER BY seq"
            ),
            {},
        )

    async def list_nodes_cursor(
        self,
        limit: int = 50,
        project_id: str | None = None,
        node_type: str | None = None,
        after: tuple[str, str] | None = None,
        before: tuple[str, str] | None = None,
    ) -> list[FileSystemNode]:
        """Return nodes with keyset pagination ordered by ``(project_id, id)``."""
        where: list[str] = []
        params: dict[str, Any] = {"lim": limit}
        if project_id is not None:
            where.append("project_id = :project_id")
            params["project_id"] = project_id
        if node_type is not None:
            where.append("type = :node_type")
            params["node_type"] = node_type

        if after is not None:
            where.append("(project_id, id) > (:cursor_project, :cursor_id)")
            params["cursor_project"], params["cursor_id"] = after
        elif before is not None:
            where.append("(project_id, id) < (:cursor_project, :cursor_id)")
            params["cursor_project"], params["cursor_id"] = before

        where_clause = f" WHERE {' AND '.join(where)}" if where else ""
        if before is not None:
            sql = (
                f"SELECT * FROM ({_NODE_SELECT}{where_clause} ORDER BY project_id DESC, id DESC LIMIT :lim) sub "
                "ORDER BY project_id, id"
            )
        else:
            sql = f"{_NODE_SELECT}{where_clause} ORDER BY project_id, id LIMIT :lim"
        return await self._fetch_nodes("list_nodes_cursor", text(sql), params)

    async def get_node(self, project_id: str, node_id: str) -> FileSystemNode | None:
        rows = await self._fetch_nodes(
            "get_node",
            text(f"{_NODE_SELECT} WHERE project_id = :project_id AND id = :id"),
            {"project_id": project_id, "id": node_id},
        )
        return rows[0] if rows else None

    async def insert_node(self, node: FileSystemNode) -> None:
        async with _storage_errors("insert_node"), self._engine.begin() as conn:
            await conn.execute(_INSERT_NODE, node_to_params(node))

    async def upsert_node(self, node: FileSystemNode) -> None:
        async with _storage_errors("upsert_node"), self._engine.begin() as conn:
            await conn.execute(_UPSERT_NODE, node_to_params(node))

    async def update_node(self, project_id: str, node_id: str, changes: dict[str, Any]) -> FileSystemNode | None:
        unknown = set(changes) - MUTABLE_NODE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update node fields: {sorted(unknown)}")
        if not changes:
            return await self.get_node(project_id, node_id)

        assignments: list[str] = []
        params: dict[str, Any] = {"project_id": project_id, "id": node_id}
        for field, value in changes.items():
            if field == "metadata":
                assignments.append("metadata = CAST(:metadata AS JSONB)")
                params["metadata"] = value.model_dump_json() if isinstance(value, NodeMetadata) else value
            else:
                assignments.append(f"{field} = :{field}")
                params[field] = value

        sql = text(
            f"UPDATE public.nodes SET {', '.join(assignments)} "
            f"WHERE project_id = :project_id AND id = :id RETURNING {', '.join(NODE_COLUMNS)}"
        )
        async with _storage_errors("update_node"), self._engine.begin() as conn:
            result = await conn.execute(sql, params)
            row = result.mappings().first()
            return row_to_node(row) if row is not None else None

    async def delete_node(self, project_id: str, node_id: str) -> bool:
        return bool(await self.delete_subtree(project_id, node_id))

    async def delete_subtree(self, project_id: str, node_id: str) -> list[str]:
        """Delete ``node_id`` and its descendants, returning every removed id with ``node_id`` first.

        The project row is locked first: node inserts take a key-share lock on it,
        so no child can commit between the subtree walk and the delete.
        """
        params = {"project_id": project_id, "id": node_id}
        async with _storage_errors("delete_subtree"), self._engine.begin() as conn:
            await conn.execute(_LOCK_PROJECT, params)
            result = await conn.execute(_DELETE_SUBTREE, params)
            rows = sorted(result.fetchall(), key=lambda row: (row.depth, row.seq))
            return [str(row.id) for row in rows]

    async def replace_all(self, project_id: str, nodes: Sequence[FileSystemNode]) -> None:
        t0 = time.perf_counter()
        for node in nodes:
            if node.project_id != project_id:
                raise ValidationError(f"Node {node.id} belongs to project {node.project_id}, not {project_id}")
        async with _storage_errors("replace_all"), self._engine.begin() as conn:
            await conn.execute(
                text("DELETE FROM public.nodes WHERE project_id = :project_id"),
                {"project_id": project_id},
            )
            if nodes:
                await conn.execute(_INSERT_NODE, [node_to_params(n) for n in nodes])
        logger.debug("replace_all %s: %d nodes in %.3fs", project_id, len(nodes), time.perf_counter() - t0)

    async def search_nodes(
        self,
        query: str,
        project_id: str | None = None,
        node_type: str | None = None,
        limit: int = 50,
    ) -> list[FileSystemNode]:
        where = ["(name ILIKE :pattern ESCAPE '\\' OR content ILIKE :pattern ESCAPE '\\')"]
        params: dict[str, Any] = {"pattern": f"%{escape_like(query)}%", "lim": limit}
        if project_id is not None:
            where.append("project_id = :project_id")
            params["project_id"] = project_id
        if node_type is not None:
            where.append("type = :node_type")
            params["node_type"] = node_type
        sql = text(f"{_NODE_SELECT} WHERE {' AND '.join(where)} ORDER BY last_modified DESC LIMIT :lim")
        return await self._fetch_nodes("search_nodes", sql, params)

    async def insert_project(self, project: Project, seed_nodes: Sequence[FileSystemNode] = ()) -> None:
        async with _storage_errors("insert_project"), self._engine.begin() as conn:
            await conn.execute(_INSERT_PROJECT, project_to_params(project))
            if seed_nodes:
                await conn.execute(_INSERT_NODE, [node_to_params(n) for n in seed_nodes])

    async def get_project(self, project_id: str) -> Project | None:
        async with _storage_errors("get_project"), self._engine.connect() as conn:
            result = await conn.execute(text(f"{_PROJECT_SELECT} WHERE id = :id"), {"id": project_id})
            row = result.mappings().first()
            return row_to_project(row) if row is not None else None

    async def list_projects(self, include_inactive: bool = False) -> list[Project]:
        where = "" if include_inactive else " WHERE is_active"
        async with _storage_errors("list_projects"), self._engine.connect() as conn:
            result = await conn.execute(text(f"{_PROJECT_SELECT}{where} ORDER BY created_at DESC"))
            return [row_to_project(row) for row in result.mappings().all()]

    async def update_project(self, project: Project) -> None:
        async with _storage_errors("update_project"), self._engine.begin() as conn:
            await conn.execute(
                text(
                    "UPDATE public.projects SET name = :name, description = :description, owner = :owner, "
                    "is_active = :is_active, updated_at = :updated_at, settings = CAST(:settings AS JSONB) "
                    "WHERE id = :id"
                ),
                project_to_params(project),
            )

    async def deactivate_project(self, project_id: str) -> int:
        async with _storage_errors("deactivate_project"), self._engine.begin() as conn:
            await conn.execute(
                text("UPDATE public.projects SET is_active = false, updated_at = :now WHERE id = :id"),
                {"id": project_id, "now": utcnow()},
            )
            result = await conn.execute(
                text("DELETE FROM public.nodes WHERE project_id = :project_id RETURNING id"),
                {"project_id": project_id},
            )
            return len(result.fetchall())

    async def ping(self) -> bool:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    async def dispose(self) -> None:
        await self._engine.dispose()
