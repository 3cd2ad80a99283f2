"""ASGI middleware that adds cursor pagination links to JSON:API list responses."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def _page_link(state: dict[str, Any], direction: str, cursor: str) -> str:
    params = {f"filter[{name}]": value for name, value in state.get("filters", {}).items()}
    params["page[size]"] = str(state["size"])
    params[f"page[{direction}]"] = cursor
    return f"{state['resource_path']}?{urlencode(params, safe='[]=')}"


class CursorPaginationMiddleware(BaseHTTPMiddleware):
    """Rewrites ``links.next`` / ``links.prev`` and drops offset-based meta."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        state: dict[str, Any] | None = getattr(request.state, "cursor_pagination", None)
        if state is None:
            return response

        # BaseHTTPMiddleware hands back a streaming response
        body_bytes = b""
        body_iterator = getattr(response, "body_iterator", None)
        if body_iterator is not None:
            async for chunk in body_iterator:
                body_bytes += chunk.encode() if isinstance(chunk, str) else chunk
        elif hasattr(response, "body"):
            body_bytes = bytes(response.body)

        try:
            body = json.loads(body_bytes)
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        if not isinstance(body, dict) or "data" not in body:
            return Response(content=body_bytes, status_code=response.status_code, headers=dict(response.headers))

        links: dict[str, str | None] = body.get("links") or {}
        links["next"] = (
            _page_link(state, "after", state["last_cursor"])
            if state["has_next"] and "last_cursor" in state
            else None
        )
        links["prev"] = (
            _page_link(state, "before", state["first_cursor"])
            if state["has_prev"] and "first_cursor" in state
            else None
        )
        body["links"] = links

        meta: dict[str, Any] = body.get("meta") or {}
        meta.pop("count", None)
        meta.pop("totalPages", None)
        body["meta"] = meta

        new_body = json.dumps(body).encode()
        headers = dict(response.headers)
        headers["content-length"] = str(len(new_body))
        return Response(
            content=new_body, status_code=response.status_code, headers=headers, media_type="application/vnd.api+json"
        )
