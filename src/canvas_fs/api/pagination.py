"""Keyset cursors for the JSON:API node collection.

A cursor is an opaque urlsafe-base64 JSON object holding the
``(project_id, node_id)`` key of a boundary row.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any

from starlette.requests import Request

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000


class InvalidCursorError(ValueError):
    """Raised when a cursor string cannot be decoded."""


def encode_cursor(project_id: str, node_id: str) -> str:
    payload = json.dumps({"p": project_id, "n": node_id}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode()).decode()


def decode_cursor(cursor: str) -> tuple[str, str]:
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return str(payload["p"]), str(payload["n"])
    except (ValueError, KeyError, TypeError, UnicodeDecodeError) as exc:
        raise InvalidCursorError(f"Malformed cursor: {cursor!r}") from exc


@dataclass(frozen=True)
class PageRequest:
    after: str | None
    before: str | None
    size: int

    @property
    def backward(self) -> bool:
        return self.before is not None and self.after is None


def parse_page_params(request: Request) -> PageRequest:
    """Read ``page[after]``, ``page[before]`` and ``page[size]``; ``after`` wins if both are given."""
    size_raw = request.query_params.get("page[size]", str(DEFAULT_PAGE_SIZE))
    try:
        size = max(1, min(int(size_raw), MAX_PAGE_SIZE))
    except ValueError:
        size = DEFAULT_PAGE_SIZE
    return PageRequest(
        after=request.query_params.get("page[after]"),
        before=request.query_params.get("page[before]"),
        size=size,
    )


def pagination_state(
    page: PageRequest,
    fetched: int,
    first: tuple[str, str] | None,
    last: tuple[str, str] | None,
    resource_path: str,
    filters: dict[str, str],
) -> dict[str, Any]:
    """Build the ``request.state.cursor_pagination`` dict read by the middleware.

    ``fetched`` is the row count of a ``size + 1`` lookahead query.
    """
    returned = min(fetched, page.size)
    if page.backward:
        has_next = returned > 0
        has_prev = fetched > page.size
    else:
        has_next = fetched > page.size
        has_prev = page.after is not None and returned > 0

    state: dict[str, Any] = {
        "has_next": has_next,
        "has_prev": has_prev,
        "size": page.size,
        "resource_path": resource_path,
        "filters": filters,
    }
    if first is not None and last is not None:
        state["first_cursor"] = encode_cursor(*first)
        state["last_cursor"] = encode_cursor(*last)
    return state
