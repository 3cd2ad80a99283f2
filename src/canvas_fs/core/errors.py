"""Error taxonomy shared by the store adapters, the services and the API layer."""


class CanvasFsError(Exception):
    """Base class for all errors raised by canvas-fs operations."""


class ValidationError(CanvasFsError):
    """Malformed input, such as an unknown node type or an empty name."""


class NotFound(CanvasFsError):
    """A referenced project or node does not exist."""


class InvalidKind(CanvasFsError):
    """The operation does not apply to this node type (e.g. expanding a file)."""


class Forbidden(CanvasFsError):
    """The operation is never allowed, e.g. deleting a project root."""


class Conflict(CanvasFsError):
    """A sibling with the same name already exists under the parent."""


class StorageUnavailable(CanvasFsError):
    """The persistence layer is unreachable or failed mid-operation."""


class DuplicateNode(CanvasFsError):
    """A node with the same ``(project_id, id)`` key already exists."""
