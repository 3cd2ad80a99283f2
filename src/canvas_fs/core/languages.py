from canvas_fs.models import NodeMetadata

_EXTENSION_LANGUAGE_MAP = {
    "c": "c",
    "cpp": "cpp",
    "css": "css",
    "go": "go",
    "html": "html",
    "java": "java",
    "js": "javascript",
    "json": "json",
    "jsx": "javascript",
    "md": "markdown",
    "php": "php",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "sh": "shell",
    "sql": "sql",
    "ts": "typescript",
    "tsx": "typescript",
    "xml": "xml",
    "yaml": "yaml",
    "yml": "yaml",
}

DEFAULT_LANGUAGE = "plaintext"


def detect_language(name: str) -> str:
    """Map a file name to a language tag by its last dot-separated segment."""
    extension = name.rsplit(".", 1)[-1].lower()
    return _EXTENSION_LANGUAGE_MAP.get(extension, DEFAULT_LANGUAGE)


def byte_size(content: str) -> int:
    return len(content.encode("utf-8"))


def count_lines(content: str) -> int:
    return len(content.split("\n"))


def file_metadata(name: str, content: str, previous: NodeMetadata | None = None) -> NodeMetadata:
    """Derive metadata for a file, keeping the decorative fields of ``previous``."""
    base = previous or NodeMetadata()
    return base.model_copy(update={"language": detect_language(name), "line_count": count_lines(content)})
