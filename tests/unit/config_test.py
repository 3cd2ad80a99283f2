import pytest

from canvas_fs.config import Settings
from canvas_fs.db import InMemoryNodeStore, PostgresNodeStore, create_store


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("DATABASE_URL", "CANVAS_FS_STORAGE", "CANVAS_FS_LOG_LEVEL", "CANVAS_FS_CORS_ORIGIN"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings.from_env()
    assert settings.storage == "postgres"
    assert settings.log_level == "INFO"
    assert settings.database_url.startswith("postgresql+asyncpg://")


def test_memory_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CANVAS_FS_STORAGE", "Memory")
    settings = Settings.from_env()
    assert isinstance(create_store(settings), InMemoryNodeStore)


def test_postgres_backend_builds_lazily() -> None:
    store = create_store(Settings(database_url="postgresql+asyncpg://u:p@localhost:1/db"))
    assert isinstance(store, PostgresNodeStore)


def test_unknown_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CANVAS_FS_STORAGE", "redis")
    with pytest.raises(ValueError, match="CANVAS_FS_STORAGE"):
        Settings.from_env()
