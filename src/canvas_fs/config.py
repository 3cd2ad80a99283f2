import logging
import os
from dataclasses import dataclass

from canvas_fs.db.engine import get_database_url

STORAGE_BACKENDS = ("postgres", "memory")


@dataclass(frozen=True)
class Settings:
    database_url: str
    storage: str = "postgres"
    log_level: str = "INFO"
    cors_origin: str = "http://localhost:5173"

    @classmethod
    def from_env(cls) -> "Settings":
        storage = os.getenv("CANVAS_FS_STORAGE", "postgres").strip().lower()
        if storage not in STORAGE_BACKENDS:
            raise ValueError(f"Unsupported CANVAS_FS_STORAGE '{storage}'. Supported: {list(STORAGE_BACKENDS)}")
        return cls(
            database_url=get_database_url(),
            storage=storage,
            log_level=os.getenv("CANVAS_FS_LOG_LEVEL", "INFO").upper(),
            cors_origin=os.getenv("CANVAS_FS_CORS_ORIGIN", "http://localhost:5173"),
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
