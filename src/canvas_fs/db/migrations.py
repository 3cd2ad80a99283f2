"""Alembic entry points used by the CLI and the integration tests."""

from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.ext.asyncio import AsyncEngine

from alembic import command

_REPO_ROOT = Path(__file__).resolve().parents[3]


def get_alembic_config(db_url: str) -> Config:
    alembic_cfg = Config(str(_REPO_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(_REPO_ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", db_url)
    return alembic_cfg


def run_migrations(db_url: str, revision: str = "head") -> None:
    command.upgrade(get_alembic_config(db_url), revision)


def downgrade_migrations(db_url: str, revision: str = "base") -> None:
    command.downgrade(get_alembic_config(db_url), revision)


def head_revision(db_url: str) -> str | None:
    return ScriptDirectory.from_config(get_alembic_config(db_url)).get_current_head()


async def current_revision(engine: AsyncEngine) -> str | None:
    """Revision stamped in ``alembic_version``, or ``None`` for an unmigrated database."""
    async with engine.connect() as conn:
        return await conn.run_sync(lambda sync_conn: MigrationContext.configure(sync_conn).get_current_revision())
