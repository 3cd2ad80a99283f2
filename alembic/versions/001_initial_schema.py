"""Initial schema: projects and the flat nodes table.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "projects",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("owner", sa.Text, nullable=False, server_default="anonymous"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("settings", postgresql.JSONB, nullable=False, server_default="{}"),
        schema="public",
    )
    op.create_table(
        "nodes",
        sa.Column("seq", sa.BigInteger, sa.Identity(always=True), nullable=False),
        sa.Column("project_id", sa.Text, sa.ForeignKey("public.projects.id"), nullable=False),
        sa.Column("id", sa.Text, nullable=False),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("parent_id", sa.Text, nullable=True),
        sa.Column("x", sa.Float, nullable=False, server_default="0"),
        sa.Column("y", sa.Float, nullable=False, server_default="0"),
        sa.Column("expanded", sa.Boolean, nullable=True),
        sa.Column("size", sa.Integer, nullable=True),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.PrimaryKeyConstraint("project_id", "id"),
        sa.CheckConstraint("type IN ('file', 'folder')", name="ck_nodes_type"),
        sa.CheckConstraint(
            "(type = 'file' AND expanded IS NULL) OR (type = 'folder' AND content IS NULL)",
            name="ck_nodes_kind_fields",
        ),
        sa.ForeignKeyConstraint(
            ["project_id", "parent_id"],
            ["public.nodes.project_id", "public.nodes.id"],
            name="fk_nodes_parent",
            ondelete="CASCADE",
            deferrable=True,
            initially="DEFERRED",
        ),
        schema="public",
    )
    op.create_index("ix_nodes_seq", "nodes", ["seq"], unique=True, schema="public")
    op.create_index("ix_nodes_parent", "nodes", ["project_id", "parent_id"], schema="public")
    op.execute("CREATE UNIQUE INDEX uq_nodes_sibling_name ON public.nodes (project_id, COALESCE(parent_id, ''), name)")


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("nodes", schema="public")
    op.drop_table("projects", schema="public")
