"""initial schema

Revision ID: 20251018000000
Revises:
Create Date: 2025-10-18 00:00:00.000000

Creates the identity mirror, profile, work, tag, work-tag link and media
tables. No foreign-key cascades: dependents are never deleted implicitly.
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

from folio.settings import WORKS_TABLE

revision = "20251018000000"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_default():
    if op.get_bind().dialect.name == "postgresql":
        return sa.text("gen_random_uuid()")
    return None


def upgrade() -> None:
    # ========================================================================
    # IDENTITY & PROFILE
    # ========================================================================

    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("avatar_url", sa.String(1000), nullable=True),
        sa.Column("role", sa.String(50), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "Profile",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("userID", sa.String(64), nullable=True, unique=True),
        sa.Column("displayName", sa.String(200), nullable=True),
        sa.Column("avatarUrl", sa.String(1000), nullable=True),
        sa.Column("contact", sa.String(100), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("updatedAt", sa.DateTime(), nullable=True),
    )

    # ========================================================================
    # WORKS
    # ========================================================================

    op.create_table(
        WORKS_TABLE,
        sa.Column("workId", sa.String(36), primary_key=True, server_default=_uuid_default()),
        sa.Column("authorId", sa.String(64), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updatedAt", sa.DateTime(), nullable=True),
        sa.Column("publishedAt", sa.DateTime(), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(f"ix_{WORKS_TABLE}_authorId", WORKS_TABLE, ["authorId"])
    op.create_index(f"ix_{WORKS_TABLE}_status", WORKS_TABLE, ["status"])
    op.create_index(f"ix_{WORKS_TABLE}_created_at", WORKS_TABLE, ["created_at"])
    op.create_index(f"ix_{WORKS_TABLE}_publishedAt", WORKS_TABLE, ["publishedAt"])

    op.create_table(
        "Tag",
        sa.Column("tagId", sa.String(36), primary_key=True, server_default=_uuid_default()),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
    )

    op.create_table(
        "worktag",
        sa.Column("workId", sa.String(36), primary_key=True),
        sa.Column("tagId", sa.String(36), primary_key=True),
    )

    op.create_table(
        "Media",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("workId", sa.String(36), sa.ForeignKey(f"{WORKS_TABLE}.workId"), nullable=False),
        sa.Column("fileurl", sa.String(1000), nullable=False),
        sa.Column("filetype", sa.String(100), nullable=True),
        sa.Column("sizemb", sa.BigInteger(), nullable=True),
        sa.Column("alttext", sa.Text(), nullable=True),
        sa.Column("createdAt", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_Media_workId", "Media", ["workId"])
    op.create_index("ix_Media_createdAt", "Media", ["createdAt"])


def downgrade() -> None:
    op.drop_table("Media")
    op.drop_table("worktag")
    op.drop_table("Tag")
    op.drop_table(WORKS_TABLE)
    op.drop_table("Profile")
    op.drop_table("users")
