"""Initial schema: gated content and access logs.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-05

Creates the contents and content_access_logs tables with complete column
definitions matching the SQLAlchemy models.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial schema tables."""

    # ==========================================================================
    # CREATE ENUMS
    # ==========================================================================

    content_type_enum = postgresql.ENUM("pdf", "video", name="content_type", create_type=False)
    content_type_enum.create(op.get_bind(), checkfirst=True)

    # ==========================================================================
    # CONTENTS
    # ==========================================================================

    op.create_table(
        "contents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("creator_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content_type", content_type_enum, nullable=False),
        sa.Column("nft_collection_address", sa.String(255), nullable=False),
        sa.Column("storage_path", sa.String(512), nullable=False),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_contents_creator_id", "contents", ["creator_id"])

    # ==========================================================================
    # CONTENT ACCESS LOGS
    # ==========================================================================

    op.create_table(
        "content_access_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("content_id", sa.String(36), sa.ForeignKey("contents.id"), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("wallet_address", sa.String(130), nullable=False),
        sa.Column("accessed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_content_access_logs_content_id", "content_access_logs", ["content_id"])
    op.create_index("ix_content_access_logs_user_id", "content_access_logs", ["user_id"])
    op.create_index(
        "ix_content_access_logs_wallet_address", "content_access_logs", ["wallet_address"]
    )
    op.create_index("ix_content_access_logs_accessed_at", "content_access_logs", ["accessed_at"])
    op.create_index(
        "ix_content_access_logs_content_accessed",
        "content_access_logs",
        ["content_id", "accessed_at"],
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("content_access_logs")
    op.drop_table("contents")
    op.execute("DROP TYPE IF EXISTS content_type")
