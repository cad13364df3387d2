"""initial_schema

Revision ID: 3f9a1c2e7b10
Revises:
Create Date: 2026-10-18 09:12:44.381205

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2e7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

record_status = sa.Enum("PENDING", "APPROVED", "REJECTED", name="recordstatus")


def upgrade() -> None:
    """Create records, record_files, comments, keys and admin_credentials tables."""
    op.create_table(
        "records",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("caption", sa.String(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("primary_filename", sa.String(length=255), nullable=False),
        sa.Column("original_filename", sa.String(length=255), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("uploader_identity", sa.String(length=64), nullable=False),
        sa.Column("upload_timestamp", sa.DateTime(), nullable=False),
        sa.Column("status", record_status, nullable=False),
        sa.Column("editable", sa.Boolean(), nullable=False),
        sa.Column("image_count", sa.Integer(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_records_uploader_identity", "records", ["uploader_identity"])
    op.create_index("ix_records_upload_timestamp", "records", ["upload_timestamp"])
    op.create_index("ix_records_status", "records", ["status"])

    op.create_table(
        "record_files",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("record_id", sa.String(length=32), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("original_filename", sa.String(length=255), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("is_main", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["record_id"], ["records.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("filename"),
    )
    op.create_index("ix_record_files_record_id", "record_files", ["record_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("record_id", sa.String(length=32), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("commenter_identity", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["record_id"], ["records.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_record_id", "comments", ["record_id"])
    op.create_index("ix_comments_created_at", "comments", ["created_at"])

    op.create_table(
        "keys",
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("identity", sa.String(length=64), nullable=False),
        sa.Column("network_address", sa.String(length=255), nullable=False),
        sa.Column("client_agent", sa.String(length=1024), nullable=False),
        sa.Column("issued_date", sa.Date(), nullable=False),
        sa.Column("consumed", sa.Boolean(), nullable=False),
        sa.Column("issued_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index("ix_keys_identity", "keys", ["identity"])
    op.create_index("ix_keys_issued_date", "keys", ["issued_date"])

    op.create_table(
        "admin_credentials",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("password_hash", sa.String(length=128), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop all Pinwall tables."""
    op.drop_table("admin_credentials")
    op.drop_index("ix_keys_issued_date", table_name="keys")
    op.drop_index("ix_keys_identity", table_name="keys")
    op.drop_table("keys")
    op.drop_index("ix_comments_created_at", table_name="comments")
    op.drop_index("ix_comments_record_id", table_name="comments")
    op.drop_table("comments")
    op.drop_index("ix_record_files_record_id", table_name="record_files")
    op.drop_table("record_files")
    op.drop_index("ix_records_status", table_name="records")
    op.drop_index("ix_records_upload_timestamp", table_name="records")
    op.drop_index("ix_records_uploader_identity", table_name="records")
    op.drop_table("records")
    record_status.drop(op.get_bind(), checkfirst=True)
