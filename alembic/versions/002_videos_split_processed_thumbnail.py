"""videos: split original/processed/thumbnail, add schema_version

Existing flat rows become schema_version 1: their single file is the processed asset
and they have no thumbnail.

Revision ID: 002
Revises: 001
Create Date: 2025-06-16

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("videos") as batch:
        batch.add_column(sa.Column("original_filename", sa.String(255), nullable=True))
        batch.add_column(sa.Column("processed_filename", sa.String(255), nullable=True))
        batch.add_column(sa.Column("thumbnail_filename", sa.String(255), nullable=True))
        batch.add_column(sa.Column("original_path", sa.String(512), nullable=True))
        batch.add_column(sa.Column("processed_path", sa.String(512), nullable=True))
        batch.add_column(sa.Column("thumbnail_path", sa.String(512), nullable=True))
        batch.add_column(sa.Column("schema_version", sa.Integer(), nullable=False, server_default="1"))

    op.execute(
        "UPDATE videos SET processed_filename = filename, original_filename = filename, "
        "processed_path = path, schema_version = 1"
    )

    with op.batch_alter_table("videos") as batch:
        batch.alter_column("processed_filename", existing_type=sa.String(255), nullable=False)
        batch.create_unique_constraint("uq_videos_processed_filename", ["processed_filename"])
        batch.create_index("ix_videos_upload_date", ["upload_date"])
        batch.drop_column("filename")
        batch.drop_column("path")


def downgrade() -> None:
    with op.batch_alter_table("videos") as batch:
        batch.add_column(sa.Column("filename", sa.String(255), nullable=True))
        batch.add_column(sa.Column("path", sa.String(512), nullable=True))

    op.execute("UPDATE videos SET filename = processed_filename, path = processed_path")

    with op.batch_alter_table("videos") as batch:
        batch.drop_index("ix_videos_upload_date")
        batch.drop_constraint("uq_videos_processed_filename", type_="unique")
        batch.drop_column("schema_version")
        batch.drop_column("thumbnail_path")
        batch.drop_column("processed_path")
        batch.drop_column("original_path")
        batch.drop_column("thumbnail_filename")
        batch.drop_column("processed_filename")
        batch.drop_column("original_filename")
