"""create acquisition job and title metadata tables

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_TITLE_PREDICATE = "status IN ('queued', 'starting', 'downloading', 'preparing', 'ready')"


def upgrade() -> None:
    op.create_table(
        "acquisition_jobs",
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("title_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=True),
        sa.Column("release_title", sa.String(), nullable=True),
        sa.Column("release_id", sa.String(), nullable=True),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.Column("storage_key", sa.String(), nullable=True),
        sa.Column("callback_sequence", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ready_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_watched_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('queued', 'starting', 'downloading', 'preparing', 'ready', 'error', 'deleted')",
            name="ck_acquisition_jobs_status",
        ),
        sa.PrimaryKeyConstraint("job_id"),
    )
    op.create_index(op.f("ix_acquisition_jobs_title_id"), "acquisition_jobs", ["title_id"], unique=False)
    op.create_index(op.f("ix_acquisition_jobs_status"), "acquisition_jobs", ["status"], unique=False)
    op.create_index(op.f("ix_acquisition_jobs_updated_at"), "acquisition_jobs", ["updated_at"], unique=False)
    op.create_index(
        "uq_acquisition_jobs_active_title",
        "acquisition_jobs",
        ["title_id"],
        unique=True,
        sqlite_where=sa.text(ACTIVE_TITLE_PREDICATE),
        postgresql_where=sa.text(ACTIVE_TITLE_PREDICATE),
    )

    op.create_table(
        "title_metadata",
        sa.Column("title_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("poster_path", sa.String(), nullable=True),
        sa.Column("backdrop_path", sa.String(), nullable=True),
        sa.Column("overview", sa.Text(), nullable=True),
        sa.Column("imdb_id", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("title_id"),
    )


def downgrade() -> None:
    op.drop_table("title_metadata")
    op.drop_index("uq_acquisition_jobs_active_title", table_name="acquisition_jobs")
    op.drop_index(op.f("ix_acquisition_jobs_updated_at"), table_name="acquisition_jobs")
    op.drop_index(op.f("ix_acquisition_jobs_status"), table_name="acquisition_jobs")
    op.drop_index(op.f("ix_acquisition_jobs_title_id"), table_name="acquisition_jobs")
    op.drop_table("acquisition_jobs")
