"""Create jobs and job_executions tables.

Revision ID: 0001_create_jobs_and_executions
Revises:
Create Date: 2026-10-19 00:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "0001_create_jobs_and_executions"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

delivery_mode_enum = sa.Enum("AT_LEAST_ONCE", name="delivery_mode")
execution_status_enum = sa.Enum(
    "PENDING", "RUNNING", "SUCCESS", "FAILED", name="execution_status"
)


def upgrade() -> None:
    op.create_table(
        "jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("schedule", sa.String(length=255), nullable=False),
        sa.Column("target_url", sa.String(length=2048), nullable=False),
        sa.Column("delivery_mode", delivery_mode_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_jobs_is_active", "jobs", ["is_active"])

    op.create_table(
        "job_executions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("status", execution_status_enum, nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("http_status", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.String(length=2048), nullable=True),
        sa.Column(
            "retry_count", sa.Integer(), server_default=sa.text("0"), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_job_executions_job_id_scheduled_at",
        "job_executions",
        ["job_id", "scheduled_at"],
    )
    op.create_index("ix_job_executions_status", "job_executions", ["status"])


def downgrade() -> None:
    op.drop_index("ix_job_executions_status", table_name="job_executions")
    op.drop_index(
        "ix_job_executions_job_id_scheduled_at", table_name="job_executions"
    )
    op.drop_table("job_executions")
    op.drop_index("ix_jobs_is_active", table_name="jobs")
    op.drop_table("jobs")
    execution_status_enum.drop(op.get_bind(), checkfirst=True)
    delivery_mode_enum.drop(op.get_bind(), checkfirst=True)
