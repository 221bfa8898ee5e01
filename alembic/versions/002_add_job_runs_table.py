"""Record scheduled import passes in job_runs

Revision ID: 002_add_job_runs
Revises: 001_initial
Create Date: 2026-10-12

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002_add_job_runs"
down_revision: str = "001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "job_runs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.String(100), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("finished_at", sa.DateTime(), nullable=False),
        sa.Column("outcome", sa.String(40), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_job_runs"),
    )
    op.create_index("ix_job_runs_scheduled_at", "job_runs", ["scheduled_at"])
    op.create_index("ix_job_runs_job_id_scheduled_at", "job_runs", ["job_id", "scheduled_at"])


def downgrade() -> None:
    op.drop_index("ix_job_runs_job_id_scheduled_at", table_name="job_runs")
    op.drop_index("ix_job_runs_scheduled_at", table_name="job_runs")
    op.drop_table("job_runs")
