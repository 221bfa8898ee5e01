"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-12

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])

    op.create_table(
        "imported_job_executions",
        sa.Column("execution_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("job_type", sa.String(50), nullable=True),
        sa.Column("job_name", sa.String(200), nullable=False),
        sa.Column("script_path", sa.String(500), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=True),
        sa.Column("strategy", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=True),
        sa.Column("submitted_by", sa.String(100), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("host", sa.String(100), nullable=True),
        sa.Column("parent_execution_id", sa.BigInteger(), nullable=True),
        sa.Column("duration_seconds", sa.BigInteger(), nullable=True),
        sa.Column(
            "import_timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("csv_source_file", sa.String(500), nullable=True),
        sa.PrimaryKeyConstraint("execution_id"),
    )
    op.create_index(
        "ix_imported_job_executions_job_name", "imported_job_executions", ["job_name"]
    )
    op.create_index("ix_imported_job_executions_status", "imported_job_executions", ["status"])
    op.create_index(
        "ix_imported_job_executions_submitted_at", "imported_job_executions", ["submitted_at"]
    )
    op.create_index(
        "ix_imported_job_executions_parent_execution_id",
        "imported_job_executions",
        ["parent_execution_id"],
    )
    op.create_index(
        "ix_imported_job_executions_import_timestamp",
        "imported_job_executions",
        ["import_timestamp"],
    )

    op.create_table(
        "job_favorites",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_name", sa.String(200), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("notify_on_failure", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notify_on_success", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notify_on_start", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_notified_execution_id", sa.BigInteger(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "job_name", name="uq_job_favorites_user_job"),
    )
    op.create_index("ix_job_favorites_job_name", "job_favorites", ["job_name"])
    op.create_index("ix_job_favorites_user_id", "job_favorites", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_job_favorites_user_id", table_name="job_favorites")
    op.drop_index("ix_job_favorites_job_name", table_name="job_favorites")
    op.drop_table("job_favorites")
    op.drop_index(
        "ix_imported_job_executions_import_timestamp", table_name="imported_job_executions"
    )
    op.drop_index(
        "ix_imported_job_executions_parent_execution_id", table_name="imported_job_executions"
    )
    op.drop_index("ix_imported_job_executions_submitted_at", table_name="imported_job_executions")
    op.drop_index("ix_imported_job_executions_status", table_name="imported_job_executions")
    op.drop_index("ix_imported_job_executions_job_name", table_name="imported_job_executions")
    op.drop_table("imported_job_executions")
    op.drop_index("ix_sessions_user_id", table_name="sessions")
    op.drop_table("sessions")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
