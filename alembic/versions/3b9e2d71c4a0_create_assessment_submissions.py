"""create assessment_submissions

Revision ID: 3b9e2d71c4a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e2d71c4a0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "assessment_submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(length=320), nullable=False),
        sa.Column("assessment_id", sa.String(length=128), nullable=False),
        sa.Column(
            "responses",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "percent_complete", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            server_default="in_progress",
        ),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.Integer(), nullable=True),
    )
    op.create_index(
        "ix_assessment_submissions_user_id",
        "assessment_submissions",
        ["user_id"],
    )
    op.create_index(
        "uq_assessment_submissions_active",
        "assessment_submissions",
        ["user_id", "assessment_id"],
        unique=True,
        postgresql_where=sa.text("status = 'in_progress'"),
    )


def downgrade() -> None:
    op.drop_index(
        "uq_assessment_submissions_active", table_name="assessment_submissions"
    )
    op.drop_index(
        "ix_assessment_submissions_user_id", table_name="assessment_submissions"
    )
    op.drop_table("assessment_submissions")
