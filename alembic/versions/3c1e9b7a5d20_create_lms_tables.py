"""create lms tables

Revision ID: 3c1e9b7a5d20
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1e9b7a5d20"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("course_id", sa.String(length=128), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column(
            "lesson_ids",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
    )
    op.create_table(
        "learning_paths",
        sa.Column("path_id", sa.String(length=128), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("published_at", sa.BigInteger(), nullable=True),
        sa.Column("published_by", sa.String(length=128), nullable=True),
        sa.Column(
            "courses",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
    )
    op.create_table(
        "certificate_templates",
        sa.Column("template_id", sa.String(length=128), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("applies_to", sa.String(length=16), nullable=False),
        sa.Column("applies_to_id", sa.String(length=128), nullable=False),
        sa.Column("badge_text", sa.String(length=255), nullable=False),
        sa.Column("signatory_name", sa.String(length=255), nullable=True),
        sa.Column("signatory_title", sa.String(length=255), nullable=True),
        sa.Column("issued_copy_title", sa.String(length=500), nullable=False),
        sa.Column("issued_copy_body", sa.Text(), nullable=False),
    )
    op.create_index(
        "ix_certificate_templates_target",
        "certificate_templates",
        ["applies_to", "applies_to_id"],
    )

    op.create_table(
        "course_progress",
        sa.Column("learner_id", sa.String(length=128), primary_key=True),
        sa.Column("course_id", sa.String(length=128), primary_key=True),
        sa.Column(
            "enrollment_origin",
            sa.String(length=32),
            nullable=False,
            server_default="self_enrolled",
        ),
        sa.Column("enrolled_at", sa.BigInteger(), nullable=True),
        sa.Column(
            "lesson_progress",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("percent_complete", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.BigInteger(), nullable=True),
        sa.Column("current_lesson_id", sa.String(length=128), nullable=True),
        sa.Column("last_position_ms", sa.BigInteger(), nullable=True),
        sa.Column("started_at", sa.BigInteger(), nullable=True),
        sa.Column("last_accessed_at", sa.BigInteger(), nullable=True),
        sa.Column("updated_at", sa.BigInteger(), nullable=True),
    )
    op.create_table(
        "path_progress",
        sa.Column("learner_id", sa.String(length=128), primary_key=True),
        sa.Column("path_id", sa.String(length=128), primary_key=True),
        sa.Column(
            "enrollment_origin",
            sa.String(length=32),
            nullable=False,
            server_default="self_enrolled",
        ),
        sa.Column("enrolled_at", sa.BigInteger(), nullable=True),
        sa.Column("total_courses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_courses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("percent_complete", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "status", sa.String(length=32), nullable=False, server_default="not_started"
        ),
        sa.Column("completed_at", sa.BigInteger(), nullable=True),
        sa.Column("next_course_id", sa.String(length=128), nullable=True),
        sa.Column("started_at", sa.BigInteger(), nullable=True),
        sa.Column("last_activity_at", sa.BigInteger(), nullable=True),
        sa.Column("updated_at", sa.BigInteger(), nullable=True),
    )
    op.create_table(
        "course_paths",
        sa.Column("course_id", sa.String(length=128), primary_key=True),
        sa.Column("path_id", sa.String(length=128), primary_key=True),
        sa.Column(
            "path_status", sa.String(length=32), nullable=False, server_default="published"
        ),
        sa.Column("updated_at", sa.BigInteger(), nullable=True),
    )
    op.create_index("ix_course_paths_path_id", "course_paths", ["path_id"])

    op.create_table(
        "issued_certificates",
        sa.Column("certificate_id", sa.String(length=64), primary_key=True),
        sa.Column("learner_id", sa.String(length=128), nullable=False),
        sa.Column("template_id", sa.String(length=128), nullable=False),
        sa.Column("completion_type", sa.String(length=16), nullable=False),
        sa.Column("target_id", sa.String(length=128), nullable=False),
        sa.Column("issued_at", sa.BigInteger(), nullable=False),
        sa.Column("issued_by", sa.String(length=128), nullable=False, server_default="system"),
        sa.Column("certificate_data", postgresql.JSONB(), nullable=False),
    )
    op.create_index(
        "ix_issued_certificates_learner",
        "issued_certificates",
        ["learner_id", "issued_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_issued_certificates_learner", table_name="issued_certificates")
    op.drop_table("issued_certificates")
    op.drop_index("ix_course_paths_path_id", table_name="course_paths")
    op.drop_table("course_paths")
    op.drop_table("path_progress")
    op.drop_table("course_progress")
    op.drop_index("ix_certificate_templates_target", table_name="certificate_templates")
    op.drop_table("certificate_templates")
    op.drop_table("learning_paths")
    op.drop_table("courses")
