"""enrollment schema

Revision ID: 3b1e7c0a9d21
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1e7c0a9d21"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

UUID = postgresql.UUID(as_uuid=True)


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("owner_id", UUID, nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("is_free", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "course_modules",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint(
            "course_id",
            "position",
            name="uq_course_modules_course_position",
            deferrable=True,
            initially="DEFERRED",
        ),
    )
    op.create_table(
        "materials",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("module_id", UUID, sa.ForeignKey("course_modules.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content_ref", sa.Text(), nullable=False),
    )
    op.create_table(
        "quizzes",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "module_id",
            UUID,
            sa.ForeignKey("course_modules.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("passing_threshold_percent", sa.Integer(), nullable=False),
        sa.Column("time_limit_seconds", sa.Integer(), nullable=True),
    )
    op.create_table(
        "quiz_questions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("quiz_id", UUID, sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "kind", sa.String(length=32), nullable=False, server_default="single_choice"
        ),
    )
    op.create_table(
        "quiz_options",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "question_id", UUID, sa.ForeignKey("quiz_questions.id"), nullable=False
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default="false"),
    )
    op.create_table(
        "enrollments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("learner_id", UUID, nullable=False),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.Column("activated_at", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.Integer(), nullable=True),
        sa.Column("suspended_at", sa.Integer(), nullable=True),
        sa.UniqueConstraint(
            "learner_id", "course_id", name="uq_enrollments_learner_course"
        ),
    )
    op.create_table(
        "enrollment_events",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "enrollment_id", UUID, sa.ForeignKey("enrollments.id"), nullable=False
        ),
        sa.Column("occurred_at", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("actor_id", UUID, nullable=True),
        sa.Column("payload_json", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_enrollment_events_enrollment_id", "enrollment_events", ["enrollment_id"]
    )
    op.create_table(
        "payments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "enrollment_id", UUID, sa.ForeignKey("enrollments.id"), nullable=False
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("method", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("reference_code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("submitted_at", sa.Integer(), nullable=False),
        sa.Column("proof_ref", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("decided_at", sa.Integer(), nullable=True),
        sa.Column("decided_by", UUID, nullable=True),
        sa.Column("decision_reason", sa.Text(), nullable=True),
    )
    op.create_index("ix_payments_enrollment_id", "payments", ["enrollment_id"])
    op.create_table(
        "material_completions",
        sa.Column(
            "enrollment_id", UUID, sa.ForeignKey("enrollments.id"), primary_key=True
        ),
        sa.Column("material_id", UUID, sa.ForeignKey("materials.id"), primary_key=True),
        sa.Column(
            "module_id", UUID, sa.ForeignKey("course_modules.id"), nullable=False
        ),
        sa.Column("completed_at", sa.Integer(), nullable=False),
    )
    op.create_table(
        "quiz_attempts",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "enrollment_id", UUID, sa.ForeignKey("enrollments.id"), nullable=False
        ),
        sa.Column("quiz_id", UUID, sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("attempt_no", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("started_at", sa.Integer(), nullable=False),
        sa.Column("deadline_at", sa.Integer(), nullable=True),
        sa.Column("submitted_at", sa.Integer(), nullable=True),
        sa.Column("score_percent", sa.Numeric(5, 2), nullable=True),
        sa.Column("passed", sa.Boolean(), nullable=True),
        sa.Column("late", sa.Boolean(), nullable=False, server_default="false"),
        sa.UniqueConstraint(
            "enrollment_id", "quiz_id", "attempt_no", name="uq_quiz_attempts_no"
        ),
    )
    op.create_table(
        "attempt_answers",
        sa.Column(
            "attempt_id", UUID, sa.ForeignKey("quiz_attempts.id"), primary_key=True
        ),
        sa.Column(
            "question_id", UUID, sa.ForeignKey("quiz_questions.id"), primary_key=True
        ),
        sa.Column("option_id", UUID, sa.ForeignKey("quiz_options.id"), nullable=False),
        sa.Column("points_awarded", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "certificates",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "enrollment_id",
            UUID,
            sa.ForeignKey("enrollments.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "verification_code", sa.String(length=32), nullable=False, unique=True
        ),
        sa.Column("issued_at", sa.Integer(), nullable=False),
        sa.Column("artifact_ref", sa.Text(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("certificates")
    op.drop_table("attempt_answers")
    op.drop_table("quiz_attempts")
    op.drop_table("material_completions")
    op.drop_index("ix_payments_enrollment_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_enrollment_events_enrollment_id", table_name="enrollment_events")
    op.drop_table("enrollment_events")
    op.drop_table("enrollments")
    op.drop_table("quiz_options")
    op.drop_table("quiz_questions")
    op.drop_table("quizzes")
    op.drop_table("materials")
    op.drop_table("course_modules")
    op.drop_table("courses")
