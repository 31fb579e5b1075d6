"""Create users, students, classes, skill ratings and verification tokens.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # gen_random_uuid() is built in from PostgreSQL 13
    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_user_email", "users", ["email"], unique=True)

    op.create_table(
        "students",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "classes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
    )

    op.create_table(
        "enrollments",
        sa.Column(
            "student_id",
            sa.UUID(),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "class_id",
            sa.Integer(),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "class_skills",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "class_id",
            sa.Integer(),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("skill_name", sa.String(100), nullable=False),
    )
    op.create_index("idx_class_skill_class", "class_skills", ["class_id"])

    op.create_table(
        "student_skills",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "student_id",
            sa.UUID(),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "class_skill_id",
            sa.Integer(),
            sa.ForeignKey("class_skills.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("value", sa.Float(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "student_id", "class_skill_id", name="uq_student_skill_student_skill"
        ),
        sa.CheckConstraint(
            "value >= 0 AND value <= 1", name="ck_student_skill_value"
        ),
    )

    # One live token per (user, action); the named key is matched when
    # translating insert conflicts.
    op.create_table(
        "verification_tokens",
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action_type", sa.String(32), nullable=False),
        sa.Column("token", sa.String(64), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint(
            "user_id", "action_type", name="pk_verification_tokens"
        ),
        sa.UniqueConstraint("token", name="uq_verification_tokens_token"),
    )


def downgrade() -> None:
    op.drop_table("verification_tokens")
    op.drop_table("student_skills")
    op.drop_index("idx_class_skill_class", table_name="class_skills")
    op.drop_table("class_skills")
    op.drop_table("enrollments")
    op.drop_table("classes")
    op.drop_table("students")
    op.drop_index("idx_user_email", table_name="users")
    op.drop_table("users")
