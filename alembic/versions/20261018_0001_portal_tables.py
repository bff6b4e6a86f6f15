"""profiles, accounts, courses, trainings and completed lessons

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column(
            "role", sa.String(length=16), nullable=False,
            server_default="student"
        ),
        sa.Column(
            "created_at", sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP")
        ),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])

    op.create_table(
        "accounts",
        sa.Column(
            "id",
            sa.String(length=36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)

    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP")
        ),
    )

    op.create_table(
        "trainings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("video_url", sa.String(length=1024), nullable=False),
        sa.Column("order_number", sa.Integer(), nullable=False),
        sa.Column(
            "course_id",
            sa.String(length=36),
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at", sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP")
        ),
    )
    op.create_index("ix_trainings_course_id", "trainings", ["course_id"])

    op.create_table(
        "completed_lessons",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "training_id",
            sa.String(length=36),
            sa.ForeignKey("trainings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "completed_at", sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP")
        ),
        sa.UniqueConstraint(
            "user_id", "training_id",
            name="uq_completed_lessons_user_training"
        ),
    )
    op.create_index(
        "ix_completed_lessons_user_id", "completed_lessons", ["user_id"]
    )
    op.create_index(
        "ix_completed_lessons_training_id", "completed_lessons", ["training_id"]
    )


def downgrade() -> None:
    op.drop_index(
        "ix_completed_lessons_training_id", table_name="completed_lessons"
    )
    op.drop_index("ix_completed_lessons_user_id", table_name="completed_lessons")
    op.drop_table("completed_lessons")
    op.drop_index("ix_trainings_course_id", table_name="trainings")
    op.drop_table("trainings")
    op.drop_table("courses")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_table("accounts")
    op.drop_index("ix_profiles_email", table_name="profiles")
    op.drop_table("profiles")
