"""insertion sequence on ordered tables

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None

TABLES = ("profiles", "courses", "trainings", "completed_lessons")


def upgrade() -> None:
    for table in TABLES:
        with op.batch_alter_table(table) as batch:
            batch.add_column(
                sa.Column(
                    "seq", sa.BigInteger(), nullable=False, server_default="0"
                )
            )


def downgrade() -> None:
    for table in reversed(TABLES):
        with op.batch_alter_table(table) as batch:
            batch.drop_column("seq")
