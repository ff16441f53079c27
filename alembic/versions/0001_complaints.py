"""complaints table

Revision ID: 0001_complaints
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_complaints"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "complaints",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("caller_number", sa.String(length=64), nullable=False),
        sa.Column("call_sid", sa.String(length=64), nullable=True),
        sa.Column("complaint", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_complaints_caller_number", "complaints", ["caller_number"], unique=False)
    op.create_index("ix_complaints_call_sid", "complaints", ["call_sid"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_complaints_call_sid", table_name="complaints")
    op.drop_index("ix_complaints_caller_number", table_name="complaints")
    op.drop_table("complaints")
