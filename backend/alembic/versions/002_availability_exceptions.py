# backend/alembic/versions/002_availability_exceptions.py
"""Availability exceptions table

Revision ID: 002_availability_exceptions
Revises: 001_core_schema
Create Date: 2025-03-15 00:00:00.000000

Deployments still on 001 keep working: the API checks for this table at
startup and stores exceptions in the local cache until it exists.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002_availability_exceptions"
down_revision: Union[str, None] = "001_core_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    print("Creating availability_exceptions table...")
    op.create_table(
        "availability_exceptions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("trainer_id", sa.String(26), nullable=False),
        sa.Column("exception_date", sa.Date(), nullable=False),
        # No foreign key: exceptions may outlive the rule they suppress
        sa.Column("original_slot_id", sa.String(26), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(["trainer_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_availability_exceptions_id", "availability_exceptions", ["id"])
    op.create_index(
        "idx_availability_exceptions_trainer_date",
        "availability_exceptions",
        ["trainer_id", "exception_date"],
    )


def downgrade() -> None:
    op.drop_index("idx_availability_exceptions_trainer_date", table_name="availability_exceptions")
    op.drop_index("ix_availability_exceptions_id", table_name="availability_exceptions")
    op.drop_table("availability_exceptions")
