"""ride_requests

Revision ID: 3b1f0c7a9e42
Revises: 
Create Date: 2026-10-17 09:12:31.418207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f0c7a9e42'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the riderequest table keyed by rider id."""
    op.create_table(
        "riderequest",
        sa.Column("rider_id", sa.String(), nullable=False),
        sa.Column("pickup_latitude", sa.Float(), nullable=False),
        sa.Column("pickup_longitude", sa.Float(), nullable=False),
        sa.Column("destination", sa.String(), nullable=False, server_default=""),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("rider_email", sa.String(), nullable=False, server_default="N/A"),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("driver_id", sa.String(), nullable=True),
        sa.Column("driver_name", sa.String(), nullable=True),
        sa.Column("driver_vehicle", sa.String(), nullable=True),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("rider_id"),
    )
    op.create_index("ix_riderequest_status", "riderequest", ["status"])
    op.create_index("ix_riderequest_timestamp", "riderequest", ["timestamp"])


def downgrade() -> None:
    """Drop the riderequest table."""
    op.drop_index("ix_riderequest_timestamp", table_name="riderequest")
    op.drop_index("ix_riderequest_status", table_name="riderequest")
    op.drop_table("riderequest")
