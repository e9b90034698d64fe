"""Reject overlapping active bookings per location at the storage level.

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:02
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_0002"
down_revision: Union[str, None] = "20261019_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(sa.text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
    op.execute(
        sa.text(
            "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_no_overlap "
            "EXCLUDE USING gist ("
            "location_id WITH =, "
            "tstzrange(start_time, end_time, '[)') WITH &&"
            ") WHERE (status IN ('PENDING', 'CONFIRMED', 'IN_PROGRESS'))"
        )
    )


def downgrade() -> None:
    op.execute(sa.text("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_no_overlap"))
