"""DB-level exclusion constraint against overlapping stays in one room.

Second layer behind the room-row lock taken by bookings and date changes:
two non-cancelled reservations of the same room can never hold overlapping
[check_in, check_out) ranges, even if application code is bypassed.
tstzrange '[)' keeps touching stays (check_out A == check_in B) legal.

Revision ID: 002_no_room_overlap_constraint
Revises: 001_initial_schema
Create Date: 2026-02-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_no_room_overlap_constraint"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parents[1] / "sql" / "002_no_room_overlap_constraint.sql"


def upgrade() -> None:
    op.execute(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("ALTER TABLE reservations DROP CONSTRAINT IF EXISTS no_room_overlap")
    # btree_gist stays installed: other indexes may depend on it.
