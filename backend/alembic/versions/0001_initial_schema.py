"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the attendance engine tables:
events, attendance_records, attendance_log, event_feedback.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ATTENDANCE_STATUSES = ("CONFIRMED", "WAITLISTED", "CANCELLED", "CHECKED_IN", "NO_SHOW")
ATTENDANCE_ACTIONS = ("RSVP_CONFIRMED", "WAITLISTED", "CANCELLED", "PROMOTED", "CHECKED_IN", "NO_SHOW")


def upgrade() -> None:
    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("organizer_id", sa.String(64), nullable=False),
        sa.Column("start_time_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time_utc", sa.DateTime(timezone=True), nullable=True),
        sa.Column("capacity", sa.Integer, nullable=True),
        sa.Column("waitlist_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_sold_out", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("capacity IS NULL OR capacity >= 1", name="ck_events_capacity_positive"),
    )
    op.create_index("ix_events_start_time_utc", "events", ["start_time_utc"])

    # --- attendance_records ---
    op.create_table(
        "attendance_records",
        sa.Column("record_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("status", sa.Enum(*ATTENDANCE_STATUSES, name="attendance_status"), nullable=False),
        sa.Column("position", sa.Integer, nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("waitlisted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "uq_attendance_active_pair",
        "attendance_records",
        ["event_id", "user_id"],
        unique=True,
        sqlite_where=sa.text("status != 'CANCELLED'"),
        postgresql_where=sa.text("status != 'CANCELLED'"),
    )
    op.create_index("ix_attendance_event_status", "attendance_records", ["event_id", "status"])

    # --- attendance_log ---
    op.create_table(
        "attendance_log",
        sa.Column("log_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("action", sa.Enum(*ATTENDANCE_ACTIONS, name="attendance_action"), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("reason", sa.String(64), nullable=True),
        sa.Column("details", sa.JSON, nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_attendance_log_event_user", "attendance_log", ["event_id", "user_id"])

    # --- event_feedback ---
    op.create_table(
        "event_feedback",
        sa.Column("feedback_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_feedback_event_user"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_event_feedback_rating"),
    )


def downgrade() -> None:
    op.drop_table("event_feedback")
    op.drop_index("ix_attendance_log_event_user", table_name="attendance_log")
    op.drop_table("attendance_log")
    op.drop_index("ix_attendance_event_status", table_name="attendance_records")
    op.drop_index("uq_attendance_active_pair", table_name="attendance_records")
    op.drop_table("attendance_records")
    op.drop_index("ix_events_start_time_utc", table_name="events")
    op.drop_table("events")
    sa.Enum(name="attendance_action").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="attendance_status").drop(op.get_bind(), checkfirst=True)
