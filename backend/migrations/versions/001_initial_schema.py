"""Initial schema: counters, permits, scan audit trail, users and notifications.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

PERMIT_STATUSES = ("pending", "approved", "rejected")
USER_ROLES = ("super_admin", "admin", "reviewer", "approver", "verifier", "vendor")


def upgrade() -> None:
    op.create_table(
        "sequence_counters",
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("last_issued", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("last_issued >= 0", name="ck_sequence_counters_last_issued"),
        sa.PrimaryKeyConstraint("period"),
    )

    op.create_table(
        "sequence_counter_resets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("previous_value", sa.BigInteger(), nullable=False),
        sa.Column("reset_to", sa.BigInteger(), nullable=False),
        sa.Column("reset_by", sa.String(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sequence_counter_resets_period", "sequence_counter_resets", ["period"])

    op.create_table(
        "app_users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column(
            "role",
            sa.Enum(*USER_ROLES, name="userrole", native_enum=False),
            nullable=False,
        ),
        sa.Column("vendor_id", sa.Uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)
    op.create_index("ix_app_users_vendor_id", "app_users", ["vendor_id"])

    op.create_table(
        "permits",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("vendor_id", sa.Uuid(), nullable=False),
        sa.Column("vendor_name", sa.String(), nullable=False),
        sa.Column("job_description", sa.String(), nullable=False),
        sa.Column("work_location", sa.String(), nullable=False),
        sa.Column("implementation_start_date", sa.Date(), nullable=True),
        sa.Column("implementation_end_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*PERMIT_STATUSES, name="permitstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("document_number", sa.String(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["vendor_id"], ["app_users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_permits_vendor_id", "permits", ["vendor_id"])
    op.create_index("ix_permits_status", "permits", ["status"])
    op.create_index("ix_permits_document_number", "permits", ["document_number"], unique=True)

    op.create_table(
        "scan_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("permit_id", sa.Uuid(), nullable=False),
        sa.Column("scanned_by", sa.Uuid(), nullable=False),
        sa.Column("scanner_name", sa.String(), nullable=True),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["permit_id"], ["permits.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["scanned_by"], ["app_users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scan_events_permit_scanned_at", "scan_events", ["permit_id", "scanned_at"])
    op.create_index("ix_scan_events_scanned_by_scanned_at", "scan_events", ["scanned_by", "scanned_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("scope", sa.String(length=64), nullable=False),
        sa.Column("vendor_id", sa.Uuid(), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_scope_created_at", "notifications", ["scope", "created_at"])
    op.create_index("ix_notifications_vendor_id", "notifications", ["vendor_id"])

    op.create_table(
        "notification_reads",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("notification_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["notification_id"], ["notifications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["app_users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("notification_id", "user_id", name="uq_notification_read_user"),
    )
    op.create_index("ix_notification_reads_notification_id", "notification_reads", ["notification_id"])


def downgrade() -> None:
    op.drop_table("notification_reads")
    op.drop_table("notifications")
    op.drop_table("scan_events")
    op.drop_table("permits")
    op.drop_table("app_users")
    op.drop_table("sequence_counter_resets")
    op.drop_table("sequence_counters")
