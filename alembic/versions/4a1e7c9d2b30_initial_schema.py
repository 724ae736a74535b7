"""initial schema

Revision ID: 4a1e7c9d2b30
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


revision = "4a1e7c9d2b30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "users_profile",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column(
            "organization_id",
            sa.String(length=36),
            sa.ForeignKey("organizations.id"),
            nullable=True,
        ),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "ix_users_profile_organization_id", "users_profile", ["organization_id"]
    )
    op.create_table(
        "events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "organization_id",
            sa.String(length=36),
            sa.ForeignKey("organizations.id"),
            nullable=False,
        ),
        sa.Column("slug", sa.String(length=120), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("venue", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_events_organization_id", "events", ["organization_id"])
    op.create_table(
        "ticket_types",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("event_id", sa.String(length=36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("valid_until", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("event_id", "name", name="uq_ticket_types_event_name"),
    )
    op.create_table(
        "event_staff",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("event_id", sa.String(length=36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("quota_limit", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quota_used", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_staff_event_user"),
        sa.CheckConstraint("quota_used >= 0", name="ck_event_staff_quota_used_positive"),
        sa.CheckConstraint(
            "quota_used <= quota_limit", name="ck_event_staff_quota_within_limit"
        ),
    )
    op.create_table(
        "devices",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("alias", sa.String(length=120), nullable=False, unique=True),
        sa.Column("pin", sa.String(length=20), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "organization_id",
            sa.String(length=36),
            sa.ForeignKey("organizations.id"),
            nullable=False,
        ),
        sa.Column("last_active_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "tickets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("event_id", sa.String(length=36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column(
            "organization_id",
            sa.String(length=36),
            sa.ForeignKey("organizations.id"),
            nullable=False,
        ),
        sa.Column(
            "ticket_type_id",
            sa.String(length=36),
            sa.ForeignKey("ticket_types.id"),
            nullable=True,
        ),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("buyer_name", sa.String(length=255), nullable=False),
        sa.Column("buyer_email", sa.String(length=255), nullable=False),
        sa.Column("buyer_phone", sa.String(length=50), nullable=True),
        sa.Column("buyer_doc", sa.String(length=50), nullable=True),
        sa.Column("qr_token", sa.Text(), nullable=False, unique=True),
        sa.Column("status", sa.String(length=5), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("email_sent_at", sa.DateTime(), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True, unique=True),
    )
    op.create_index("ix_tickets_event_id", "tickets", ["event_id"])
    op.create_index("ix_tickets_organization_id", "tickets", ["organization_id"])
    op.create_index("ix_tickets_status", "tickets", ["status"])
    op.create_index("ix_tickets_buyer_doc_event", "tickets", ["buyer_doc", "event_id"])
    op.create_table(
        "ticket_voids",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.String(length=36), sa.ForeignKey("tickets.id"), nullable=False, unique=True),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("voided_at", sa.DateTime(), nullable=False),
        sa.Column("voided_by", sa.String(length=150), nullable=False),
        sa.Column("voided_role", sa.String(length=20), nullable=False),
    )
    op.create_table(
        "checkins",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ticket_id", sa.String(length=36), sa.ForeignKey("tickets.id"), nullable=True),
        sa.Column("event_id", sa.String(length=36), sa.ForeignKey("events.id"), nullable=True),
        sa.Column("device_id", sa.String(length=36), sa.ForeignKey("devices.id"), nullable=True),
        sa.Column("operator_user", sa.String(length=64), nullable=True),
        sa.Column("method", sa.String(length=9), nullable=False),
        sa.Column("result", sa.String(length=17), nullable=False),
        sa.Column("message", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("scanned_at", sa.DateTime(), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True, unique=True),
    )
    op.create_index("ix_checkins_ticket_id", "checkins", ["ticket_id"])
    op.create_index("ix_checkins_event_id", "checkins", ["event_id"])
    op.create_index("ix_checkins_scanned_at", "checkins", ["scanned_at"])
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("resource", sa.String(length=120), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_index("ix_checkins_scanned_at", table_name="checkins")
    op.drop_index("ix_checkins_event_id", table_name="checkins")
    op.drop_index("ix_checkins_ticket_id", table_name="checkins")
    op.drop_table("checkins")
    op.drop_table("ticket_voids")
    op.drop_index("ix_tickets_buyer_doc_event", table_name="tickets")
    op.drop_index("ix_tickets_status", table_name="tickets")
    op.drop_index("ix_tickets_organization_id", table_name="tickets")
    op.drop_index("ix_tickets_event_id", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("devices")
    op.drop_table("event_staff")
    op.drop_table("ticket_types")
    op.drop_index("ix_events_organization_id", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_users_profile_organization_id", table_name="users_profile")
    op.drop_table("users_profile")
    op.drop_table("organizations")
