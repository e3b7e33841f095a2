"""init schema: accounts, listings, reservations, night claims, checkout, events

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_host", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("verification_token_hash", sa.String(length=64), nullable=True),
        sa.Column("verification_token_expires_at", sa.DateTime(), nullable=True),
        sa.Column("reset_token_hash", sa.String(length=64), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(), nullable=True),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_failed_login_at", sa.DateTime(), nullable=True),
        sa.Column("locked_until", sa.DateTime(), nullable=True),
        sa.Column("last_password_change_at", sa.DateTime(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)
    op.create_index("ix_accounts_verification_token_hash", "accounts", ["verification_token_hash"])
    op.create_index("ix_accounts_reset_token_hash", "accounts", ["reset_token_hash"])

    op.create_table(
        "listings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("host_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=False),
        sa.Column("monthly_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_listings_host_id", "listings", ["host_id"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("listing_id", sa.Integer(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("guest_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("check_out_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("deposit_refunded", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("checkout_confirmed_by_host", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("checkout_confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("refund_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("refund_tier", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("check_out_date > check_in_date", name="ck_reservations_dates_ordered"),
    )
    op.create_index("ix_reservations_listing_id", "reservations", ["listing_id"])
    op.create_index("ix_reservations_guest_id", "reservations", ["guest_id"])
    op.create_index("ix_reservations_status", "reservations", ["status"])
    op.create_index("ix_reservations_listing_dates", "reservations", ["listing_id", "check_in_date", "check_out_date"])
    op.create_index("ix_reservations_guest_status", "reservations", ["guest_id", "status"])

    op.create_table(
        "reservation_nights",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("listing_id", sa.Integer(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column(
            "reservation_id",
            sa.Integer(),
            sa.ForeignKey("reservations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("night", sa.Date(), nullable=False),
        sa.UniqueConstraint("listing_id", "night", name="uq_reservation_nights_listing_night"),
    )
    op.create_index("ix_reservation_nights_reservation_id", "reservation_nights", ["reservation_id"])

    op.create_table(
        "checkout_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("reservation_id", sa.Integer(), sa.ForeignKey("reservations.id"), nullable=False),
        sa.Column("assessed_by_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("condition", sa.String(length=20), nullable=False),
        sa.Column("damages_reported", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("damage_description", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("deposit_refund_eligible", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("reservation_id", name="uq_checkout_records_reservation"),
    )

    op.create_table(
        "reservation_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("reservation_id", sa.Integer(), sa.ForeignKey("reservations.id"), nullable=False),
        sa.Column("actor_account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=True),
        sa.Column("event_type", sa.String(length=80), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_reservation_events_reservation_id", "reservation_events", ["reservation_id"])
    op.create_index("ix_reservation_events_event_type", "reservation_events", ["event_type"])


def downgrade():
    op.drop_index("ix_reservation_events_event_type", table_name="reservation_events")
    op.drop_index("ix_reservation_events_reservation_id", table_name="reservation_events")
    op.drop_table("reservation_events")
    op.drop_table("checkout_records")
    op.drop_index("ix_reservation_nights_reservation_id", table_name="reservation_nights")
    op.drop_table("reservation_nights")
    op.drop_index("ix_reservations_guest_status", table_name="reservations")
    op.drop_index("ix_reservations_listing_dates", table_name="reservations")
    op.drop_index("ix_reservations_status", table_name="reservations")
    op.drop_index("ix_reservations_guest_id", table_name="reservations")
    op.drop_index("ix_reservations_listing_id", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_listings_host_id", table_name="listings")
    op.drop_table("listings")
    op.drop_index("ix_accounts_reset_token_hash", table_name="accounts")
    op.drop_index("ix_accounts_verification_token_hash", table_name="accounts")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_table("accounts")
