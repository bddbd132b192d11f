"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates the Flupp tables:
- Bookings
- Reviews
- Processed payment events

On PostgreSQL an exclusion constraint also rejects overlapping live bookings
for the same customer.
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("pet_name", sa.String(50), nullable=False),
        sa.Column("species", sa.String(20), nullable=False),
        sa.Column("service_type", sa.String(20), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price_cents", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="GBP"),
        sa.Column("customer_email", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending_payment"),
        sa.Column("payment_intent_id", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("end_at > start_at", name="ck_bookings_interval"),
        sa.CheckConstraint("price_cents > 0", name="ck_bookings_price_positive"),
    )
    op.create_index("ix_bookings_customer_email", "bookings", ["customer_email"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_payment_intent_id", "bookings", ["payment_intent_id"])
    op.create_index(
        "ix_bookings_customer_interval", "bookings", ["customer_email", "start_at", "end_at"]
    )

    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE bookings
            ADD CONSTRAINT ex_bookings_customer_no_overlap
            EXCLUDE USING gist (
                customer_email WITH =,
                tstzrange(start_at, end_at, '[)') WITH &&
            )
            WHERE (status <> 'cancelled')
            """
        )

    # ==================== REVIEWS ====================
    op.create_table(
        "reviews",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column(
            "booking_id",
            sa.String(50),
            sa.ForeignKey("bookings.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=False),
        sa.Column("reviewer_name", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )

    # ==================== PAYMENT EVENTS ====================
    op.create_table(
        "payment_events",
        sa.Column("event_id", sa.String(255), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("booking_id", sa.String(50)),
        sa.Column("outcome", sa.String(30), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_payment_events_booking_id", "payment_events", ["booking_id"])


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("payment_events")
    op.drop_table("reviews")
    op.drop_table("bookings")
