"""Create billing and usage tables.

subscription_records holds one row per user, processed_events is the
webhook idempotency log, and usage_counters tracks per-period consumption.

Revision ID: a7c1e9d2b4f0
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "a7c1e9d2b4f0"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create subscription_records, processed_events and usage_counters."""
    op.create_table(
        "subscription_records",
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("plan_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(255), nullable=True),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "cancel_at_period_end", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("user_id", name="pk_subscription_records"),
    )
    # A billing customer belongs to exactly one user
    op.create_index(
        "ix_subscription_records_stripe_customer_id",
        "subscription_records",
        ["stripe_customer_id"],
        unique=True,
    )
    op.create_index(
        "ix_subscription_records_stripe_subscription_id",
        "subscription_records",
        ["stripe_subscription_id"],
    )

    op.create_table(
        "processed_events",
        sa.Column("event_id", sa.String(255), nullable=False),
        sa.Column("type", sa.String(128), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("plan", sa.String(64), nullable=True),
        sa.Column(
            "processed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("event_id", name="pk_processed_events"),
    )
    op.create_index("ix_processed_events_user_id", "processed_events", ["user_id"])

    op.create_table(
        "usage_counters",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("feature_type", sa.String(32), nullable=False),
        sa.Column("period_key", sa.String(16), nullable=False),
        sa.Column("used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("limit", sa.Integer(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id", name="pk_usage_counters"),
        sa.UniqueConstraint(
            "user_id", "feature_type", "period_key", name="uq_usage_counter_key"
        ),
        sa.CheckConstraint("used >= 0", name="ck_usage_counters_used_non_negative"),
    )


def downgrade():
    """Drop the billing and usage tables."""
    op.drop_table("usage_counters")
    op.drop_index("ix_processed_events_user_id", table_name="processed_events")
    op.drop_table("processed_events")
    op.drop_index(
        "ix_subscription_records_stripe_subscription_id", table_name="subscription_records"
    )
    op.drop_index("ix_subscription_records_stripe_customer_id", table_name="subscription_records")
    op.drop_table("subscription_records")
