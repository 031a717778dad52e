"""Subscription record model: one row per user."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from prepcoach.models._base import Base, TimestampMixin


class SubscriptionRecord(Base, TimestampMixin):
    """A user's current plan and status as last reported by the billing platform.

    Never deleted: cancellation is a status transition.
    """

    __tablename__ = "subscription_records"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    plan_id: Mapped[str] = mapped_column(String(64), nullable=False, default="free")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="incomplete")
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    current_period_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancel_at_period_end: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    __table_args__ = (
        Index("ix_subscription_records_stripe_customer_id", "stripe_customer_id", unique=True),
        Index("ix_subscription_records_stripe_subscription_id", "stripe_subscription_id"),
    )
