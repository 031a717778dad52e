"""Usage counter model: per user, feature and billing period."""

from typing import Optional

from sqlalchemy import CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from prepcoach.models._base import Base, TimestampMixin


class UsageCounter(Base, TimestampMixin):
    """Consumption of one feature by one user within one period.

    ``limit`` is the free-tier ceiling captured when the counter was created;
    NULL means unmetered.
    """

    __tablename__ = "usage_counters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    feature_type: Mapped[str] = mapped_column(String(32), nullable=False)
    period_key: Mapped[str] = mapped_column(String(16), nullable=False)
    used: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    limit: Mapped[Optional[int]] = mapped_column("limit", Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "feature_type", "period_key", name="uq_usage_counter_key"),
        CheckConstraint("used >= 0", name="used_non_negative"),
    )
