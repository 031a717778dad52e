"""Models module."""

from prepcoach.models._base import Base
from prepcoach.models.processed_event import ProcessedEvent
from prepcoach.models.subscription_record import SubscriptionRecord
from prepcoach.models.usage_counter import UsageCounter

__all__ = ["Base", "ProcessedEvent", "SubscriptionRecord", "UsageCounter"]
