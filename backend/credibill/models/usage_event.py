"""Usage event model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, BigInteger, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from credibill.models._base import AppScopedBase


class UsageEvent(AppScopedBase):
    """Units of a metric consumed by a subscription at one point in time."""

    __tablename__ = "usage_event"

    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customer.id", ondelete="CASCADE"), nullable=False
    )
    subscription_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    metric: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Caller supplied, used to drop duplicate reports
    event_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    usage_metadata: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_usage_event_subscription_timestamp", "subscription_id", "timestamp"),
        Index("ix_usage_event_event_id", "event_id"),
        Index("ix_usage_event_metric", "metric"),
    )
