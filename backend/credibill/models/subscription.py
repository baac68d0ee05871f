"""Subscription model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, BigInteger, Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from credibill.core.shared_models import SubscriptionStatus
from credibill.models._base import AppScopedBase


class Subscription(AppScopedBase):
    """Subscription of a customer to a plan.

    All timestamps are epoch milliseconds. An absent `current_period_end` means the
    subscription has not completed its first payment cycle yet.
    """

    __tablename__ = "subscription"

    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customer.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_id: Mapped[UUID] = mapped_column(ForeignKey("plan.id"), nullable=False, index=True)
    plan_snapshot: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value
    )
    start_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    trial_ends_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    current_period_start: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    current_period_end: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    next_payment_date: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    last_payment_date: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    failed_payment_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_subscription_status", "status"),
        Index("ix_subscription_trial_ends_at", "trial_ends_at"),
        Index("ix_subscription_next_payment_date", "next_payment_date"),
    )
