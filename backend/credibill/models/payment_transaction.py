"""Payment transaction model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from credibill.core.shared_models import PaymentTransactionStatus
from credibill.models._base import AppScopedBase


class PaymentTransaction(AppScopedBase):
    """Mirror of a payment attempt at an external payment provider."""

    __tablename__ = "payment_transaction"

    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customer.id", ondelete="CASCADE"), nullable=False
    )
    subscription_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("subscription.id", ondelete="SET NULL"), nullable=True
    )
    invoice_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("invoice.id", ondelete="SET NULL"), nullable=True
    )

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    provider_transaction_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    provider_reference: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentTransactionStatus.PENDING.value
    )
    failure_reason: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    failure_code: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_retry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    initiated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    expires_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        Index("ix_payment_transaction_status", "status"),
        Index("ix_payment_transaction_reference", "provider_reference"),
        Index("ix_payment_transaction_provider_id", "provider_transaction_id"),
        Index("ix_payment_transaction_initiated_at", "initiated_at"),
    )
