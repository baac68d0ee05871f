"""Invoice model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, BigInteger, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credibill.core.shared_models import InvoiceStatus
from credibill.models._base import AppScopedBase


class Invoice(AppScopedBase):
    """Invoice for one billing period of a subscription."""

    __tablename__ = "invoice"

    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customer.id", ondelete="CASCADE"), nullable=False
    )
    subscription_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription.id", ondelete="CASCADE"), nullable=False
    )
    invoice_number: Mapped[str] = mapped_column(String, nullable=False, index=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    amount_due: Mapped[int] = mapped_column(BigInteger, nullable=False)
    amount_paid: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.OPEN.value
    )
    period_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    period_end: Mapped[int] = mapped_column(BigInteger, nullable=False)
    due_date: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    line_items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    invoice_metadata: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "subscription_id",
            "period_start",
            "period_end",
            name="uq_invoice_subscription_period",
        ),
    )
