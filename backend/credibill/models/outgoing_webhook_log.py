"""Outgoing webhook log model."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON, BigInteger, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from credibill.core.shared_models import WebhookDeliveryStatus
from credibill.models._base import AppScopedBase


class OutgoingWebhookLog(AppScopedBase):
    """Delivery lifecycle of one event to one endpoint.

    Retries mutate the same row. `next_retry_at` is set exactly when the status is
    `retrying`, and `attempt_number` never exceeds `max_attempts`.
    """

    __tablename__ = "outgoing_webhook_log"

    webhook_id: Mapped[UUID] = mapped_column(
        ForeignKey("webhook_endpoint.id", ondelete="CASCADE"), nullable=False
    )
    event: Mapped[str] = mapped_column(String, nullable=False)
    payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    url: Mapped[str] = mapped_column(String, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WebhookDeliveryStatus.PENDING.value
    )
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    next_retry_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    http_status: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    response: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Epoch milliseconds
    created_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sent_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    delivered_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        Index("ix_outgoing_webhook_log_app", "app_id", "created_at_ms"),
        Index("ix_outgoing_webhook_log_webhook", "webhook_id"),
        Index("ix_outgoing_webhook_log_status", "status"),
        Index("ix_outgoing_webhook_log_event", "event"),
        Index("ix_outgoing_webhook_log_next_retry", "next_retry_at"),
    )
