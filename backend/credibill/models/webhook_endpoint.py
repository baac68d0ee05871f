"""Webhook endpoint model."""

from typing import Optional

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from credibill.core.shared_models import WebhookEndpointStatus
from credibill.models._base import AppScopedBase


class WebhookEndpoint(AppScopedBase):
    """Outgoing webhook subscription configured by an app."""

    __tablename__ = "webhook_endpoint"

    url: Mapped[str] = mapped_column(String, nullable=False)
    events: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WebhookEndpointStatus.ACTIVE.value
    )
    secret: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
