"""Outgoing webhook log schemas."""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from credibill.core.shared_models import WebhookDeliveryStatus


class OutgoingWebhookLogBase(BaseModel):
    """Base schema for OutgoingWebhookLog."""

    model_config = {"use_enum_values": True}

    event: str
    payload: Any = None
    url: str


class OutgoingWebhookLogCreate(OutgoingWebhookLogBase):
    """Schema for creating an OutgoingWebhookLog."""

    organization_id: UUID
    app_id: UUID
    webhook_id: UUID


class OutgoingWebhookLogUpdate(BaseModel):
    """Schema for updating an OutgoingWebhookLog."""

    model_config = {"use_enum_values": True}

    status: Optional[WebhookDeliveryStatus] = None
    attempt_number: Optional[int] = None
    next_retry_at: Optional[int] = None
    http_status: Optional[int] = None
    response: Any = None
    error: Optional[str] = None
    sent_at: Optional[int] = None
    delivered_at: Optional[int] = None


class OutgoingWebhookLog(OutgoingWebhookLogBase):
    """Schema for an OutgoingWebhookLog as stored in the database."""

    model_config = {"from_attributes": True, "use_enum_values": True}

    id: UUID
    organization_id: UUID
    app_id: UUID
    webhook_id: UUID
    status: WebhookDeliveryStatus
    attempt_number: int
    max_attempts: int
    next_retry_at: Optional[int] = None
    http_status: Optional[int] = None
    response: Any = None
    error: Optional[str] = None
    created_at_ms: int
    sent_at: Optional[int] = None
    delivered_at: Optional[int] = None


class WebhookDeliveryStats(BaseModel):
    """Delivery counts for an app since a point in time."""

    since: int = Field(..., description="Window start in epoch milliseconds")
    total: int = 0
    delivered: int = 0
    failed: int = 0
    pending: int = 0
    retrying: int = 0
