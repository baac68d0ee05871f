"""Webhook endpoint schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from credibill.core.shared_models import WebhookEndpointStatus


class WebhookEndpointBase(BaseModel):
    """Base schema for WebhookEndpoint."""

    model_config = {"use_enum_values": True}

    url: str
    events: list[str] = Field(default_factory=list, description="Subscribed event names")
    status: WebhookEndpointStatus = WebhookEndpointStatus.ACTIVE
    secret: str
    description: Optional[str] = None


class WebhookEndpointCreate(WebhookEndpointBase):
    """Schema for creating a WebhookEndpoint."""

    organization_id: UUID
    app_id: UUID


class WebhookEndpointUpdate(BaseModel):
    """Schema for updating a WebhookEndpoint."""

    model_config = {"use_enum_values": True}

    url: Optional[str] = None
    events: Optional[list[str]] = None
    status: Optional[WebhookEndpointStatus] = None
    secret: Optional[str] = None
    description: Optional[str] = None


class WebhookEndpoint(WebhookEndpointBase):
    """Schema for a WebhookEndpoint as stored in the database."""

    model_config = {"from_attributes": True, "use_enum_values": True}

    id: UUID
    organization_id: UUID
    app_id: UUID
    created_at: datetime
    modified_at: datetime
