"""Usage event schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class UsageEventBase(BaseModel):
    """Base schema for UsageEvent. Timestamps are epoch milliseconds."""

    quantity: int = Field(..., gt=0, description="Units consumed")
    metric: str = Field(..., min_length=1, description="e.g. api_calls, sms_sent")
    event_id: Optional[str] = Field(None, description="External ID used for deduplication")


class UsageEventRecord(UsageEventBase):
    """Usage reported for a subscription."""

    timestamp: Optional[int] = Field(
        None, ge=0, description="When the usage occurred, defaults to the reference time"
    )
    usage_metadata: Optional[dict[str, Any]] = None


class UsageEventCreate(UsageEventBase):
    """Schema for creating a UsageEvent."""

    organization_id: UUID
    app_id: UUID
    customer_id: UUID
    subscription_id: UUID
    timestamp: int
    usage_metadata: Optional[dict[str, Any]] = None


class UsageEventUpdate(BaseModel):
    """Usage events are immutable once recorded."""


class UsageEvent(UsageEventBase):
    """Schema for a UsageEvent as stored in the database."""

    model_config = {"from_attributes": True}

    id: UUID
    organization_id: UUID
    app_id: UUID
    customer_id: UUID
    subscription_id: UUID
    timestamp: int
    usage_metadata: Optional[dict[str, Any]] = None
    created_at: datetime
    modified_at: datetime


class UsageEventRecorded(BaseModel):
    """Result of recording a usage event."""

    usage_event_id: UUID
    duplicate: bool = Field(..., description="True if the event_id was already recorded")


class UsageSummary(BaseModel):
    """Usage events of a subscription and their totals per metric."""

    subscription_id: UUID
    events: list[UsageEvent]
    usage_by_metric: dict[str, int]
    total_events: int
