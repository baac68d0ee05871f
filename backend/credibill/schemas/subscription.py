"""Subscription schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from credibill.core.shared_models import SubscriptionStatus


class SubscriptionBase(BaseModel):
    """Base schema for Subscription. Timestamps are epoch milliseconds."""

    model_config = {"use_enum_values": True}

    status: SubscriptionStatus
    start_date: int
    trial_ends_at: Optional[int] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    next_payment_date: Optional[int] = None
    last_payment_date: Optional[int] = None
    failed_payment_attempts: int = 0
    plan_snapshot: Optional[dict[str, Any]] = None


class SubscriptionCreate(SubscriptionBase):
    """Schema for creating a Subscription."""

    organization_id: UUID
    app_id: UUID
    customer_id: UUID
    plan_id: UUID


class SubscriptionUpdate(BaseModel):
    """Schema for updating a Subscription."""

    model_config = {"use_enum_values": True}

    status: Optional[SubscriptionStatus] = None
    trial_ends_at: Optional[int] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: Optional[bool] = None
    next_payment_date: Optional[int] = None
    last_payment_date: Optional[int] = None
    failed_payment_attempts: Optional[int] = None


class Subscription(SubscriptionBase):
    """Schema for a Subscription as stored in the database."""

    model_config = {"from_attributes": True, "use_enum_values": True}

    id: UUID
    organization_id: UUID
    app_id: UUID
    customer_id: UUID
    plan_id: UUID
    created_at: datetime
    modified_at: datetime


class SubscriptionStatusView(BaseModel):
    """Resolved status of a subscription at a point in time."""

    model_config = {"use_enum_values": True}

    subscription_id: UUID
    now: int = Field(..., description="Reference time in epoch milliseconds")
    stored_status: SubscriptionStatus
    computed_status: SubscriptionStatus
    description: str
    has_active_access: bool
    can_be_cancelled: bool
    can_be_paused: bool
    can_be_resumed: bool
    grace_deadline: Optional[int] = None
