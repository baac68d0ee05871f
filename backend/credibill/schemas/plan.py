"""Plan schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PricingModel(str, Enum):
    """How a plan is priced."""

    FLAT = "flat"
    USAGE = "usage"
    HYBRID = "hybrid"


class PlanInterval(str, Enum):
    """Billing interval of a plan."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"


class PlanBase(BaseModel):
    """Base schema for Plan."""

    model_config = {"use_enum_values": True}

    name: str
    pricing_model: PricingModel = PricingModel.FLAT
    base_amount: Optional[int] = Field(None, ge=0, description="Smallest currency unit")
    currency: str = Field(..., min_length=3, max_length=3)
    interval: PlanInterval = PlanInterval.MONTHLY
    trial_days: Optional[int] = Field(None, ge=0)
    usage_metric: Optional[str] = Field(None, description="Metered metric, 'units' if unset")
    unit_price: Optional[int] = Field(None, ge=0, description="Price per billable unit")
    free_units: Optional[int] = Field(None, ge=0, description="Units included each period")
    status: str = "active"


class PlanCreate(PlanBase):
    """Schema for creating a Plan."""

    organization_id: UUID
    app_id: UUID


class PlanUpdate(BaseModel):
    """Schema for updating a Plan."""

    name: Optional[str] = None
    base_amount: Optional[int] = Field(None, ge=0)
    trial_days: Optional[int] = Field(None, ge=0)
    usage_metric: Optional[str] = None
    unit_price: Optional[int] = Field(None, ge=0)
    free_units: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None


class Plan(PlanBase):
    """Schema for a Plan as stored in the database."""

    model_config = {"from_attributes": True, "use_enum_values": True}

    id: UUID
    organization_id: UUID
    app_id: UUID
    created_at: datetime
    modified_at: datetime
