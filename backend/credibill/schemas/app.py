"""App schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from credibill.core.shared_models import AppStatus


class AppBase(BaseModel):
    """Base schema for App."""

    model_config = {"use_enum_values": True}

    name: str = Field(..., min_length=1, max_length=100, description="App name")
    status: AppStatus = Field(AppStatus.ACTIVE, description="App status")
    grace_period: Optional[int] = Field(
        None, ge=0, description="Days after a period ends before the subscription is past due"
    )
    default_currency: str = Field("USD", min_length=3, max_length=3)
    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None


class AppCreate(AppBase):
    """Schema for creating an App."""

    organization_id: UUID


class AppUpdate(BaseModel):
    """Schema for updating an App."""

    model_config = {"use_enum_values": True}

    name: Optional[str] = None
    status: Optional[AppStatus] = None
    grace_period: Optional[int] = Field(None, ge=0)
    default_currency: Optional[str] = None
    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None


class App(AppBase):
    """Schema for an App as stored in the database."""

    model_config = {"from_attributes": True, "use_enum_values": True}

    id: UUID
    organization_id: UUID
    created_at: datetime
    modified_at: datetime
