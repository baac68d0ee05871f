"""Organization schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class OrganizationBase(BaseModel):
    """Organization base schema."""

    name: str = Field(..., min_length=1, max_length=100, description="Organization name")
    description: Optional[str] = Field(None, max_length=500, description="Organization description")


class OrganizationCreate(OrganizationBase):
    """Organization creation schema."""

    pass


class OrganizationUpdate(BaseModel):
    """Organization update schema."""

    name: Optional[str] = None
    description: Optional[str] = None


class Organization(OrganizationBase):
    """Organization schema."""

    model_config = {"from_attributes": True}

    id: UUID
    created_at: datetime
    modified_at: datetime
