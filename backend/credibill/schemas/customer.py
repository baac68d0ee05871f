"""Customer schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class CustomerBase(BaseModel):
    """Base schema for Customer."""

    email: str
    name: Optional[str] = None
    external_customer_id: Optional[str] = None


class CustomerCreate(CustomerBase):
    """Schema for creating a Customer."""

    organization_id: UUID
    app_id: UUID


class CustomerUpdate(BaseModel):
    """Schema for updating a Customer."""

    email: Optional[str] = None
    name: Optional[str] = None
    external_customer_id: Optional[str] = None


class Customer(CustomerBase):
    """Schema for a Customer as stored in the database."""

    model_config = {"from_attributes": True}

    id: UUID
    organization_id: UUID
    app_id: UUID
    created_at: datetime
    modified_at: datetime
