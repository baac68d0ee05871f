"""Invoice schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from credibill.core.shared_models import InvoiceStatus


class InvoiceLineItem(BaseModel):
    """A single invoice line. Amounts are in the smallest currency unit."""

    description: str
    quantity: int
    unit_amount: int
    total_amount: int
    type: str = Field("plan", description="plan, usage or one_time")


class InvoiceBase(BaseModel):
    """Base schema for Invoice."""

    model_config = {"use_enum_values": True}

    invoice_number: str
    currency: str
    amount_due: int
    amount_paid: int = 0
    status: InvoiceStatus = InvoiceStatus.OPEN
    period_start: int
    period_end: int
    due_date: Optional[int] = None
    line_items: list[InvoiceLineItem] = Field(default_factory=list)
    invoice_metadata: Optional[dict[str, Any]] = None


class InvoiceCreate(InvoiceBase):
    """Schema for creating an Invoice."""

    organization_id: UUID
    app_id: UUID
    customer_id: UUID
    subscription_id: UUID


class InvoiceUpdate(BaseModel):
    """Schema for updating an Invoice."""

    model_config = {"use_enum_values": True}

    amount_paid: Optional[int] = None
    status: Optional[InvoiceStatus] = None
    due_date: Optional[int] = None


class Invoice(InvoiceBase):
    """Schema for an Invoice as stored in the database."""

    model_config = {"from_attributes": True, "use_enum_values": True}

    id: UUID
    organization_id: UUID
    app_id: UUID
    customer_id: UUID
    subscription_id: UUID
    created_at: datetime
    modified_at: datetime
