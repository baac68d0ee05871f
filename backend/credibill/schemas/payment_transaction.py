"""Payment transaction schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from credibill.core.shared_models import PaymentTransactionStatus


class PaymentTransactionBase(BaseModel):
    """Base schema for PaymentTransaction. Timestamps are epoch milliseconds."""

    model_config = {"use_enum_values": True}

    amount: int
    currency: str
    status: PaymentTransactionStatus = PaymentTransactionStatus.PENDING
    provider_transaction_id: Optional[str] = None
    provider_reference: Optional[str] = None
    payment_method: Optional[str] = None
    failure_reason: Optional[str] = None
    failure_code: Optional[str] = None
    attempt_number: int = 1
    is_retry: bool = False
    initiated_at: int
    completed_at: Optional[int] = None
    expires_at: Optional[int] = None


class PaymentTransactionCreate(PaymentTransactionBase):
    """Schema for creating a PaymentTransaction."""

    organization_id: UUID
    app_id: UUID
    customer_id: UUID
    subscription_id: Optional[UUID] = None
    invoice_id: Optional[UUID] = None


class PaymentTransactionUpdate(BaseModel):
    """Schema for updating a PaymentTransaction."""

    model_config = {"use_enum_values": True}

    status: Optional[PaymentTransactionStatus] = None
    failure_reason: Optional[str] = None
    failure_code: Optional[str] = None
    completed_at: Optional[int] = None


class PaymentTransaction(PaymentTransactionBase):
    """Schema for a PaymentTransaction as stored in the database."""

    model_config = {"from_attributes": True, "use_enum_values": True}

    id: UUID
    organization_id: UUID
    app_id: UUID
    customer_id: UUID
    subscription_id: Optional[UUID] = None
    invoice_id: Optional[UUID] = None
    created_at: datetime
    modified_at: datetime
