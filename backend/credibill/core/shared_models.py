"""Shared models for the backend."""

from enum import Enum


class AppStatus(str, Enum):
    """App status enum."""

    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status enum."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PENDING_PAYMENT = "pending_payment"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class InvoiceStatus(str, Enum):
    """Invoice status enum."""

    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    FAILED = "failed"
    VOID = "void"


class PaymentTransactionStatus(str, Enum):
    """Payment transaction status enum, mirrored from the payment provider."""

    PENDING = "pending"
    INITIATED = "initiated"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class WebhookEndpointStatus(str, Enum):
    """Outgoing webhook endpoint status enum."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class WebhookDeliveryStatus(str, Enum):
    """Outgoing webhook delivery log status enum."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    RETRYING = "retrying"
