# flake8: noqa: F401
"""Schemas for the application."""

from .app import App, AppCreate, AppUpdate
from .customer import Customer, CustomerCreate, CustomerUpdate
from .invoice import Invoice, InvoiceCreate, InvoiceLineItem, InvoiceUpdate
from .organization import Organization, OrganizationCreate, OrganizationUpdate
from .outgoing_webhook_log import (
    OutgoingWebhookLog,
    OutgoingWebhookLogCreate,
    OutgoingWebhookLogUpdate,
    WebhookDeliveryStats,
)
from .payment_transaction import (
    PaymentTransaction,
    PaymentTransactionCreate,
    PaymentTransactionUpdate,
)
from .plan import Plan, PlanCreate, PlanInterval, PlanUpdate, PricingModel
from .subscription import (
    Subscription,
    SubscriptionCreate,
    SubscriptionStatusView,
    SubscriptionUpdate,
)
from .sweep import SweepResult
from .usage_event import (
    UsageEvent,
    UsageEventCreate,
    UsageEventRecord,
    UsageEventRecorded,
    UsageEventUpdate,
    UsageSummary,
)
from .webhook_endpoint import WebhookEndpoint, WebhookEndpointCreate, WebhookEndpointUpdate
