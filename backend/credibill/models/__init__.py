"""Models for the application."""

from .app import App
from .customer import Customer
from .invoice import Invoice
from .organization import Organization
from .outgoing_webhook_log import OutgoingWebhookLog
from .payment_transaction import PaymentTransaction
from .plan import Plan
from .subscription import Subscription
from .usage_event import UsageEvent
from .webhook_endpoint import WebhookEndpoint

__all__ = [
    "App",
    "Customer",
    "Invoice",
    "Organization",
    "OutgoingWebhookLog",
    "PaymentTransaction",
    "Plan",
    "Subscription",
    "UsageEvent",
    "WebhookEndpoint",
]
