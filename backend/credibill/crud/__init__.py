"""CRUD operations for the application."""

from .crud_app import app
from .crud_customer import customer
from .crud_invoice import invoice
from .crud_organization import organization
from .crud_outgoing_webhook_log import outgoing_webhook_log
from .crud_payment_transaction import payment_transaction
from .crud_plan import plan
from .crud_subscription import subscription
from .crud_usage_event import usage_event
from .crud_webhook_endpoint import webhook_endpoint

__all__ = [
    "app",
    "customer",
    "invoice",
    "organization",
    "outgoing_webhook_log",
    "payment_transaction",
    "plan",
    "subscription",
    "usage_event",
    "webhook_endpoint",
]
