"""Outgoing webhook event names and payload builders."""

from enum import Enum
from typing import Any
from uuid import UUID

from credibill.models.invoice import Invoice
from credibill.models.subscription import Subscription


class WebhookEvent(str, Enum):
    """Events an app can subscribe its webhook endpoints to."""

    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_ACTIVATED = "subscription.activated"
    SUBSCRIPTION_RENEWED = "subscription.renewed"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"
    SUBSCRIPTION_TRIAL_EXPIRED = "subscription.trial_expired"
    SUBSCRIPTION_PAST_DUE = "subscription.past_due"
    PAYMENT_DUE = "payment.due"
    PAYMENT_SUCCEEDED = "payment.succeeded"
    PAYMENT_FAILED = "payment.failed"
    INVOICE_CREATED = "invoice.created"
    INVOICE_PAID = "invoice.paid"


def build_envelope(event: str, data: dict[str, Any], app_id: UUID, timestamp: int) -> dict:
    """Wrap event data in the body that is posted to endpoints."""
    return {
        "event": event,
        "data": data,
        "timestamp": timestamp,
        "app_id": str(app_id),
    }


def subscription_data(subscription: Subscription) -> dict[str, Any]:
    """Common subscription fields carried by subscription events."""
    return {
        "subscription_id": str(subscription.id),
        "customer_id": str(subscription.customer_id),
        "plan_id": str(subscription.plan_id),
        "status": subscription.status,
        "current_period_start": subscription.current_period_start,
        "current_period_end": subscription.current_period_end,
        "cancel_at_period_end": subscription.cancel_at_period_end,
    }


def trial_expired_data(subscription: Subscription) -> dict[str, Any]:
    """Data of a subscription.trial_expired event."""
    return {
        "subscription_id": str(subscription.id),
        "customer_id": str(subscription.customer_id),
        "trial_ended_at": subscription.trial_ends_at,
        "next_payment_due": subscription.next_payment_date,
    }


def payment_due_data(subscription: Subscription) -> dict[str, Any]:
    """Data of a payment.due event, priced from the plan snapshot."""
    snapshot = subscription.plan_snapshot or {}
    return {
        "subscription_id": str(subscription.id),
        "customer_id": str(subscription.customer_id),
        "amount_due": snapshot.get("base_amount") or 0,
        "currency": snapshot.get("currency") or "USD",
        "due_date": subscription.next_payment_date,
        "billing_period": {
            "start": subscription.current_period_start,
            "end": subscription.current_period_end,
        },
    }


def invoice_data(invoice: Invoice) -> dict[str, Any]:
    """Data of invoice events."""
    return {
        "invoice_id": str(invoice.id),
        "invoice_number": invoice.invoice_number,
        "subscription_id": str(invoice.subscription_id),
        "customer_id": str(invoice.customer_id),
        "amount_due": invoice.amount_due,
        "currency": invoice.currency,
        "status": invoice.status,
        "period_start": invoice.period_start,
        "period_end": invoice.period_end,
        "due_date": invoice.due_date,
    }
