"""Invoice generation for subscription billing periods."""

import re
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud, schemas
from credibill.core.datetime_utils import MS_PER_DAY, ms_to_datetime
from credibill.core.exceptions import MissingConfigurationError, NotFoundException
from credibill.core.logging import LoggerConfigurator
from credibill.core.shared_models import InvoiceStatus
from credibill.models.invoice import Invoice
from credibill.models.plan import Plan
from credibill.models.subscription import Subscription
from credibill.platform.billing.usage_service import DEFAULT_USAGE_METRIC
from credibill.schemas.plan import PlanInterval, PricingModel

logger = LoggerConfigurator.configure_logger(__name__, prefix="[Invoices] ")

INTERVAL_LABELS = {
    PlanInterval.MONTHLY.value: "Monthly",
    PlanInterval.QUARTERLY.value: "Quarterly",
    PlanInterval.YEARLY.value: "Yearly",
    PlanInterval.ONE_TIME.value: "One-Time",
}

_INVOICE_NUMBER_PATTERN = re.compile(r"^INV-(\d{4})-(\d+)$")

METERED_PRICING_MODELS = (PricingModel.USAGE.value, PricingModel.HYBRID.value)


def _usage_line_item(plan: Plan, usage_quantity: int) -> schemas.InvoiceLineItem:
    metric = plan.usage_metric or DEFAULT_USAGE_METRIC
    unit_price = plan.unit_price or 0
    billable_units = max(0, usage_quantity - (plan.free_units or 0))
    return schemas.InvoiceLineItem(
        description=f"{plan.name} - Usage ({usage_quantity} {metric})",
        quantity=billable_units,
        unit_amount=unit_price,
        total_amount=billable_units * unit_price,
        type="usage",
    )


def build_line_items(plan: Plan, usage_quantity: int = 0) -> list[schemas.InvoiceLineItem]:
    """Line items for one period of a plan.

    Args:
        plan: The subscribed plan
        usage_quantity: Units of the plan's metric used in the period, free units included

    Returns:
        Flat plans get one plan line. Usage plans always get a usage line, billing the
        units above the free allowance. Hybrid plans get a base fee line plus a usage
        line when any units are billable.
    """
    base_amount = plan.base_amount or 0

    if plan.pricing_model == PricingModel.FLAT.value and plan.base_amount:
        label = INTERVAL_LABELS.get(plan.interval, plan.interval)
        return [
            schemas.InvoiceLineItem(
                description=f"{plan.name} - {label}",
                quantity=1,
                unit_amount=base_amount,
                total_amount=base_amount,
                type="plan",
            )
        ]

    if plan.pricing_model == PricingModel.USAGE.value:
        return [_usage_line_item(plan, usage_quantity)]

    if plan.pricing_model == PricingModel.HYBRID.value:
        line_items = [
            schemas.InvoiceLineItem(
                description=f"{plan.name} - Base Fee",
                quantity=1,
                unit_amount=base_amount,
                total_amount=base_amount,
                type="plan",
            )
        ]
        usage_line = _usage_line_item(plan, usage_quantity)
        if usage_line.quantity > 0:
            line_items.append(usage_line)
        return line_items

    return []


def next_invoice_number(latest: Optional[str], year: int) -> str:
    """Next number in the `INV-{year}-{sequence}` series, restarting each year."""
    sequence = 1
    if latest:
        match = _INVOICE_NUMBER_PATTERN.match(latest)
        if match and int(match.group(1)) == year:
            sequence = int(match.group(2)) + 1
    return f"INV-{year}-{sequence:03d}"


async def generate_invoice(
    db: AsyncSession,
    subscription: Subscription,
    *,
    period_start: int,
    period_end: int,
    now: int,
) -> Invoice:
    """Generate the invoice of a subscription for one billing period.

    If the period already has an invoice it is returned unchanged, so calling this
    twice for the same period never bills twice.

    Args:
        db: Database session
        subscription: The subscription to bill
        period_start: Period start in epoch milliseconds
        period_end: Period end in epoch milliseconds
        now: Generation time in epoch milliseconds

    Returns:
        The new or already existing invoice

    Raises:
        NotFoundException: If the plan, customer or app of the subscription is missing.
        MissingConfigurationError: If the app has no grace period.
    """
    existing = await crud.invoice.get_for_period(
        db,
        subscription_id=subscription.id,
        period_start=period_start,
        period_end=period_end,
    )
    if existing is not None:
        logger.debug(f"Invoice {existing.invoice_number} already covers this period")
        return existing

    plan = await crud.plan.get(db, id=subscription.plan_id)
    if plan is None:
        raise NotFoundException(f"Plan {subscription.plan_id} not found")
    customer = await crud.customer.get(db, id=subscription.customer_id)
    if customer is None:
        raise NotFoundException(f"Customer {subscription.customer_id} not found")
    app = await crud.app.get(db, id=subscription.app_id)
    if app is None:
        raise NotFoundException(f"App {subscription.app_id} not found")
    if app.grace_period is None:
        raise MissingConfigurationError("grace_period", f"App {app.id} has no grace period")

    usage_quantity = 0
    if plan.pricing_model in METERED_PRICING_MODELS:
        usage_quantity = await crud.usage_event.sum_quantity(
            db,
            subscription_id=subscription.id,
            metric=plan.usage_metric or DEFAULT_USAGE_METRIC,
            start_time=period_start,
            end_time=period_end,
        )

    line_items = build_line_items(plan, usage_quantity)
    year = ms_to_datetime(now).year
    latest = await crud.invoice.get_latest_number(db, app_id=app.id, prefix=f"INV-{year}-")

    invoice_in = schemas.InvoiceCreate(
        organization_id=subscription.organization_id,
        app_id=subscription.app_id,
        customer_id=subscription.customer_id,
        subscription_id=subscription.id,
        invoice_number=next_invoice_number(latest, year),
        currency=plan.currency,
        amount_due=sum(item.total_amount for item in line_items),
        amount_paid=0,
        status=InvoiceStatus.OPEN,
        period_start=period_start,
        period_end=period_end,
        due_date=period_end + app.grace_period * MS_PER_DAY,
        line_items=line_items,
        invoice_metadata={
            "plan_name": plan.name,
            "customer_email": customer.email,
            "generated_at": now,
            "auto_generated": True,
        },
    )
    invoice = await crud.invoice.create(db, obj_in=invoice_in)

    logger.with_context(
        subscription_id=str(subscription.id), invoice_id=str(invoice.id)
    ).info(
        f"Generated invoice {invoice.invoice_number} for {invoice.amount_due} {invoice.currency}"
    )
    return invoice
