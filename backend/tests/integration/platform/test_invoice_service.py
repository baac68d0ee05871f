"""Integration tests for invoice generation."""

import pytest

from credibill import crud
from credibill.core.exceptions import MissingConfigurationError, NotFoundException
from credibill.models.plan import Plan
from credibill.platform.billing.invoice_service import (
    build_line_items,
    generate_invoice,
    next_invoice_number,
)
from tests.fixtures.billing import (
    DAY,
    GRACE_PERIOD_DAYS,
    NOW,
    make_plan,
    make_subscription,
    make_usage_event,
)


async def test_flat_plan_invoice(db_session, flat_plan, customer):
    """A flat plan bills its base amount once, due after the grace period."""
    subscription = await make_subscription(db_session, flat_plan, customer)

    invoice = await generate_invoice(
        db_session, subscription, period_start=NOW - 30 * DAY, period_end=NOW, now=NOW
    )

    assert invoice.invoice_number == "INV-2025-001"
    assert invoice.status == "open"
    assert invoice.currency == "UGX"
    assert invoice.amount_due == 50_000
    assert invoice.amount_paid == 0
    assert invoice.due_date == NOW + GRACE_PERIOD_DAYS * DAY
    assert invoice.line_items == [
        {
            "description": "Pro - Monthly",
            "quantity": 1,
            "unit_amount": 50_000,
            "total_amount": 50_000,
            "type": "plan",
        }
    ]
    assert invoice.invoice_metadata["customer_email"] == "jane@example.com"


async def test_same_period_returns_existing_invoice(db_session, flat_plan, customer):
    """Generating twice for one period never bills twice."""
    subscription = await make_subscription(db_session, flat_plan, customer)

    first = await generate_invoice(
        db_session, subscription, period_start=NOW - DAY, period_end=NOW, now=NOW
    )
    second = await generate_invoice(
        db_session, subscription, period_start=NOW - DAY, period_end=NOW, now=NOW + 1
    )

    assert second.id == first.id
    assert len(await crud.invoice.get_multi(db_session)) == 1


async def test_numbers_continue_within_app(db_session, flat_plan, customer):
    """Each new period gets the next number of the year."""
    subscription = await make_subscription(db_session, flat_plan, customer)

    numbers = []
    for i in range(3):
        invoice = await generate_invoice(
            db_session,
            subscription,
            period_start=NOW + i * DAY,
            period_end=NOW + (i + 1) * DAY,
            now=NOW,
        )
        numbers.append(invoice.invoice_number)

    assert numbers == ["INV-2025-001", "INV-2025-002", "INV-2025-003"]


async def test_usage_plan_bills_units_above_free_allowance(db_session, billing_app, customer):
    """Only the plan's metric inside the period counts, both bounds included."""
    plan = await make_plan(
        db_session, billing_app, usage_metric="api_calls", unit_price=10, free_units=100
    )
    subscription = await make_subscription(db_session, plan, customer)
    await make_usage_event(db_session, subscription, 80, "api_calls", timestamp=NOW - DAY)
    await make_usage_event(db_session, subscription, 70, "api_calls", timestamp=NOW - 10)
    await make_usage_event(db_session, subscription, 5, "api_calls", timestamp=NOW)
    await make_usage_event(db_session, subscription, 50, "sms_sent", timestamp=NOW - 10)
    await make_usage_event(db_session, subscription, 40, "api_calls", timestamp=NOW - 2 * DAY)

    invoice = await generate_invoice(
        db_session, subscription, period_start=NOW - DAY, period_end=NOW, now=NOW
    )

    assert invoice.line_items == [
        {
            "description": "Metered - Usage (155 api_calls)",
            "quantity": 55,
            "unit_amount": 10,
            "total_amount": 550,
            "type": "usage",
        }
    ]
    assert invoice.amount_due == 550


async def test_usage_plan_within_free_units_bills_nothing(db_session, billing_app, customer):
    """The usage line is kept at zero and the metric defaults to units."""
    plan = await make_plan(db_session, billing_app, free_units=50)
    subscription = await make_subscription(db_session, plan, customer)
    await make_usage_event(db_session, subscription, 30)

    invoice = await generate_invoice(
        db_session, subscription, period_start=NOW - DAY, period_end=NOW, now=NOW
    )

    assert [(item["description"], item["quantity"]) for item in invoice.line_items] == [
        ("Metered - Usage (30 units)", 0)
    ]
    assert invoice.amount_due == 0


async def test_hybrid_plan_adds_billable_usage(db_session, billing_app, customer):
    """Hybrid plans bill the base fee plus units above the allowance."""
    plan = await make_plan(
        db_session,
        billing_app,
        name="Scale",
        pricing_model="hybrid",
        base_amount=20_000,
        unit_price=100,
        free_units=10,
    )
    subscription = await make_subscription(db_session, plan, customer)
    await make_usage_event(db_session, subscription, 25, timestamp=NOW - 1)

    invoice = await generate_invoice(
        db_session, subscription, period_start=NOW - DAY, period_end=NOW, now=NOW
    )

    assert [item["description"] for item in invoice.line_items] == [
        "Scale - Base Fee",
        "Scale - Usage (25 units)",
    ]
    assert invoice.line_items[1]["total_amount"] == 1_500
    assert invoice.amount_due == 21_500


async def test_hybrid_plan_without_billable_usage(db_session, billing_app, customer):
    """Usage inside the allowance adds no line to a hybrid invoice."""
    plan = await make_plan(
        db_session,
        billing_app,
        name="Scale",
        pricing_model="hybrid",
        base_amount=20_000,
        free_units=10,
    )
    subscription = await make_subscription(db_session, plan, customer)
    await make_usage_event(db_session, subscription, 10, timestamp=NOW - 1)

    invoice = await generate_invoice(
        db_session, subscription, period_start=NOW - DAY, period_end=NOW, now=NOW
    )

    assert [item["description"] for item in invoice.line_items] == ["Scale - Base Fee"]
    assert invoice.amount_due == 20_000


async def test_missing_grace_period_raises(db_session, billing_app, flat_plan, customer):
    """An app without a grace period cannot compute a due date."""
    await crud.app.update(db_session, db_obj=billing_app, obj_in={"grace_period": None})
    subscription = await make_subscription(db_session, flat_plan, customer)

    with pytest.raises(MissingConfigurationError) as exc_info:
        await generate_invoice(
            db_session, subscription, period_start=NOW - DAY, period_end=NOW, now=NOW
        )

    assert exc_info.value.field_name == "grace_period"


async def test_missing_plan_raises(db_session, flat_plan, customer):
    """A subscription whose plan is gone cannot be invoiced."""
    subscription = await make_subscription(db_session, flat_plan, customer)
    await crud.plan.remove(db_session, id=flat_plan.id)

    with pytest.raises(NotFoundException):
        await generate_invoice(
            db_session, subscription, period_start=NOW - DAY, period_end=NOW, now=NOW
        )


@pytest.mark.unit
@pytest.mark.parametrize(
    "latest,year,expected",
    [
        (None, 2025, "INV-2025-001"),
        ("INV-2025-009", 2025, "INV-2025-010"),
        ("INV-2025-999", 2025, "INV-2025-1000"),
        ("INV-2024-042", 2025, "INV-2025-001"),
        ("legacy-17", 2025, "INV-2025-001"),
    ],
)
def test_next_invoice_number(latest, year, expected):
    """Sequences restart every year and grow past three digits."""
    assert next_invoice_number(latest, year) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "pricing_model,base_amount,usage_quantity,expected",
    [
        ("flat", 5_000, 999, [("plan", 1, 5_000)]),
        ("flat", None, 0, []),
        ("usage", None, 0, [("usage", 0, 0)]),
        ("usage", None, 12, [("usage", 7, 14)]),
        ("hybrid", 5_000, 5, [("plan", 1, 5_000)]),
        ("hybrid", 5_000, 8, [("plan", 1, 5_000), ("usage", 3, 6)]),
    ],
)
def test_build_line_items(pricing_model, base_amount, usage_quantity, expected):
    """Five free units at 2 each; flat plans ignore usage."""
    plan = Plan(
        name="Plan",
        pricing_model=pricing_model,
        base_amount=base_amount,
        currency="UGX",
        interval="monthly",
        unit_price=2,
        free_units=5,
    )

    items = build_line_items(plan, usage_quantity)

    assert [(i.type, i.quantity, i.total_amount) for i in items] == expected
