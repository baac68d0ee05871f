"""Integration tests for the sweep candidate queries."""

from credibill import crud
from credibill.platform.billing import sweep_queries
from credibill.platform.billing.invoice_service import generate_invoice
from tests.fixtures.billing import DAY, GRACE_PERIOD_DAYS, NOW, make_subscription, make_transaction


async def test_expired_trials(db_session, flat_plan, customer):
    """Only trialing subscriptions whose trial ended strictly before now are returned."""
    expired = await make_subscription(
        db_session, flat_plan, customer, status="trialing", trial_ends_at=NOW - 1
    )
    await make_subscription(db_session, flat_plan, customer, status="trialing", trial_ends_at=NOW)
    await make_subscription(db_session, flat_plan, customer, status="active", trial_ends_at=0)

    result = await sweep_queries.get_expired_trials(db_session, NOW)

    assert [s.id for s in result] == [expired.id]


async def test_due_subscriptions(db_session, flat_plan, customer):
    """Active subscriptions whose period ended are due for payment."""
    due = await make_subscription(db_session, flat_plan, customer, current_period_end=NOW)
    await make_subscription(db_session, flat_plan, customer, current_period_end=NOW + 1)
    await make_subscription(
        db_session, flat_plan, customer, status="paused", current_period_end=NOW - DAY
    )
    await make_subscription(db_session, flat_plan, customer)

    result = await sweep_queries.get_due_subscriptions(db_session, NOW)

    assert [s.id for s in result] == [due.id]


async def test_grace_period_expired(db_session, flat_plan, customer):
    """Deadline is inclusive; subscriptions without a period end are never candidates."""
    deadline_period_end = NOW - GRACE_PERIOD_DAYS * DAY
    past = await make_subscription(
        db_session, flat_plan, customer, current_period_end=deadline_period_end - 1
    )
    pending = await make_subscription(
        db_session,
        flat_plan,
        customer,
        status="pending_payment",
        current_period_end=deadline_period_end - DAY,
    )
    await make_subscription(db_session, flat_plan, customer, current_period_end=deadline_period_end)
    await make_subscription(db_session, flat_plan, customer, status="pending_payment")
    await make_subscription(
        db_session, flat_plan, customer, status="past_due", current_period_end=0
    )

    result = await sweep_queries.get_grace_period_expired_subscriptions(db_session, NOW)

    assert {s.id for s in result} == {past.id, pending.id}


async def test_grace_period_skips_app_without_grace_period(
    db_session, billing_app, flat_plan, customer, organization
):
    """A misconfigured app only removes its own subscriptions from the batch."""
    other_app = await crud.app.create(
        db_session, obj_in={"organization_id": organization.id, "name": "No grace"}
    )
    other_plan = await crud.plan.create(
        db_session,
        obj_in={
            "organization_id": organization.id,
            "app_id": other_app.id,
            "name": "Basic",
            "base_amount": 1000,
            "currency": "UGX",
        },
    )
    await make_subscription(db_session, other_plan, customer, current_period_end=0)
    included = await make_subscription(db_session, flat_plan, customer, current_period_end=0)

    result = await sweep_queries.get_grace_period_expired_subscriptions(db_session, NOW)

    assert [s.id for s in result] == [included.id]


async def test_needing_invoices_is_read_only_and_stops_once_invoiced(
    db_session, flat_plan, customer
):
    """The query has no side effect and an invoiced period never reappears."""
    subscription = await make_subscription(
        db_session,
        flat_plan,
        customer,
        current_period_start=NOW - 30 * DAY,
        current_period_end=NOW - DAY,
    )

    first = await sweep_queries.get_subscriptions_needing_invoices(db_session, NOW)
    second = await sweep_queries.get_subscriptions_needing_invoices(db_session, NOW)

    assert [(c.subscription.id, c.period_start, c.period_end) for c in first] == [
        (subscription.id, NOW - 30 * DAY, NOW - DAY)
    ]
    assert [(c.subscription.id, c.period_start, c.period_end) for c in second] == [
        (c.subscription.id, c.period_start, c.period_end) for c in first
    ]

    await generate_invoice(
        db_session, subscription, period_start=NOW - 30 * DAY, period_end=NOW - DAY, now=NOW
    )

    assert await sweep_queries.get_subscriptions_needing_invoices(db_session, NOW) == []
    assert await sweep_queries.get_subscriptions_needing_invoices(db_session, NOW + DAY) == []


async def test_needing_invoices_falls_back_to_start_date(db_session, flat_plan, customer):
    """Without a period start the period is taken to begin at the start date."""
    subscription = await make_subscription(
        db_session, flat_plan, customer, status="trialing", current_period_end=NOW
    )

    [candidate] = await sweep_queries.get_subscriptions_needing_invoices(db_session, NOW)

    assert candidate.period_start == subscription.start_date
    assert candidate.period_end == NOW


async def test_scheduled_cancellations(db_session, flat_plan, customer):
    """Flagged subscriptions whose period is over, in any cancellable status."""
    flagged = await make_subscription(
        db_session,
        flat_plan,
        customer,
        status="paused",
        cancel_at_period_end=True,
        current_period_end=NOW - 1,
    )
    await make_subscription(
        db_session, flat_plan, customer, cancel_at_period_end=True, current_period_end=NOW + 1
    )
    await make_subscription(
        db_session,
        flat_plan,
        customer,
        status="cancelled",
        cancel_at_period_end=True,
        current_period_end=0,
    )
    await make_subscription(db_session, flat_plan, customer, current_period_end=0)

    result = await sweep_queries.get_scheduled_cancellations(db_session, NOW)

    assert [s.id for s in result] == [flagged.id]


async def test_transaction_queries(db_session, customer):
    """Retryable failures are windowed and capped; expiry only affects open transactions."""
    retryable = await make_transaction(
        db_session, customer, status="failed", attempt_number=1, initiated_at=NOW - DAY
    )
    await make_transaction(
        db_session, customer, status="failed", attempt_number=3, initiated_at=NOW - DAY
    )
    await make_transaction(
        db_session, customer, status="failed", attempt_number=1, initiated_at=NOW - 8 * DAY
    )
    expired = await make_transaction(
        db_session, customer, status="initiated", expires_at=NOW - 1
    )
    await make_transaction(db_session, customer, status="pending", expires_at=NOW + 1)
    await make_transaction(db_session, customer, status="success", expires_at=NOW - 1)

    retry_candidates = await sweep_queries.get_retryable_transactions(db_session, NOW)
    expired_candidates = await sweep_queries.get_expired_transactions(db_session, NOW)

    assert [t.id for t in retry_candidates] == [retryable.id]
    assert [t.id for t in expired_candidates] == [expired.id]
