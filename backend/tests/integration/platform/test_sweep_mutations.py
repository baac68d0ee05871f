"""Integration tests for the single-row sweep mutations."""

import uuid

import pytest

from credibill import crud
from credibill.platform.billing import sweep_mutations
from tests.fixtures.billing import NOW, make_subscription, make_transaction


async def test_mark_trial_expired(db_session, flat_plan, customer):
    """Trial expiry awaits the first payment and invoices it at the expiry instant."""
    subscription = await make_subscription(
        db_session, flat_plan, customer, status="trialing", trial_ends_at=NOW - 1
    )

    assert await sweep_mutations.mark_trial_expired(db_session, subscription.id, NOW) is True

    refreshed = await crud.subscription.get(db_session, id=subscription.id)
    assert refreshed.status == "pending_payment"
    assert refreshed.current_period_start is None
    assert refreshed.current_period_end is None

    invoice = await crud.invoice.get_for_period(
        db_session, subscription_id=subscription.id, period_start=NOW, period_end=NOW
    )
    assert invoice is not None
    assert invoice.amount_due == 50_000


async def test_mark_trial_expired_is_idempotent(db_session, flat_plan, customer):
    """A second run finds the subscription no longer trialing."""
    subscription = await make_subscription(
        db_session, flat_plan, customer, status="trialing", trial_ends_at=NOW - 1
    )

    assert await sweep_mutations.mark_trial_expired(db_session, subscription.id, NOW) is True
    assert await sweep_mutations.mark_trial_expired(db_session, subscription.id, NOW) is False
    assert len(await crud.invoice.get_multi(db_session)) == 1


async def test_mark_trial_expired_without_grace_period(
    db_session, billing_app, flat_plan, customer
):
    """The status change stands even when the first invoice cannot be generated."""
    await crud.app.update(db_session, db_obj=billing_app, obj_in={"grace_period": None})
    subscription = await make_subscription(
        db_session, flat_plan, customer, status="trialing", trial_ends_at=NOW - 1
    )

    assert await sweep_mutations.mark_trial_expired(db_session, subscription.id, NOW) is True

    refreshed = await crud.subscription.get(db_session, id=subscription.id)
    assert refreshed.status == "pending_payment"
    assert await crud.invoice.get_multi(db_session) == []


async def test_missing_rows_are_not_applied(db_session):
    """Mutations report unknown ids instead of raising."""
    missing = uuid.uuid4()

    assert await sweep_mutations.mark_trial_expired(db_session, missing, NOW) is False
    assert await sweep_mutations.mark_transaction_expired(db_session, missing, NOW) is False
    assert await sweep_mutations.mark_subscription_past_due(db_session, missing) is False
    assert await sweep_mutations.cancel_subscription_at_period_end(db_session, missing) is False


async def test_mark_transaction_expired(db_session, customer):
    """Open transactions fail with an expiry reason; settled ones are left alone."""
    open_tx = await make_transaction(db_session, customer, status="initiated")
    settled_tx = await make_transaction(db_session, customer, status="success")

    assert await sweep_mutations.mark_transaction_expired(db_session, open_tx.id, NOW) is True
    assert await sweep_mutations.mark_transaction_expired(db_session, settled_tx.id, NOW) is False

    expired = await crud.payment_transaction.get(db_session, id=open_tx.id)
    assert expired.status == "failed"
    assert expired.failure_reason == "Transaction expired"
    assert expired.failure_code == "EXPIRED"
    assert expired.completed_at == NOW
    assert (await crud.payment_transaction.get(db_session, id=settled_tx.id)).status == "success"


async def test_mark_subscription_past_due(db_session, flat_plan, customer):
    """Only active and pending_payment subscriptions become past due."""
    active = await make_subscription(db_session, flat_plan, customer, status="active")
    pending = await make_subscription(db_session, flat_plan, customer, status="pending_payment")
    cancelled = await make_subscription(db_session, flat_plan, customer, status="cancelled")

    assert await sweep_mutations.mark_subscription_past_due(db_session, active.id) is True
    assert await sweep_mutations.mark_subscription_past_due(db_session, pending.id) is True
    assert await sweep_mutations.mark_subscription_past_due(db_session, cancelled.id) is False
    assert await sweep_mutations.mark_subscription_past_due(db_session, active.id) is False

    assert (await crud.subscription.get(db_session, id=cancelled.id)).status == "cancelled"


async def test_cancel_subscription_at_period_end(db_session, flat_plan, customer):
    """Cancelling clears the flag so the subscription is not picked up again."""
    subscription = await make_subscription(
        db_session, flat_plan, customer, cancel_at_period_end=True, current_period_end=NOW - 1
    )

    assert await sweep_mutations.cancel_subscription_at_period_end(
        db_session, subscription.id
    ) is True
    assert await sweep_mutations.cancel_subscription_at_period_end(
        db_session, subscription.id
    ) is False

    refreshed = await crud.subscription.get(db_session, id=subscription.id)
    assert refreshed.status == "cancelled"
    assert refreshed.cancel_at_period_end is False


@pytest.mark.parametrize("status", ["past_due", "expired"])
async def test_cancel_at_period_end_skips_other_statuses(db_session, flat_plan, customer, status):
    """Only statuses that can be cancelled at period end are cancelled."""
    subscription = await make_subscription(
        db_session,
        flat_plan,
        customer,
        status=status,
        cancel_at_period_end=True,
        current_period_end=NOW - 1,
    )

    assert await sweep_mutations.cancel_subscription_at_period_end(
        db_session, subscription.id
    ) is False

    refreshed = await crud.subscription.get(db_session, id=subscription.id)
    assert refreshed.status == status
    assert refreshed.cancel_at_period_end is True


async def test_cancel_at_period_end_respects_withdrawn_flag(db_session, flat_plan, customer):
    """A flag cleared after the scan ran leaves the subscription active."""
    subscription = await make_subscription(
        db_session, flat_plan, customer, cancel_at_period_end=True, current_period_end=NOW - 1
    )
    await crud.subscription.update(
        db_session, db_obj=subscription, obj_in={"cancel_at_period_end": False}
    )

    assert await sweep_mutations.cancel_subscription_at_period_end(
        db_session, subscription.id
    ) is False
    assert (await crud.subscription.get(db_session, id=subscription.id)).status == "active"
