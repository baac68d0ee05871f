"""Integration tests for the scheduled billing sweeps."""

import httpx
import pytest

from credibill import crud
from credibill.platform.billing import sweep_handlers, sweep_mutations
from credibill.platform.webhooks.dispatcher import WebhookDispatcher
from credibill.platform.webhooks.retry_policy import RetryPolicy
from credibill.platform.webhooks.sender import WebhookSender
from tests.fixtures.billing import (
    DAY,
    GRACE_PERIOD_DAYS,
    NOW,
    make_endpoint,
    make_log,
    make_subscription,
    make_transaction,
)


@pytest.fixture
def delivered_requests(monkeypatch) -> list[httpx.Request]:
    """Route sweep webhooks to a mock endpoint that accepts everything."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    dispatcher = WebhookDispatcher(
        sender=WebhookSender(transport=httpx.MockTransport(handler), timeout=5),
        retry_policy=RetryPolicy(),
    )
    monkeypatch.setattr(sweep_handlers, "webhook_dispatcher", dispatcher)
    return requests


def _events(requests: list[httpx.Request]) -> list[str]:
    return [request.headers["X-Webhook-Event"] for request in requests]


async def test_trial_expirations(db_session, billing_app, flat_plan, customer, delivered_requests):
    """Expired trials move to pending_payment, get a first invoice and notify once."""
    await make_endpoint(db_session, billing_app, events=["subscription.trial_expired"])
    subscription = await make_subscription(
        db_session, flat_plan, customer, status="trialing", trial_ends_at=NOW - 1
    )

    result = await sweep_handlers.process_trial_expirations(db_session, NOW)
    rerun = await sweep_handlers.process_trial_expirations(db_session, NOW)

    assert (result.processed, result.succeeded, result.failed) == (1, 1, 0)
    assert rerun.processed == 0
    assert _events(delivered_requests) == ["subscription.trial_expired"]
    assert (await crud.subscription.get(db_session, id=subscription.id)).status == (
        "pending_payment"
    )
    [log] = await crud.outgoing_webhook_log.get_recent(db_session, app_id=billing_app.id)
    assert log.payload["data"]["trial_ended_at"] == NOW - 1


async def test_grace_period_failure_is_isolated(
    db_session, billing_app, flat_plan, customer, delivered_requests, monkeypatch
):
    """One failing subscription is counted and the rest of the batch still runs."""
    await make_endpoint(db_session, billing_app, events=["subscription.past_due"])
    broken = await make_subscription(db_session, flat_plan, customer, current_period_end=0)
    healthy = await make_subscription(db_session, flat_plan, customer, current_period_end=0)
    broken_id, healthy_id = broken.id, healthy.id
    original = sweep_mutations.mark_subscription_past_due

    async def flaky_mark_past_due(db, subscription_id):
        if subscription_id == broken_id:
            raise RuntimeError("database went away")
        return await original(db, subscription_id)

    monkeypatch.setattr(sweep_mutations, "mark_subscription_past_due", flaky_mark_past_due)

    result = await sweep_handlers.process_grace_period_expirations(db_session, NOW)

    assert (result.processed, result.succeeded, result.failed) == (2, 1, 1)
    assert (await crud.subscription.get(db_session, id=healthy_id)).status == "past_due"
    assert (await crud.subscription.get(db_session, id=broken_id)).status == "active"
    assert _events(delivered_requests) == ["subscription.past_due"]


async def test_grace_period_boundary(db_session, flat_plan, customer, delivered_requests):
    """Subscriptions exactly at their deadline are left for the next tick."""
    at_deadline = await make_subscription(
        db_session, flat_plan, customer, current_period_end=NOW - GRACE_PERIOD_DAYS * DAY
    )

    result = await sweep_handlers.process_grace_period_expirations(db_session, NOW)

    assert result.processed == 0
    assert (await crud.subscription.get(db_session, id=at_deadline.id)).status == "active"


async def test_scheduled_cancellations(
    db_session, billing_app, flat_plan, customer, delivered_requests
):
    """Flagged subscriptions are cancelled and the app is told."""
    await make_endpoint(db_session, billing_app, events=["subscription.cancelled"])
    subscription = await make_subscription(
        db_session, flat_plan, customer, cancel_at_period_end=True, current_period_end=NOW - 1
    )

    result = await sweep_handlers.process_scheduled_cancellations(db_session, NOW)

    assert result.succeeded == 1
    refreshed = await crud.subscription.get(db_session, id=subscription.id)
    assert (refreshed.status, refreshed.cancel_at_period_end) == ("cancelled", False)
    assert _events(delivered_requests) == ["subscription.cancelled"]


async def test_recurring_payments(
    db_session, billing_app, flat_plan, customer, delivered_requests
):
    """Due subscriptions emit payment.due priced from the plan snapshot."""
    await make_endpoint(db_session, billing_app, events=["payment.due"])
    await make_subscription(
        db_session,
        flat_plan,
        customer,
        current_period_start=NOW - 30 * DAY,
        current_period_end=NOW - 1,
        next_payment_date=NOW - 1,
    )

    result = await sweep_handlers.process_recurring_payments(db_session, NOW)

    assert result.succeeded == 1
    [log] = await crud.outgoing_webhook_log.get_recent(db_session, app_id=billing_app.id)
    assert log.payload["data"]["amount_due"] == 50_000
    assert log.payload["data"]["currency"] == "UGX"
    assert log.payload["data"]["billing_period"] == {"start": NOW - 30 * DAY, "end": NOW - 1}


async def test_retry_failed_payments_skips(db_session, customer, delivered_requests):
    """Retry candidates are reported but left to the app."""
    await make_transaction(db_session, customer, status="failed", initiated_at=NOW - DAY)

    result = await sweep_handlers.retry_failed_payments(db_session, NOW)

    assert (result.processed, result.skipped, result.succeeded) == (1, 1, 0)


async def test_cleanup_expired_transactions(db_session, customer, delivered_requests):
    """Expired open transactions fail once."""
    transaction = await make_transaction(db_session, customer, expires_at=NOW - 1)

    first = await sweep_handlers.cleanup_expired_transactions(db_session, NOW)
    second = await sweep_handlers.cleanup_expired_transactions(db_session, NOW)

    assert first.succeeded == 1
    assert second.processed == 0
    assert (await crud.payment_transaction.get(db_session, id=transaction.id)).failure_code == (
        "EXPIRED"
    )


async def test_generate_pending_invoices(
    db_session, billing_app, flat_plan, customer, delivered_requests
):
    """Each ended period is invoiced exactly once."""
    await make_endpoint(db_session, billing_app, events=["invoice.created"])
    await make_subscription(
        db_session,
        flat_plan,
        customer,
        current_period_start=NOW - 30 * DAY,
        current_period_end=NOW - DAY,
    )

    first = await sweep_handlers.generate_pending_invoices(db_session, NOW)
    second = await sweep_handlers.generate_pending_invoices(db_session, NOW)

    assert first.succeeded == 1
    assert second.processed == 0
    assert len(await crud.invoice.get_multi(db_session)) == 1
    assert _events(delivered_requests) == ["invoice.created"]


async def test_generate_pending_invoices_counts_config_errors(
    db_session, billing_app, flat_plan, customer, delivered_requests
):
    """An app without a grace period fails its invoices without stopping the sweep."""
    await crud.app.update(db_session, db_obj=billing_app, obj_in={"grace_period": None})
    await make_subscription(db_session, flat_plan, customer, current_period_end=NOW - DAY)

    result = await sweep_handlers.generate_pending_invoices(db_session, NOW)

    assert (result.processed, result.failed) == (1, 1)


async def test_webhook_retries(db_session, billing_app, delivered_requests):
    """Due retries are redelivered; future ones wait."""
    endpoint = await make_endpoint(db_session, billing_app)
    due = await make_log(
        db_session, endpoint, status="retrying", attempt_number=2, next_retry_at=NOW
    )
    await make_log(
        db_session, endpoint, status="retrying", attempt_number=2, next_retry_at=NOW + 1
    )

    result = await sweep_handlers.process_webhook_retries(db_session, NOW)

    assert (result.processed, result.succeeded) == (1, 1)
    assert (await crud.outgoing_webhook_log.get(db_session, id=due.id)).status == "delivered"
    assert len(delivered_requests) == 1


async def test_webhook_retries_exhaust_an_invalid_url(
    db_session, billing_app, delivered_requests
):
    """A last attempt to a malformed URL finalizes the log as failed."""
    endpoint = await make_endpoint(
        db_session, billing_app, url="https://hooks.example.com:abc/"
    )
    log = await make_log(
        db_session, endpoint, status="retrying", attempt_number=3, next_retry_at=NOW
    )

    result = await sweep_handlers.process_webhook_retries(db_session, NOW)

    assert (result.processed, result.succeeded, result.failed) == (1, 0, 1)
    stored = await crud.outgoing_webhook_log.get(db_session, id=log.id)
    assert (stored.status, stored.attempt_number, stored.next_retry_at) == ("failed", 3, None)
    assert "InvalidURL" in stored.error
    assert delivered_requests == []

    again = await sweep_handlers.process_webhook_retries(db_session, NOW + DAY)
    assert again.processed == 0


async def test_recover_stale_webhook_deliveries(db_session, billing_app, delivered_requests):
    """Old pending logs become retrying; recent ones are left alone."""
    endpoint = await make_endpoint(db_session, billing_app)
    stale = await make_log(db_session, endpoint, created_at_ms=NOW - DAY)
    fresh = await make_log(db_session, endpoint, created_at_ms=NOW - 1)

    result = await sweep_handlers.recover_stale_webhook_deliveries(db_session, NOW)

    assert (result.processed, result.succeeded) == (1, 1)
    assert (await crud.outgoing_webhook_log.get(db_session, id=stale.id)).status == "retrying"
    assert (await crud.outgoing_webhook_log.get(db_session, id=fresh.id)).status == "pending"
    assert delivered_requests == []


def test_every_job_has_a_cron_setting():
    """Each registered job resolves its cron expression from settings."""
    assert set(sweep_handlers.JOBS) == {
        "scheduled_cancellations",
        "trial_expirations",
        "recurring_payments",
        "retry_failed_payments",
        "expired_transactions",
        "grace_period_expirations",
        "pending_invoices",
        "webhook_retries",
        "stale_webhook_recovery",
    }
    assert all(job.cron for job in sweep_handlers.JOBS.values())
