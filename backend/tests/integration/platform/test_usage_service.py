"""Integration tests for recording and summarizing metered usage."""

import uuid

import pytest

from credibill import crud, schemas
from credibill.core.exceptions import NotFoundException
from credibill.platform.billing import usage_service
from tests.fixtures.billing import DAY, NOW, make_plan, make_subscription, make_usage_event


@pytest.fixture
async def metered_subscription(db_session, billing_app, customer):
    """An active subscription to a usage plan."""
    plan = await make_plan(db_session, billing_app, usage_metric="api_calls")
    return await make_subscription(db_session, plan, customer)


async def test_record_usage_event(db_session, metered_subscription):
    """Events inherit the subscription's owners and default to the reference time."""
    recorded = await usage_service.record_usage_event(
        db_session,
        metered_subscription.id,
        schemas.UsageEventRecord(quantity=3, metric="api_calls", usage_metadata={"k": "v"}),
        now=NOW,
    )

    assert recorded.duplicate is False
    event = await crud.usage_event.get(db_session, id=recorded.usage_event_id)
    assert event.subscription_id == metered_subscription.id
    assert event.customer_id == metered_subscription.customer_id
    assert event.app_id == metered_subscription.app_id
    assert (event.quantity, event.metric, event.timestamp) == (3, "api_calls", NOW)
    assert event.usage_metadata == {"k": "v"}


async def test_duplicate_event_id_is_recorded_once(db_session, metered_subscription):
    """Reporting the same event_id again returns the first event."""
    usage_in = schemas.UsageEventRecord(
        quantity=3, metric="api_calls", event_id="evt_1", timestamp=NOW - DAY
    )

    first = await usage_service.record_usage_event(
        db_session, metered_subscription.id, usage_in, now=NOW
    )
    second = await usage_service.record_usage_event(
        db_session, metered_subscription.id, usage_in, now=NOW + 1
    )

    assert second.duplicate is True
    assert second.usage_event_id == first.usage_event_id
    assert len(await crud.usage_event.get_multi(db_session)) == 1


async def test_record_usage_for_unknown_subscription(db_session):
    """Usage cannot be recorded without a subscription."""
    with pytest.raises(NotFoundException):
        await usage_service.record_usage_event(
            db_session,
            uuid.uuid4(),
            schemas.UsageEventRecord(quantity=1, metric="api_calls"),
            now=NOW,
        )


def test_quantity_must_be_positive():
    """Zero or negative usage is rejected before it reaches the database."""
    with pytest.raises(ValueError):
        schemas.UsageEventRecord(quantity=0, metric="api_calls")


async def test_usage_summary(db_session, metered_subscription):
    """Totals per metric over the requested range."""
    await make_usage_event(db_session, metered_subscription, 4, "api_calls", timestamp=NOW - DAY)
    await make_usage_event(db_session, metered_subscription, 6, "api_calls", timestamp=NOW)
    await make_usage_event(db_session, metered_subscription, 2, "sms_sent", timestamp=NOW)
    await make_usage_event(
        db_session, metered_subscription, 100, "api_calls", timestamp=NOW - 3 * DAY
    )

    summary = await usage_service.get_usage_summary(
        db_session, metered_subscription.id, start_time=NOW - DAY, end_time=NOW
    )

    assert summary.total_events == 3
    assert summary.usage_by_metric == {"api_calls": 10, "sms_sent": 2}
    assert [event.timestamp for event in summary.events] == [NOW - DAY, NOW, NOW]
