"""Recording and summarizing metered usage of subscriptions."""

from collections import defaultdict
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud, schemas
from credibill.core.exceptions import NotFoundException
from credibill.core.logging import LoggerConfigurator

logger = LoggerConfigurator.configure_logger(__name__, prefix="[Usage] ")

DEFAULT_USAGE_METRIC = "units"


async def record_usage_event(
    db: AsyncSession,
    subscription_id: UUID,
    usage_in: schemas.UsageEventRecord,
    *,
    now: int,
) -> schemas.UsageEventRecorded:
    """Record usage reported for a subscription.

    Reports are deduplicated per app on `event_id`: reporting the same event again
    returns the stored event and records nothing.

    Args:
        db: Database session
        subscription_id: The subscription that consumed the units
        usage_in: The reported usage
        now: Used as the event time when the report carries none

    Returns:
        The ID of the stored event and whether it was a duplicate

    Raises:
        NotFoundException: If the subscription does not exist.
    """
    subscription = await crud.subscription.get(db, id=subscription_id)
    if subscription is None:
        raise NotFoundException(f"Subscription {subscription_id} not found")

    usage_logger = logger.with_context(
        subscription_id=str(subscription_id), metric=usage_in.metric
    )

    if usage_in.event_id:
        existing = await crud.usage_event.get_by_event_id(
            db, app_id=subscription.app_id, event_id=usage_in.event_id
        )
        if existing is not None:
            usage_logger.debug(f"Usage event {usage_in.event_id} already recorded")
            return schemas.UsageEventRecorded(usage_event_id=existing.id, duplicate=True)

    event = await crud.usage_event.create(
        db,
        obj_in=schemas.UsageEventCreate(
            organization_id=subscription.organization_id,
            app_id=subscription.app_id,
            customer_id=subscription.customer_id,
            subscription_id=subscription.id,
            quantity=usage_in.quantity,
            metric=usage_in.metric,
            timestamp=usage_in.timestamp if usage_in.timestamp is not None else now,
            event_id=usage_in.event_id,
            usage_metadata=usage_in.usage_metadata,
        ),
    )
    usage_logger.info(f"Recorded {usage_in.quantity} {usage_in.metric}")
    return schemas.UsageEventRecorded(usage_event_id=event.id, duplicate=False)


async def get_usage_summary(
    db: AsyncSession,
    subscription_id: UUID,
    *,
    start_time: Optional[int] = None,
    end_time: Optional[int] = None,
) -> schemas.UsageSummary:
    """Usage events of a subscription within an optional time range, totalled per metric.

    Raises:
        NotFoundException: If the subscription does not exist.
    """
    subscription = await crud.subscription.get(db, id=subscription_id)
    if subscription is None:
        raise NotFoundException(f"Subscription {subscription_id} not found")

    events = await crud.usage_event.get_for_subscription(
        db, subscription_id=subscription_id, start_time=start_time, end_time=end_time
    )
    usage_by_metric: dict[str, int] = defaultdict(int)
    for event in events:
        usage_by_metric[event.metric] += event.quantity

    return schemas.UsageSummary(
        subscription_id=subscription_id,
        events=[schemas.UsageEvent.model_validate(event) for event in events],
        usage_by_metric=dict(usage_by_metric),
        total_events=len(events),
    )
