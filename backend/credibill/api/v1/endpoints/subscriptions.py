"""API endpoints for subscription status and metered usage."""

from typing import Optional
from uuid import UUID

from fastapi import Body, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud, schemas
from credibill.api import deps
from credibill.api.router import TrailingSlashRouter
from credibill.core.exceptions import MissingConfigurationError, NotFoundException
from credibill.platform.billing import subscription_status, usage_service

router = TrailingSlashRouter()


@router.get("/{subscription_id}/status", response_model=schemas.SubscriptionStatusView)
async def get_subscription_status(
    *,
    subscription_id: UUID = Path(..., description="The ID of the subscription"),
    now: int = Depends(deps.reference_time),
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.SubscriptionStatusView:
    """Resolve the status of a subscription at a point in time.

    The stored status is what the last sweep persisted; the computed status applies
    trial expiry and the app's grace period at `now`, so the two differ until the
    next sweep runs.

    Args:
    -----
        subscription_id: The ID of the subscription
        now: Reference time in epoch milliseconds, defaults to the current time
        db: The database session

    Returns:
    --------
        schemas.SubscriptionStatusView: The resolved status and eligibility flags
    """
    subscription = await crud.subscription.get(db, id=subscription_id)
    if subscription is None:
        raise NotFoundException(f"Subscription {subscription_id} not found")

    app = await crud.app.get(db, id=subscription.app_id)
    if app is None:
        raise NotFoundException(f"App {subscription.app_id} not found")
    if app.grace_period is None:
        raise MissingConfigurationError("grace_period", f"App {app.id} has no grace period")

    computed = subscription_status.compute_status(subscription, app.grace_period, now)
    grace_deadline = None
    if subscription.current_period_end is not None:
        grace_deadline = subscription_status.grace_deadline(
            subscription.current_period_end, app.grace_period
        )

    return schemas.SubscriptionStatusView(
        subscription_id=subscription.id,
        now=now,
        stored_status=subscription.status,
        computed_status=computed,
        description=subscription_status.get_status_description(computed),
        has_active_access=subscription_status.has_active_access(
            subscription, app.grace_period, now
        ),
        can_be_cancelled=subscription_status.can_be_cancelled(subscription),
        can_be_paused=subscription_status.can_be_paused(subscription),
        can_be_resumed=subscription_status.can_be_resumed(subscription),
        grace_deadline=grace_deadline,
    )


@router.post("/{subscription_id}/usage", response_model=schemas.UsageEventRecorded)
async def record_usage(
    *,
    subscription_id: UUID = Path(..., description="The ID of the subscription"),
    usage_in: schemas.UsageEventRecord = Body(...),
    now: int = Depends(deps.reference_time),
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.UsageEventRecorded:
    """Record metered usage of a subscription.

    Args:
    -----
        subscription_id: The ID of the subscription
        usage_in: Units consumed, their metric and an optional event_id for deduplication
        now: Event time used when the report has no timestamp
        db: The database session

    Returns:
    --------
        schemas.UsageEventRecorded: The stored event and whether it was a duplicate
    """
    return await usage_service.record_usage_event(db, subscription_id, usage_in, now=now)


@router.get("/{subscription_id}/usage", response_model=schemas.UsageSummary)
async def get_usage(
    *,
    subscription_id: UUID = Path(..., description="The ID of the subscription"),
    start_time: Optional[int] = Query(None, ge=0, description="Inclusive, epoch ms"),
    end_time: Optional[int] = Query(None, ge=0, description="Inclusive, epoch ms"),
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.UsageSummary:
    """Usage events of a subscription and their totals per metric."""
    return await usage_service.get_usage_summary(
        db, subscription_id, start_time=start_time, end_time=end_time
    )
