"""API endpoints for inspecting outgoing webhook deliveries of an app."""

from typing import List, Optional
from uuid import UUID

from fastapi import Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud, schemas
from credibill.api import deps
from credibill.api.router import TrailingSlashRouter
from credibill.core.datetime_utils import MS_PER_DAY, utc_now_ms
from credibill.core.exceptions import NotFoundException

router = TrailingSlashRouter()


async def _ensure_app(db: AsyncSession, app_id: UUID) -> None:
    if await crud.app.get(db, id=app_id) is None:
        raise NotFoundException(f"App {app_id} not found")


@router.get("/{app_id}/webhook-deliveries/stats", response_model=schemas.WebhookDeliveryStats)
async def get_delivery_stats(
    *,
    app_id: UUID = Path(..., description="The ID of the app"),
    since: Optional[int] = Query(
        None, ge=0, description="Window start in epoch milliseconds, defaults to 24 hours ago"
    ),
    db: AsyncSession = Depends(deps.get_db),
) -> schemas.WebhookDeliveryStats:
    """Count the app's webhook deliveries by status.

    Args:
    -----
        app_id: The ID of the app
        since: Only deliveries created at or after this time are counted
        db: The database session

    Returns:
    --------
        schemas.WebhookDeliveryStats: Counts per delivery status
    """
    await _ensure_app(db, app_id)
    if since is None:
        since = utc_now_ms() - MS_PER_DAY
    return await crud.outgoing_webhook_log.get_stats(db, app_id=app_id, since=since)


@router.get("/{app_id}/webhook-deliveries", response_model=List[schemas.OutgoingWebhookLog])
async def list_recent_deliveries(
    *,
    app_id: UUID = Path(..., description="The ID of the app"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of deliveries to return"),
    db: AsyncSession = Depends(deps.get_db),
) -> List[schemas.OutgoingWebhookLog]:
    """List the app's most recent webhook deliveries, newest first.

    Args:
    -----
        app_id: The ID of the app
        limit: Maximum number of deliveries to return
        db: The database session

    Returns:
    --------
        List[schemas.OutgoingWebhookLog]: The delivery logs
    """
    await _ensure_app(db, app_id)
    logs = await crud.outgoing_webhook_log.get_recent(db, app_id=app_id, limit=limit)
    return [schemas.OutgoingWebhookLog.model_validate(log) for log in logs]
