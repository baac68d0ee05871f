"""CRUD operations for outgoing webhook delivery logs."""

from uuid import UUID

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from credibill.core.shared_models import WebhookDeliveryStatus
from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.outgoing_webhook_log import OutgoingWebhookLog
from credibill.schemas.outgoing_webhook_log import (
    OutgoingWebhookLogCreate,
    OutgoingWebhookLogUpdate,
    WebhookDeliveryStats,
)


class CRUDOutgoingWebhookLog(
    CRUDBaseSystem[OutgoingWebhookLog, OutgoingWebhookLogCreate, OutgoingWebhookLogUpdate]
):
    """CRUD operations for outgoing webhook delivery logs."""

    async def get_pending_retries(
        self, db: AsyncSession, *, now: int, limit: int = 100
    ) -> list[OutgoingWebhookLog]:
        """Get retrying logs whose next retry is due, oldest first.

        Args:
            db: Database session
            now: Reference time in epoch milliseconds
            limit: Maximum number of logs to return

        Returns:
            Logs to redeliver in this tick
        """
        query = (
            select(self.model)
            .where(
                and_(
                    self.model.status == WebhookDeliveryStatus.RETRYING.value,
                    self.model.next_retry_at.is_not(None),
                    self.model.next_retry_at <= now,
                )
            )
            .order_by(self.model.next_retry_at)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_stale_in_flight(
        self, db: AsyncSession, *, created_before: int, limit: int = 100
    ) -> list[OutgoingWebhookLog]:
        """Get logs still pending or sent that were created before `created_before`."""
        query = (
            select(self.model)
            .where(
                and_(
                    self.model.status.in_(
                        [WebhookDeliveryStatus.PENDING.value, WebhookDeliveryStatus.SENT.value]
                    ),
                    self.model.created_at_ms < created_before,
                )
            )
            .order_by(self.model.created_at_ms)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_stats(
        self, db: AsyncSession, *, app_id: UUID, since: int
    ) -> WebhookDeliveryStats:
        """Count an app's delivery logs by status, for logs created at or after `since`."""
        query = (
            select(self.model.status, func.count(self.model.id))
            .where(and_(self.model.app_id == app_id, self.model.created_at_ms >= since))
            .group_by(self.model.status)
        )
        result = await db.execute(query)
        counts = {status: count for status, count in result.all()}

        return WebhookDeliveryStats(
            since=since,
            total=sum(counts.values()),
            delivered=counts.get(WebhookDeliveryStatus.DELIVERED.value, 0),
            failed=counts.get(WebhookDeliveryStatus.FAILED.value, 0),
            pending=counts.get(WebhookDeliveryStatus.PENDING.value, 0),
            retrying=counts.get(WebhookDeliveryStatus.RETRYING.value, 0),
        )

    async def get_recent(
        self, db: AsyncSession, *, app_id: UUID, limit: int = 50
    ) -> list[OutgoingWebhookLog]:
        """Get an app's most recent delivery logs, newest first."""
        query = (
            select(self.model)
            .where(self.model.app_id == app_id)
            .order_by(desc(self.model.created_at_ms))
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())


outgoing_webhook_log = CRUDOutgoingWebhookLog(OutgoingWebhookLog)
