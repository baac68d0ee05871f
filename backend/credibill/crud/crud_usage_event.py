"""CRUD operations for usage events."""

from typing import Optional
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.usage_event import UsageEvent
from credibill.schemas.usage_event import UsageEventCreate, UsageEventUpdate


class CRUDUsageEvent(CRUDBaseSystem[UsageEvent, UsageEventCreate, UsageEventUpdate]):
    """CRUD operations for usage events."""

    async def get_by_event_id(
        self, db: AsyncSession, *, app_id: UUID, event_id: str
    ) -> Optional[UsageEvent]:
        """Get the usage event an app already recorded under an external event ID."""
        query = select(self.model).where(
            and_(self.model.app_id == app_id, self.model.event_id == event_id)
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def get_for_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> list[UsageEvent]:
        """Get the usage events of a subscription, oldest first.

        Args:
            db: Database session
            subscription_id: Subscription ID
            start_time: Inclusive lower bound on the event timestamp
            end_time: Inclusive upper bound on the event timestamp

        Returns:
            The matching usage events
        """
        conditions = [self.model.subscription_id == subscription_id]
        if start_time is not None:
            conditions.append(self.model.timestamp >= start_time)
        if end_time is not None:
            conditions.append(self.model.timestamp <= end_time)

        query = select(self.model).where(and_(*conditions)).order_by(self.model.timestamp)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def sum_quantity(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        metric: str,
        start_time: int,
        end_time: int,
    ) -> int:
        """Total units of `metric` a subscription used within `[start_time, end_time]`."""
        query = select(func.coalesce(func.sum(self.model.quantity), 0)).where(
            and_(
                self.model.subscription_id == subscription_id,
                self.model.metric == metric,
                self.model.timestamp >= start_time,
                self.model.timestamp <= end_time,
            )
        )
        result = await db.execute(query)
        return int(result.scalar_one())


usage_event = CRUDUsageEvent(UsageEvent)
