"""CRUD operations for subscriptions, including the sweep candidate scans."""

from typing import Iterable

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from credibill.core.shared_models import SubscriptionStatus
from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.subscription import Subscription
from credibill.schemas.subscription import SubscriptionCreate, SubscriptionUpdate


class CRUDSubscription(CRUDBaseSystem[Subscription, SubscriptionCreate, SubscriptionUpdate]):
    """CRUD operations for subscriptions.

    Every scan takes the tick's `now` in epoch milliseconds and only reads.
    """

    async def get_by_statuses(
        self, db: AsyncSession, *, statuses: Iterable[SubscriptionStatus]
    ) -> list[Subscription]:
        """Get all subscriptions whose stored status is one of `statuses`."""
        query = (
            select(self.model)
            .where(self.model.status.in_([status.value for status in statuses]))
            .order_by(self.model.created_at)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_expired_trials(self, db: AsyncSession, *, now: int) -> list[Subscription]:
        """Get trialing subscriptions whose trial ended strictly before `now`."""
        query = select(self.model).where(
            and_(
                self.model.status == SubscriptionStatus.TRIALING.value,
                self.model.trial_ends_at.is_not(None),
                self.model.trial_ends_at < now,
            )
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_due(self, db: AsyncSession, *, now: int) -> list[Subscription]:
        """Get active subscriptions whose current period has ended."""
        query = select(self.model).where(
            and_(
                self.model.status == SubscriptionStatus.ACTIVE.value,
                self.model.current_period_end.is_not(None),
                self.model.current_period_end <= now,
            )
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_period_ended(
        self, db: AsyncSession, *, statuses: Iterable[SubscriptionStatus], now: int
    ) -> list[Subscription]:
        """Get subscriptions in `statuses` whose current period ended at or before `now`."""
        query = select(self.model).where(
            and_(
                self.model.status.in_([status.value for status in statuses]),
                self.model.current_period_end.is_not(None),
                self.model.current_period_end <= now,
            )
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_scheduled_cancellations(
        self, db: AsyncSession, *, statuses: Iterable[SubscriptionStatus], now: int
    ) -> list[Subscription]:
        """Get subscriptions flagged to cancel at period end whose period is over."""
        query = select(self.model).where(
            and_(
                self.model.cancel_at_period_end.is_(True),
                self.model.status.in_([status.value for status in statuses]),
                self.model.current_period_end.is_not(None),
                self.model.current_period_end <= now,
            )
        )
        result = await db.execute(query)
        return list(result.scalars().all())


subscription = CRUDSubscription(Subscription)
