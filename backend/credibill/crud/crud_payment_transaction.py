"""CRUD operations for payment transactions."""

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from credibill.core.shared_models import PaymentTransactionStatus
from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.payment_transaction import PaymentTransaction
from credibill.schemas.payment_transaction import (
    PaymentTransactionCreate,
    PaymentTransactionUpdate,
)


class CRUDPaymentTransaction(
    CRUDBaseSystem[PaymentTransaction, PaymentTransactionCreate, PaymentTransactionUpdate]
):
    """CRUD operations for payment transactions."""

    async def get_retryable(
        self, db: AsyncSession, *, since: int, max_attempts: int
    ) -> list[PaymentTransaction]:
        """Get failed transactions initiated at or after `since` with attempts left.

        Args:
            db: Database session
            since: Start of the lookback window in epoch milliseconds
            max_attempts: Transactions at or above this attempt number are excluded

        Returns:
            Failed transactions eligible for a retry
        """
        query = select(self.model).where(
            and_(
                self.model.status == PaymentTransactionStatus.FAILED.value,
                self.model.initiated_at >= since,
                self.model.attempt_number < max_attempts,
            )
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_expired(self, db: AsyncSession, *, now: int) -> list[PaymentTransaction]:
        """Get pending or initiated transactions whose expiry is before `now`."""
        query = select(self.model).where(
            and_(
                self.model.status.in_(
                    [
                        PaymentTransactionStatus.PENDING.value,
                        PaymentTransactionStatus.INITIATED.value,
                    ]
                ),
                self.model.expires_at.is_not(None),
                self.model.expires_at < now,
            )
        )
        result = await db.execute(query)
        return list(result.scalars().all())


payment_transaction = CRUDPaymentTransaction(PaymentTransaction)
