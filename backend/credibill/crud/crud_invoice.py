"""CRUD operations for invoices."""

from typing import Optional
from uuid import UUID

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.invoice import Invoice
from credibill.schemas.invoice import InvoiceCreate, InvoiceUpdate


class CRUDInvoice(CRUDBaseSystem[Invoice, InvoiceCreate, InvoiceUpdate]):
    """CRUD operations for invoices."""

    async def get_for_period(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        period_start: int,
        period_end: int,
    ) -> Optional[Invoice]:
        """Get the invoice of a subscription for exactly one billing period.

        Args:
            db: Database session
            subscription_id: Subscription ID
            period_start: Period start in epoch milliseconds
            period_end: Period end in epoch milliseconds

        Returns:
            The invoice, or None if the period has not been invoiced
        """
        query = select(self.model).where(
            and_(
                self.model.subscription_id == subscription_id,
                self.model.period_start == period_start,
                self.model.period_end == period_end,
            )
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def get_latest_number(
        self, db: AsyncSession, *, app_id: UUID, prefix: str
    ) -> Optional[str]:
        """Get the highest invoice number of an app that starts with `prefix`.

        Numbers are zero padded, so longer numbers sort after shorter ones.
        """
        query = (
            select(self.model.invoice_number)
            .where(
                and_(
                    self.model.app_id == app_id,
                    self.model.invoice_number.like(f"{prefix}%"),
                )
            )
            .order_by(desc(func.length(self.model.invoice_number)), desc(self.model.invoice_number))
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalars().first()


invoice = CRUDInvoice(Invoice)
