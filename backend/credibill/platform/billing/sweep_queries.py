"""Read-only scans that find the records a scheduler tick has to act on.

Every query takes the tick's `now` in epoch milliseconds and has no side effects,
so re-running it returns the same records until the matching mutation runs.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud
from credibill.core.config import settings
from credibill.core.datetime_utils import MS_PER_DAY
from credibill.core.exceptions import MissingConfigurationError, NotFoundException
from credibill.core.logging import LoggerConfigurator
from credibill.core.shared_models import SubscriptionStatus
from credibill.models.app import App
from credibill.models.payment_transaction import PaymentTransaction
from credibill.models.subscription import Subscription
from credibill.platform.billing.subscription_status import grace_deadline

logger = LoggerConfigurator.configure_logger(__name__, prefix="[Sweep] ")

GRACE_CHECK_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING_PAYMENT)

INVOICE_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)

CANCELLABLE_AT_PERIOD_END_STATUSES = (
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.TRIALING,
    SubscriptionStatus.PENDING_PAYMENT,
    SubscriptionStatus.PAUSED,
)


@dataclass
class InvoiceCandidate:
    """A subscription and the billing period it still needs an invoice for."""

    subscription: Subscription
    period_start: int
    period_end: int


async def get_expired_trials(db: AsyncSession, now: int) -> list[Subscription]:
    """Trialing subscriptions whose trial ended before `now`."""
    subscriptions = await crud.subscription.get_expired_trials(db, now=now)
    logger.debug(f"Found {len(subscriptions)} expired trials")
    return subscriptions


async def get_due_subscriptions(db: AsyncSession, now: int) -> list[Subscription]:
    """Active subscriptions whose current period ended at or before `now`."""
    subscriptions = await crud.subscription.get_due(db, now=now)
    logger.debug(f"Found {len(subscriptions)} subscriptions due for payment")
    return subscriptions


async def get_retryable_transactions(db: AsyncSession, now: int) -> list[PaymentTransaction]:
    """Failed transactions from the lookback window that are below the attempt ceiling."""
    since = now - settings.PAYMENT_RETRY_LOOKBACK_DAYS * MS_PER_DAY
    transactions = await crud.payment_transaction.get_retryable(
        db, since=since, max_attempts=settings.PAYMENT_MAX_ATTEMPTS
    )
    logger.debug(f"Found {len(transactions)} retryable failed transactions")
    return transactions


async def get_expired_transactions(db: AsyncSession, now: int) -> list[PaymentTransaction]:
    """Pending or initiated transactions whose expiry passed."""
    transactions = await crud.payment_transaction.get_expired(db, now=now)
    logger.debug(f"Found {len(transactions)} expired transactions")
    return transactions


async def _load_grace_period(
    db: AsyncSession, app_id: UUID, cache: dict[UUID, Optional[App]]
) -> int:
    """Grace period of an app in days.

    Raises:
        NotFoundException: If the app does not exist.
        MissingConfigurationError: If the app has no grace period.
    """
    if app_id not in cache:
        cache[app_id] = await crud.app.get(db, id=app_id)
    app = cache[app_id]

    if app is None:
        raise NotFoundException(f"App {app_id} not found")
    if app.grace_period is None:
        raise MissingConfigurationError("grace_period", f"App {app_id} has no grace period")
    return app.grace_period


async def get_grace_period_expired_subscriptions(
    db: AsyncSession, now: int
) -> list[Subscription]:
    """Active or pending_payment subscriptions whose grace deadline has passed.

    Subscriptions without a period end are awaiting their first payment and are
    skipped. A missing app or an app without a grace period is logged and only that
    subscription is skipped.
    """
    subscriptions = await crud.subscription.get_by_statuses(db, statuses=GRACE_CHECK_STATUSES)
    apps: dict[UUID, Optional[App]] = {}
    expired = []

    for subscription in subscriptions:
        if subscription.current_period_end is None:
            continue

        sub_logger = logger.with_context(
            subscription_id=str(subscription.id), app_id=str(subscription.app_id)
        )
        try:
            grace_period_days = await _load_grace_period(db, subscription.app_id, apps)
        except NotFoundException as e:
            sub_logger.warning(f"Skipping subscription: {e.message}")
            continue
        except MissingConfigurationError as e:
            sub_logger.error(f"Skipping subscription, configuration error: {e}")
            continue

        if now > grace_deadline(subscription.current_period_end, grace_period_days):
            expired.append(subscription)

    logger.debug(f"Found {len(expired)} subscriptions past their grace period")
    return expired


def invoice_period(subscription: Subscription) -> tuple[int, int]:
    """The current billing period of a subscription, which must have a period end.

    The period starts at `current_period_start`, or at `start_date` when unset.
    """
    period_start = subscription.current_period_start
    if period_start is None:
        period_start = subscription.start_date
    return period_start, subscription.current_period_end


async def get_subscriptions_needing_invoices(
    db: AsyncSession, now: int
) -> list[InvoiceCandidate]:
    """Active or trialing subscriptions whose ended period has no invoice yet."""
    subscriptions = await crud.subscription.get_period_ended(
        db, statuses=INVOICE_STATUSES, now=now
    )
    candidates = []

    for subscription in subscriptions:
        period_start, period_end = invoice_period(subscription)
        existing = await crud.invoice.get_for_period(
            db,
            subscription_id=subscription.id,
            period_start=period_start,
            period_end=period_end,
        )
        if existing is None:
            candidates.append(InvoiceCandidate(subscription, period_start, period_end))

    logger.debug(f"Found {len(candidates)} subscriptions needing invoices")
    return candidates


async def get_scheduled_cancellations(db: AsyncSession, now: int) -> list[Subscription]:
    """Subscriptions flagged to cancel at period end whose period is over."""
    subscriptions = await crud.subscription.get_scheduled_cancellations(
        db, statuses=CANCELLABLE_AT_PERIOD_END_STATUSES, now=now
    )
    logger.debug(f"Found {len(subscriptions)} scheduled cancellations")
    return subscriptions
