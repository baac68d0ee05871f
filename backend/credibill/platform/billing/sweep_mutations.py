"""Single-row state transitions applied by the scheduled sweeps.

Each mutation reloads its row and re-checks the state it expects before writing,
so a transition that another tick already applied is a no-op. A missing row is
logged and reported as not applied.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud
from credibill.core.exceptions import CrediBillException
from credibill.core.logging import LoggerConfigurator
from credibill.core.shared_models import PaymentTransactionStatus, SubscriptionStatus
from credibill.platform.billing.invoice_service import generate_invoice
from credibill.platform.billing.sweep_queries import CANCELLABLE_AT_PERIOD_END_STATUSES

logger = LoggerConfigurator.configure_logger(__name__, prefix="[Sweep] ")

PAST_DUE_FROM_STATUSES = (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.PENDING_PAYMENT.value)

EXPIRABLE_TRANSACTION_STATUSES = (
    PaymentTransactionStatus.PENDING.value,
    PaymentTransactionStatus.INITIATED.value,
)

CANCEL_AT_PERIOD_END_FROM_STATUSES = tuple(s.value for s in CANCELLABLE_AT_PERIOD_END_STATUSES)


async def mark_trial_expired(db: AsyncSession, subscription_id: UUID, now: int) -> bool:
    """Move a trialing subscription to pending_payment and invoice its first payment.

    Billing dates stay unset until the first payment succeeds. The first invoice
    covers the instant `now`. Failing to generate it is logged and does not undo the
    status change.

    Returns:
        True if the subscription was moved out of trialing
    """
    sub_logger = logger.with_context(subscription_id=str(subscription_id))
    subscription = await crud.subscription.get(db, id=subscription_id)
    if subscription is None:
        sub_logger.warning("Subscription not found, trial expiry not applied")
        return False
    if subscription.status != SubscriptionStatus.TRIALING.value:
        sub_logger.debug(f"Subscription is {subscription.status}, trial expiry not applied")
        return False

    await crud.subscription.update(
        db,
        db_obj=subscription,
        obj_in={"status": SubscriptionStatus.PENDING_PAYMENT.value},
    )
    sub_logger.info("Trial expired, awaiting first payment")

    try:
        await generate_invoice(db, subscription, period_start=now, period_end=now, now=now)
    except CrediBillException as e:
        sub_logger.error(f"Failed to generate first invoice: {e}", exc_info=True)

    return True


async def mark_transaction_expired(db: AsyncSession, transaction_id: UUID, now: int) -> bool:
    """Fail a pending or initiated transaction whose expiry passed.

    Returns:
        True if the transaction was marked failed
    """
    tx_logger = logger.with_context(transaction_id=str(transaction_id))
    transaction = await crud.payment_transaction.get(db, id=transaction_id)
    if transaction is None:
        tx_logger.warning("Transaction not found, expiry not applied")
        return False
    if transaction.status not in EXPIRABLE_TRANSACTION_STATUSES:
        tx_logger.debug(f"Transaction is {transaction.status}, expiry not applied")
        return False

    await crud.payment_transaction.update(
        db,
        db_obj=transaction,
        obj_in={
            "status": PaymentTransactionStatus.FAILED.value,
            "failure_reason": "Transaction expired",
            "failure_code": "EXPIRED",
            "completed_at": now,
        },
    )
    tx_logger.info("Transaction expired")
    return True


async def mark_subscription_past_due(db: AsyncSession, subscription_id: UUID) -> bool:
    """Move an active or pending_payment subscription to past_due.

    Returns:
        True if the status changed
    """
    sub_logger = logger.with_context(subscription_id=str(subscription_id))
    subscription = await crud.subscription.get(db, id=subscription_id)
    if subscription is None:
        sub_logger.warning("Subscription not found, past due not applied")
        return False
    if subscription.status not in PAST_DUE_FROM_STATUSES:
        sub_logger.debug(f"Subscription is {subscription.status}, past due not applied")
        return False

    await crud.subscription.update(
        db, db_obj=subscription, obj_in={"status": SubscriptionStatus.PAST_DUE.value}
    )
    sub_logger.info("Grace period expired, subscription is past due")
    return True


async def cancel_subscription_at_period_end(db: AsyncSession, subscription_id: UUID) -> bool:
    """Cancel a subscription flagged to cancel at the end of its period.

    Only applies while the flag is still set and the subscription is in a status
    that can be cancelled at period end.

    Returns:
        True if the subscription was cancelled
    """
    sub_logger = logger.with_context(subscription_id=str(subscription_id))
    subscription = await crud.subscription.get(db, id=subscription_id)
    if subscription is None:
        sub_logger.warning("Subscription not found, cancellation not applied")
        return False
    if not subscription.cancel_at_period_end:
        sub_logger.debug("Cancellation at period end was withdrawn, not applied")
        return False
    if subscription.status not in CANCEL_AT_PERIOD_END_FROM_STATUSES:
        sub_logger.debug(f"Subscription is {subscription.status}, cancellation not applied")
        return False

    await crud.subscription.update(
        db,
        db_obj=subscription,
        obj_in={
            "status": SubscriptionStatus.CANCELLED.value,
            "cancel_at_period_end": False,
        },
    )
    sub_logger.info("Subscription cancelled at period end")
    return True
