"""Scheduled billing jobs.

Each handler runs one sweep: it asks sweep_queries for candidates, applies the
matching mutation per record and emits the outgoing webhook events. Every record
is processed on its own, so an error on one is logged, counted as failed and the
batch continues.

Candidates are read once per tick, then reloaded by id before each mutation. A
failed record rolls the session back, which expires every loaded row.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud, schemas
from credibill.core.config import settings
from credibill.core.logging import LoggerConfigurator
from credibill.platform.billing import sweep_mutations, sweep_queries
from credibill.platform.billing.invoice_service import generate_invoice
from credibill.platform.webhooks.dispatcher import RetryOutcome, webhook_dispatcher
from credibill.platform.webhooks.events import (
    WebhookEvent,
    invoice_data,
    payment_due_data,
    subscription_data,
    trial_expired_data,
)

logger = LoggerConfigurator.configure_logger(__name__, prefix="[Sweep] ")

SweepHandler = Callable[[AsyncSession, int], Awaitable[schemas.SweepResult]]


class ItemSkipped(Exception):
    """Raised inside a per-item step when the record needs no action this tick."""


class ItemFailed(Exception):
    """Raised inside a per-item step for an expected failure that left no partial writes."""


async def _run_items(
    db: AsyncSession,
    result: schemas.SweepResult,
    item_ids: list,
    step: Callable[[object], Awaitable[None]],
    dimension: str,
) -> schemas.SweepResult:
    for item_id in item_ids:
        result.processed += 1
        try:
            await step(item_id)
            result.succeeded += 1
        except ItemSkipped as e:
            result.skipped += 1
            logger.with_context(job=result.job, **{dimension: str(item_id)}).debug(
                f"Skipped: {e}"
            )
        except ItemFailed as e:
            result.failed += 1
            logger.with_context(job=result.job, **{dimension: str(item_id)}).warning(
                f"Failed: {e}"
            )
        except Exception as e:
            result.failed += 1
            await db.rollback()
            logger.with_context(job=result.job, **{dimension: str(item_id)}).error(
                f"Error processing item: {e}", exc_info=True
            )

    logger.with_context(job=result.job).info(
        f"Completed {result.job}: {result.succeeded} succeeded, {result.failed} failed, "
        f"{result.skipped} skipped"
    )
    return result


async def process_scheduled_cancellations(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Cancel subscriptions whose period ended with cancel_at_period_end set."""
    result = schemas.SweepResult(job="scheduled_cancellations")
    subscriptions = await sweep_queries.get_scheduled_cancellations(db, now)
    logger.info(f"Found {len(subscriptions)} subscriptions to cancel")

    async def step(subscription_id: UUID) -> None:
        if not await sweep_mutations.cancel_subscription_at_period_end(db, subscription_id):
            raise ItemSkipped("no longer scheduled for cancellation")
        subscription = await crud.subscription.get(db, id=subscription_id)
        await webhook_dispatcher.dispatch_event(
            db,
            app_id=subscription.app_id,
            event=WebhookEvent.SUBSCRIPTION_CANCELLED.value,
            data=subscription_data(subscription),
            now=now,
        )

    return await _run_items(
        db, result, [s.id for s in subscriptions], step, dimension="subscription_id"
    )


async def process_trial_expirations(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Move expired trials to pending_payment and notify the app."""
    result = schemas.SweepResult(job="trial_expirations")
    subscriptions = await sweep_queries.get_expired_trials(db, now)
    logger.info(f"Found {len(subscriptions)} expired trials")

    async def step(subscription_id: UUID) -> None:
        if not await sweep_mutations.mark_trial_expired(db, subscription_id, now):
            raise ItemSkipped("no longer trialing")
        subscription = await crud.subscription.get(db, id=subscription_id)
        await webhook_dispatcher.dispatch_event(
            db,
            app_id=subscription.app_id,
            event=WebhookEvent.SUBSCRIPTION_TRIAL_EXPIRED.value,
            data=trial_expired_data(subscription),
            now=now,
        )

    return await _run_items(
        db, result, [s.id for s in subscriptions], step, dimension="subscription_id"
    )


async def process_recurring_payments(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Notify apps of active subscriptions whose period ended and payment is due.

    Collecting the payment is up to the app, so no state changes here.
    """
    result = schemas.SweepResult(job="recurring_payments")
    subscriptions = await sweep_queries.get_due_subscriptions(db, now)
    logger.info(f"Found {len(subscriptions)} subscriptions due for payment")

    async def step(subscription_id: UUID) -> None:
        subscription = await crud.subscription.get(db, id=subscription_id)
        if subscription is None:
            raise ItemSkipped("subscription not found")
        await webhook_dispatcher.dispatch_event(
            db,
            app_id=subscription.app_id,
            event=WebhookEvent.PAYMENT_DUE.value,
            data=payment_due_data(subscription),
            now=now,
        )

    return await _run_items(
        db, result, [s.id for s in subscriptions], step, dimension="subscription_id"
    )


async def retry_failed_payments(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Report failed transactions that could be retried.

    Payment retries are initiated by the app through its payment provider, so every
    candidate is counted as skipped.
    """
    result = schemas.SweepResult(job="retry_failed_payments")
    transactions = await sweep_queries.get_retryable_transactions(db, now)
    logger.info(f"Found {len(transactions)} failed transactions to retry")

    async def step(transaction_id: UUID) -> None:
        raise ItemSkipped("payment retries are initiated by the app")

    return await _run_items(
        db, result, [t.id for t in transactions], step, dimension="transaction_id"
    )


async def cleanup_expired_transactions(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Fail pending or initiated transactions whose expiry passed."""
    result = schemas.SweepResult(job="expired_transactions")
    transactions = await sweep_queries.get_expired_transactions(db, now)
    logger.info(f"Found {len(transactions)} expired transactions")

    async def step(transaction_id: UUID) -> None:
        if not await sweep_mutations.mark_transaction_expired(db, transaction_id, now):
            raise ItemSkipped("no longer pending")

    return await _run_items(
        db, result, [t.id for t in transactions], step, dimension="transaction_id"
    )


async def process_grace_period_expirations(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Mark subscriptions past due once their grace period is over."""
    result = schemas.SweepResult(job="grace_period_expirations")
    subscriptions = await sweep_queries.get_grace_period_expired_subscriptions(db, now)
    logger.info(f"Found {len(subscriptions)} subscriptions past their grace period")

    async def step(subscription_id: UUID) -> None:
        if not await sweep_mutations.mark_subscription_past_due(db, subscription_id):
            raise ItemSkipped("no longer active or pending payment")
        subscription = await crud.subscription.get(db, id=subscription_id)
        await webhook_dispatcher.dispatch_event(
            db,
            app_id=subscription.app_id,
            event=WebhookEvent.SUBSCRIPTION_PAST_DUE.value,
            data=subscription_data(subscription),
            now=now,
        )

    return await _run_items(
        db, result, [s.id for s in subscriptions], step, dimension="subscription_id"
    )


async def generate_pending_invoices(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Invoice every ended billing period that has no invoice yet."""
    result = schemas.SweepResult(job="pending_invoices")
    candidates = await sweep_queries.get_subscriptions_needing_invoices(db, now)
    logger.info(f"Found {len(candidates)} subscriptions needing invoices")
    periods = {c.subscription.id: (c.period_start, c.period_end) for c in candidates}

    async def step(subscription_id: UUID) -> None:
        subscription = await crud.subscription.get(db, id=subscription_id)
        if subscription is None:
            raise ItemSkipped("subscription not found")
        period_start, period_end = periods[subscription_id]
        invoice = await generate_invoice(
            db, subscription, period_start=period_start, period_end=period_end, now=now
        )
        await webhook_dispatcher.dispatch_event(
            db,
            app_id=subscription.app_id,
            event=WebhookEvent.INVOICE_CREATED.value,
            data=invoice_data(invoice),
            now=now,
        )

    return await _run_items(db, result, list(periods), step, dimension="subscription_id")


async def process_webhook_retries(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Redeliver outgoing webhooks whose retry is due.

    A delivered retry counts as succeeded; a retry that failed again, whether it was
    rescheduled or exhausted its attempts, counts as failed.
    """
    result = schemas.SweepResult(job="webhook_retries")
    logs = await crud.outgoing_webhook_log.get_pending_retries(
        db, now=now, limit=settings.WEBHOOK_RETRY_BATCH_LIMIT
    )
    logger.info(f"Found {len(logs)} webhook deliveries to retry")
    failed_outcomes = (RetryOutcome.RESCHEDULED, RetryOutcome.FAILED)

    async def step(log_id: UUID) -> None:
        log = await crud.outgoing_webhook_log.get(db, id=log_id)
        if log is None:
            raise ItemSkipped("delivery log not found")
        outcome = await webhook_dispatcher.retry_delivery(db, log, now=now)
        if outcome in failed_outcomes:
            raise ItemFailed(f"retry {outcome.value}")
        if outcome != RetryOutcome.DELIVERED:
            raise ItemSkipped(outcome.value)

    return await _run_items(db, result, [log.id for log in logs], step, "webhook_log_id")


async def recover_stale_webhook_deliveries(db: AsyncSession, now: int) -> schemas.SweepResult:
    """Count deliveries stuck in pending or sent as one failed attempt."""
    result = schemas.SweepResult(job="stale_webhook_recovery")
    logs = await crud.outgoing_webhook_log.get_stale_in_flight(
        db,
        created_before=now - settings.WEBHOOK_STALE_PENDING_MS,
        limit=settings.WEBHOOK_RETRY_BATCH_LIMIT,
    )
    logger.info(f"Found {len(logs)} stale webhook deliveries")

    async def step(log_id: UUID) -> None:
        log = await crud.outgoing_webhook_log.get(db, id=log_id)
        if log is None:
            raise ItemSkipped("delivery log not found")
        await webhook_dispatcher.recover_stale(db, log, now=now)

    return await _run_items(db, result, [log.id for log in logs], step, "webhook_log_id")


@dataclass(frozen=True)
class SweepJob:
    """A scheduled job and the setting that holds its cron expression."""

    handler: SweepHandler
    cron_setting: str

    @property
    def cron(self) -> str:
        """The job's cron expression from settings."""
        return getattr(settings, self.cron_setting)


JOBS: dict[str, SweepJob] = {
    "scheduled_cancellations": SweepJob(
        process_scheduled_cancellations, "CRON_SCHEDULED_CANCELLATIONS"
    ),
    "trial_expirations": SweepJob(process_trial_expirations, "CRON_TRIAL_EXPIRATIONS"),
    "recurring_payments": SweepJob(process_recurring_payments, "CRON_RECURRING_PAYMENTS"),
    "retry_failed_payments": SweepJob(retry_failed_payments, "CRON_RETRY_FAILED_PAYMENTS"),
    "expired_transactions": SweepJob(cleanup_expired_transactions, "CRON_EXPIRED_TRANSACTIONS"),
    "grace_period_expirations": SweepJob(
        process_grace_period_expirations, "CRON_GRACE_PERIOD_EXPIRATIONS"
    ),
    "pending_invoices": SweepJob(generate_pending_invoices, "CRON_PENDING_INVOICES"),
    "webhook_retries": SweepJob(process_webhook_retries, "CRON_WEBHOOK_RETRIES"),
    "stale_webhook_recovery": SweepJob(
        recover_stale_webhook_deliveries, "CRON_STALE_WEBHOOK_RECOVERY"
    ),
}
