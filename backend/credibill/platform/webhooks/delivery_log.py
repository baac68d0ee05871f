"""State machine of an outgoing webhook delivery log row.

```
pending  --(attempt succeeds)------------------> delivered
pending  --(attempt fails, attempts remain)----> retrying
retrying --(attempt succeeds)------------------> delivered
retrying --(attempt fails, attempts remain)----> retrying (attempt_number + 1)
retrying --(attempt fails, none remain)--------> failed
```

`delivered` and `failed` are terminal. After every transition `next_retry_at` is
set exactly when the status is `retrying`, and `attempt_number` stays within
`max_attempts`.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud
from credibill.core.config import settings
from credibill.core.exceptions import InvalidStateError
from credibill.core.logging import logger
from credibill.core.shared_models import WebhookDeliveryStatus
from credibill.models.outgoing_webhook_log import OutgoingWebhookLog

TERMINAL_STATUSES = frozenset({WebhookDeliveryStatus.DELIVERED, WebhookDeliveryStatus.FAILED})


def is_terminal(log: OutgoingWebhookLog) -> bool:
    """Check whether the log has reached delivered or failed."""
    return WebhookDeliveryStatus(log.status) in TERMINAL_STATUSES


def _ensure_open(log: OutgoingWebhookLog) -> None:
    if is_terminal(log):
        raise InvalidStateError(f"Webhook log {log.id} is already {log.status}")


async def create_log(
    db: AsyncSession,
    *,
    organization_id: UUID,
    app_id: UUID,
    webhook_id: UUID,
    event: str,
    payload: Any,
    url: str,
    now: int,
    log_id: Optional[UUID] = None,
) -> OutgoingWebhookLog:
    """Create a pending log for the first delivery attempt of an event to one endpoint."""
    obj_in = {
        "organization_id": organization_id,
        "app_id": app_id,
        "webhook_id": webhook_id,
        "event": event,
        "payload": payload,
        "url": url,
        "status": WebhookDeliveryStatus.PENDING.value,
        "attempt_number": 1,
        "max_attempts": settings.WEBHOOK_MAX_ATTEMPTS,
        "next_retry_at": None,
        "created_at_ms": now,
    }
    if log_id is not None:
        obj_in["id"] = log_id
    return await crud.outgoing_webhook_log.create(db, obj_in=obj_in)


async def record_success(
    db: AsyncSession,
    log: OutgoingWebhookLog,
    *,
    now: int,
    http_status: int,
    response: Any = None,
    sent_at: Optional[int] = None,
) -> OutgoingWebhookLog:
    """Mark the current attempt as delivered.

    Raises:
        InvalidStateError: If the log is already delivered or failed.
    """
    _ensure_open(log)
    return await crud.outgoing_webhook_log.update(
        db,
        db_obj=log,
        obj_in={
            "status": WebhookDeliveryStatus.DELIVERED.value,
            "http_status": http_status,
            "response": response,
            "error": None,
            "next_retry_at": None,
            "sent_at": sent_at if sent_at is not None else now,
            "delivered_at": now,
        },
    )


async def record_failure(
    db: AsyncSession,
    log: OutgoingWebhookLog,
    *,
    now: int,
    delay_ms: int,
    error: str,
    http_status: Optional[int] = None,
    response: Any = None,
    sent_at: Optional[int] = None,
) -> OutgoingWebhookLog:
    """Record a failed attempt and schedule the next one if any remain.

    While `attempt_number < max_attempts` the log moves to retrying with the attempt
    number incremented and `next_retry_at = now + delay_ms`. Otherwise it becomes
    failed and `next_retry_at` is cleared.

    Args:
        db: Database session
        log: The log whose current attempt failed
        now: Time of the failure in epoch milliseconds
        delay_ms: Caller-chosen delay before the next attempt
        error: Description of the failure
        http_status: Status code, if the endpoint responded
        response: Decoded response body, if any
        sent_at: When the attempt was sent, defaults to `now`

    Raises:
        InvalidStateError: If the log is already delivered or failed.
    """
    _ensure_open(log)
    updates: dict[str, Any] = {
        "error": error,
        "http_status": http_status,
        "response": response,
        "sent_at": sent_at if sent_at is not None else now,
    }

    if log.attempt_number < log.max_attempts:
        updates["status"] = WebhookDeliveryStatus.RETRYING.value
        updates["attempt_number"] = log.attempt_number + 1
        updates["next_retry_at"] = now + delay_ms
    else:
        updates["status"] = WebhookDeliveryStatus.FAILED.value
        updates["next_retry_at"] = None
        logger.with_context(webhook_log_id=str(log.id), event=log.event).warning(
            f"Webhook delivery failed permanently after {log.attempt_number} attempts: {error}"
        )

    return await crud.outgoing_webhook_log.update(db, db_obj=log, obj_in=updates)


async def mark_failed(
    db: AsyncSession, log: OutgoingWebhookLog, *, error: Optional[str] = None
) -> OutgoingWebhookLog:
    """Finalize the log as failed without another attempt."""
    if WebhookDeliveryStatus(log.status) == WebhookDeliveryStatus.FAILED:
        return log
    _ensure_open(log)
    updates: dict[str, Any] = {
        "status": WebhookDeliveryStatus.FAILED.value,
        "next_retry_at": None,
    }
    if error is not None:
        updates["error"] = error
    return await crud.outgoing_webhook_log.update(db, db_obj=log, obj_in=updates)
