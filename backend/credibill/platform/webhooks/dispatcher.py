"""Dispatch of domain events to outgoing webhook endpoints."""

import uuid
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from credibill import crud
from credibill.core.exceptions import WebhookDeliveryError
from credibill.core.logging import LoggerConfigurator
from credibill.core.shared_models import WebhookDeliveryStatus, WebhookEndpointStatus
from credibill.models.outgoing_webhook_log import OutgoingWebhookLog
from credibill.models.webhook_endpoint import WebhookEndpoint
from credibill.platform.webhooks import delivery_log
from credibill.platform.webhooks.events import build_envelope
from credibill.platform.webhooks.retry_policy import RetryPolicy
from credibill.platform.webhooks.sender import WebhookSender

logger = LoggerConfigurator.configure_logger(__name__, prefix="[Webhooks] ")


class RetryOutcome(str, Enum):
    """Result of one retry_delivery call."""

    DELIVERED = "delivered"
    RESCHEDULED = "rescheduled"
    FAILED = "failed"
    ALREADY_DELIVERED = "already_delivered"
    ALREADY_FAILED = "already_failed"
    WEBHOOK_INACTIVE = "webhook_inactive"
    NOT_DUE = "not_due"


class WebhookDispatcher:
    """Creates delivery logs for events and drives their delivery attempts.

    Delivery is at least once: an endpoint may see an event again when a response
    is lost, so receivers deduplicate on the log id in the payload.
    """

    def __init__(
        self,
        sender: Optional[WebhookSender] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Initialize the dispatcher.

        Args:
            sender: HTTP sender, a default WebhookSender if omitted
            retry_policy: Delay strategy, built from settings if omitted
        """
        self.sender = sender or WebhookSender()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()

    async def dispatch_event(
        self,
        db: AsyncSession,
        *,
        app_id: UUID,
        event: str,
        data: dict[str, Any],
        now: int,
    ) -> list[OutgoingWebhookLog]:
        """Fan an event out to every active endpoint of the app subscribed to it.

        One pending log is created per endpoint, then the first attempt is made.
        Endpoints are handled one by one: an error on one is logged and the others
        still get their log. A log left pending by such an error is picked up by
        stale delivery recovery.

        Returns:
            The logs after their first attempt.
        """
        endpoints = await crud.webhook_endpoint.get_active_for_event(
            db, app_id=app_id, event=event
        )
        if not endpoints:
            logger.debug(f"No active endpoints for {event} on app {app_id}")
            return []

        logs = []
        for endpoint in endpoints:
            try:
                logs.append(
                    await self._dispatch_to_endpoint(
                        db, endpoint, app_id=app_id, event=event, data=data, now=now
                    )
                )
            except Exception as e:
                logger.with_context(webhook_id=str(endpoint.id), event=event).error(
                    f"Failed to dispatch {event} to endpoint: {e}", exc_info=True
                )

        logger.info(
            f"Dispatched {event} to {len(logs)} of {len(endpoints)} endpoint(s) for app {app_id}"
        )
        return logs

    async def _dispatch_to_endpoint(
        self,
        db: AsyncSession,
        endpoint: WebhookEndpoint,
        *,
        app_id: UUID,
        event: str,
        data: dict[str, Any],
        now: int,
    ) -> OutgoingWebhookLog:
        # The log id doubles as the idempotency key receivers deduplicate on
        log_id = uuid.uuid4()
        payload = build_envelope(event, data, app_id, now)
        payload["delivery_id"] = str(log_id)
        log = await delivery_log.create_log(
            db,
            log_id=log_id,
            organization_id=endpoint.organization_id,
            app_id=app_id,
            webhook_id=endpoint.id,
            event=event,
            payload=payload,
            url=endpoint.url,
            now=now,
        )
        return await self.deliver(db, log, secret=endpoint.secret, now=now)

    async def deliver(
        self, db: AsyncSession, log: OutgoingWebhookLog, *, secret: str, now: int
    ) -> OutgoingWebhookLog:
        """Make one delivery attempt for the log and apply the resulting transition."""
        log_logger = logger.with_context(
            webhook_log_id=str(log.id), event=log.event, attempt=log.attempt_number
        )
        try:
            response = await self.sender.send(
                url=log.url,
                payload=log.payload,
                secret=secret,
                event=log.event,
                attempt_number=log.attempt_number,
            )
        except WebhookDeliveryError as e:
            log_logger.warning(f"Delivery attempt failed: {e.message}")
            return await delivery_log.record_failure(
                db,
                log,
                now=now,
                delay_ms=self.retry_policy.delay_for(log.attempt_number),
                error=e.message,
                http_status=e.http_status,
                response=e.response,
                sent_at=now,
            )

        log_logger.debug(f"Delivered with HTTP {response.http_status} in {response.duration_ms}ms")
        return await delivery_log.record_success(
            db,
            log,
            now=now,
            http_status=response.http_status,
            response=response.body,
            sent_at=now,
        )

    async def retry_delivery(
        self, db: AsyncSession, log: OutgoingWebhookLog, *, now: int
    ) -> RetryOutcome:
        """Redeliver a log that is due for retry.

        Terminal logs are left untouched. A log whose endpoint was deleted or
        deactivated is finalized as failed.
        """
        status = WebhookDeliveryStatus(log.status)
        if status == WebhookDeliveryStatus.DELIVERED:
            return RetryOutcome.ALREADY_DELIVERED
        if status == WebhookDeliveryStatus.FAILED:
            return RetryOutcome.ALREADY_FAILED
        if status == WebhookDeliveryStatus.RETRYING and (
            log.next_retry_at is None or log.next_retry_at > now
        ):
            return RetryOutcome.NOT_DUE

        endpoint = await crud.webhook_endpoint.get(db, id=log.webhook_id)
        if endpoint is None or endpoint.status != WebhookEndpointStatus.ACTIVE.value:
            logger.with_context(webhook_log_id=str(log.id)).info(
                f"Webhook endpoint {log.webhook_id} is not active, finalizing delivery"
            )
            await delivery_log.mark_failed(db, log, error="Webhook endpoint inactive or deleted")
            return RetryOutcome.WEBHOOK_INACTIVE

        log = await self.deliver(db, log, secret=endpoint.secret, now=now)
        status = WebhookDeliveryStatus(log.status)
        if status == WebhookDeliveryStatus.DELIVERED:
            return RetryOutcome.DELIVERED
        if status == WebhookDeliveryStatus.RETRYING:
            return RetryOutcome.RESCHEDULED
        return RetryOutcome.FAILED

    async def recover_stale(
        self, db: AsyncSession, log: OutgoingWebhookLog, *, now: int
    ) -> OutgoingWebhookLog:
        """Count an attempt that never completed as failed.

        The log then either joins retry discovery or, with no attempts left, becomes
        failed. No lease is taken before attempts, so this is how a crash between
        creating a log and recording its outcome is recovered.
        """
        logger.with_context(webhook_log_id=str(log.id)).warning(
            f"Recovering delivery left {log.status} since {log.created_at_ms}"
        )
        return await delivery_log.record_failure(
            db,
            log,
            now=now,
            delay_ms=self.retry_policy.delay_for(log.attempt_number),
            error="Delivery attempt did not complete",
        )


webhook_dispatcher = WebhookDispatcher()
