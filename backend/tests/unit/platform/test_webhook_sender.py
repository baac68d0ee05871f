"""Unit tests for the webhook sender, signing and retry delays."""

import hashlib
import hmac
import json
import uuid

import httpx
import pytest

from credibill.core.exceptions import WebhookDeliveryError
from credibill.platform.webhooks.events import build_envelope, payment_due_data
from credibill.platform.webhooks.retry_policy import RetryPolicy
from credibill.platform.webhooks.sender import (
    MAX_RESPONSE_TEXT_LENGTH,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    WebhookSender,
    sign_payload,
)

SECRET = "whsec_test"
URL = "https://hooks.example.com/credibill"


def _sender(handler) -> WebhookSender:
    return WebhookSender(transport=httpx.MockTransport(handler), timeout=5)


@pytest.mark.unit
class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_default_schedule(self):
        """One, five and fifteen minutes."""
        policy = RetryPolicy()
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [60_000, 300_000, 900_000]

    def test_last_delay_repeats(self):
        """Attempts beyond the schedule reuse the last delay."""
        assert RetryPolicy(delays_ms=(10, 20)).delay_for(5) == 20

    def test_empty_schedule_retries_immediately(self):
        """No delays configured means no wait."""
        assert RetryPolicy(delays_ms=()).delay_for(1) == 0


@pytest.mark.unit
class TestEvents:
    """Tests for event payload builders."""

    def test_envelope(self):
        """The envelope carries the event, its data and the app."""
        app_id = uuid.uuid4()
        envelope = build_envelope("payment.due", {"a": 1}, app_id, 1234)
        assert envelope == {
            "event": "payment.due",
            "data": {"a": 1},
            "timestamp": 1234,
            "app_id": str(app_id),
        }

    def test_payment_due_defaults(self):
        """Without a plan snapshot the amount is zero in USD."""

        class Sub:
            id = uuid.uuid4()
            customer_id = uuid.uuid4()
            plan_snapshot = None
            next_payment_date = 99
            current_period_start = 1
            current_period_end = 2

        data = payment_due_data(Sub)
        assert data["amount_due"] == 0
        assert data["currency"] == "USD"
        assert data["due_date"] == 99
        assert data["billing_period"] == {"start": 1, "end": 2}


@pytest.mark.unit
class TestWebhookSender:
    """Tests for WebhookSender.send."""

    async def test_signs_and_posts_payload(self):
        """The signature covers the timestamp header and the exact body."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(200, json={"received": True})

        payload = {"event": "invoice.created", "data": {"invoice_id": "inv_1"}}
        response = await _sender(handler).send(
            url=URL, payload=payload, secret=SECRET, event="invoice.created", attempt_number=2
        )

        request = captured["request"]
        body = request.content.decode("utf-8")
        timestamp = request.headers[TIMESTAMP_HEADER]
        expected = hmac.new(
            SECRET.encode(), f"{timestamp}.{body}".encode(), hashlib.sha256
        ).hexdigest()

        assert json.loads(body) == payload
        assert request.headers[SIGNATURE_HEADER] == expected
        assert request.headers["X-Webhook-Event"] == "invoice.created"
        assert request.headers["X-Delivery-Attempt"] == "2"
        assert request.headers["User-Agent"] == "CrediBill-Webhooks/1.0"
        assert response.http_status == 200
        assert response.body == {"received": True}

    def test_sign_payload_is_deterministic(self):
        """Same inputs, same signature; a different secret changes it."""
        assert sign_payload("{}", SECRET, "1") == sign_payload("{}", SECRET, "1")
        assert sign_payload("{}", SECRET, "1") != sign_payload("{}", "other", "1")

    async def test_non_2xx_raises_with_status(self):
        """Any non-2xx response is a failed delivery."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="x" * 5000)

        with pytest.raises(WebhookDeliveryError) as exc_info:
            await _sender(handler).send(
                url=URL, payload={}, secret=SECRET, event="payment.due", attempt_number=1
            )

        assert exc_info.value.http_status == 503
        assert exc_info.value.message.startswith("HTTP 503")
        assert len(exc_info.value.response) == MAX_RESPONSE_TEXT_LENGTH

    async def test_timeout_raises(self):
        """Timeouts are reported without a status."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(WebhookDeliveryError) as exc_info:
            await _sender(handler).send(
                url=URL, payload={}, secret=SECRET, event="payment.due", attempt_number=1
            )

        assert exc_info.value.message == "Request timeout"
        assert exc_info.value.http_status is None

    async def test_connection_error_raises(self):
        """Transport errors are failed deliveries too."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(WebhookDeliveryError) as exc_info:
            await _sender(handler).send(
                url=URL, payload={}, secret=SECRET, event="payment.due", attempt_number=1
            )

        assert "ConnectError" in exc_info.value.message

    async def test_invalid_url_raises(self):
        """An endpoint URL that cannot be parsed is a failed delivery, not a crash."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200)

        with pytest.raises(WebhookDeliveryError) as exc_info:
            await _sender(handler).send(
                url="https://hooks.example.com:abc/",
                payload={},
                secret=SECRET,
                event="payment.due",
                attempt_number=1,
            )

        assert "InvalidURL" in exc_info.value.message
        assert exc_info.value.http_status is None
        assert requests == []
