"""HTTP sender for outgoing webhooks."""

import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from credibill.core.config import settings
from credibill.core.datetime_utils import utc_now_ms
from credibill.core.exceptions import WebhookDeliveryError

MAX_RESPONSE_TEXT_LENGTH = 1000

SIGNATURE_HEADER = "X-CrediBill-Signature"
TIMESTAMP_HEADER = "X-CrediBill-Timestamp"


def sign_payload(body: str, secret: str, timestamp: str) -> str:
    """HMAC-SHA256 hex digest of `"{timestamp}.{body}"` keyed with the endpoint secret."""
    message = f"{timestamp}.{body}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _decode_response(response: httpx.Response) -> Any:
    text = response.text
    if not text:
        return None
    try:
        return response.json()
    except ValueError:
        return text[:MAX_RESPONSE_TEXT_LENGTH]


@dataclass
class DeliveryResponse:
    """A 2xx response from a webhook endpoint."""

    http_status: int
    body: Any
    duration_ms: int


class WebhookSender:
    """Posts signed event payloads to webhook endpoints."""

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        """Initialize the sender.

        Args:
            transport: Optional httpx transport, used by tests to stub the network
            timeout: Request timeout in seconds, defaults to WEBHOOK_TIMEOUT_SECONDS
            user_agent: User-Agent header, defaults to WEBHOOK_USER_AGENT
        """
        self.transport = transport
        self.timeout = timeout if timeout is not None else settings.WEBHOOK_TIMEOUT_SECONDS
        self.user_agent = user_agent or settings.WEBHOOK_USER_AGENT

    def build_headers(self, body: str, secret: str, event: str, attempt_number: int) -> dict:
        """Build the request headers including the signature and its timestamp."""
        timestamp = str(utc_now_ms())
        return {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            SIGNATURE_HEADER: sign_payload(body, secret, timestamp),
            TIMESTAMP_HEADER: timestamp,
            "X-Webhook-Event": event,
            "X-Delivery-Attempt": str(attempt_number),
        }

    async def send(
        self,
        *,
        url: str,
        payload: Any,
        secret: str,
        event: str,
        attempt_number: int,
    ) -> DeliveryResponse:
        """Post one delivery attempt.

        Args:
            url: Endpoint URL
            payload: JSON-serializable body
            secret: Endpoint signing secret
            event: Event name, sent as a header
            attempt_number: Attempt number, sent as a header

        Returns:
            DeliveryResponse: The endpoint's 2xx response

        Raises:
            WebhookDeliveryError: On a non-2xx response, a timeout, a transport error or
                an invalid endpoint URL.
        """
        body = json.dumps(payload, separators=(",", ":"), default=str)
        headers = self.build_headers(body, secret, event, attempt_number)
        started = utc_now_ms()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(url, content=body, headers=headers)
        except httpx.TimeoutException as e:
            raise WebhookDeliveryError("Request timeout") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise WebhookDeliveryError(f"{e.__class__.__name__}: {e}") from e

        decoded = _decode_response(response)
        if not response.is_success:
            raise WebhookDeliveryError(
                f"HTTP {response.status_code}: {json.dumps(decoded, default=str)}",
                http_status=response.status_code,
                response=decoded,
            )

        return DeliveryResponse(
            http_status=response.status_code,
            body=decoded,
            duration_ms=utc_now_ms() - started,
        )
