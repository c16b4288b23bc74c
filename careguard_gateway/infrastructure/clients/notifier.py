"""Caregiver notification webhook client with exponential backoff retry logic"""

import asyncio
import logging
import httpx
from typing import Dict, Any, Optional
from careguard_gateway.config import settings
from careguard_gateway.domain.exceptions import NotificationDeliveryError
from careguard_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


class NotifierClient:
    """Client for pushing immediate alerts to the caregiver notification service"""

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url or settings.notifier_webhook_url
        self.max_retries = max_retries if max_retries is not None else settings.webhook_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    async def send_alert_event(self, payload: Dict[str, Any]) -> None:
        """
        Send an immediate alert event with retry logic.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt-1), i.e. 1s, 2s, 4s, 8s with base 1
        - Retries on 4xx/5xx responses and network failures
        - Tracks latency histogram and failure counter

        Raises:
            NotificationDeliveryError: After the final failed attempt
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise NotificationDeliveryError(
                            f"Notification delivery failed after {attempt} attempts: {e}"
                        ) from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    logging.warning(
                        f"Notification attempt {attempt} failed, retrying in {backoff}s",
                        extra={"alert_id": payload.get("alert_id")},
                    )
                    await asyncio.sleep(backoff)


async def deliver_alert(client: NotifierClient, payload: Dict[str, Any]) -> None:
    """Background task wrapper: delivery failures are logged, never raised into the request"""
    try:
        await client.send_alert_event(payload)
    except NotificationDeliveryError as e:
        logging.error(str(e), extra={"alert_id": payload.get("alert_id"), "patient_id": payload.get("patient_id")})
