"""Tests for the caregiver notification webhook client"""

import httpx
import pytest

from careguard_gateway.domain.exceptions import NotificationDeliveryError
from careguard_gateway.infrastructure.clients.notifier import NotifierClient, deliver_alert

WEBHOOK_URL = "http://notifier.test/alerts"
PAYLOAD = {"event": "IMMEDIATE_ALERT", "alert_id": 7, "patient_id": 1, "risk_score": 95}


def make_client(statuses, calls, max_retries: int = 3) -> NotifierClient:
    """Client whose transport answers with `statuses` in order, recording each request"""
    responses = iter(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        status = next(responses)
        if isinstance(status, Exception):
            raise status
        return httpx.Response(status)

    return NotifierClient(
        webhook_url=WEBHOOK_URL,
        max_retries=max_retries,
        backoff_base=0,
        transport=httpx.MockTransport(handler),
    )


async def test_delivers_on_first_attempt():
    calls = []
    client = make_client([200], calls)

    await client.send_alert_event(PAYLOAD)

    assert len(calls) == 1
    assert str(calls[0].url) == WEBHOOK_URL
    assert calls[0].method == "POST"


async def test_retries_until_success():
    calls = []
    client = make_client([503, httpx.ConnectError("refused"), 200], calls)

    await client.send_alert_event(PAYLOAD)

    assert len(calls) == 3


async def test_raises_after_final_attempt():
    calls = []
    client = make_client([500, 500, 500], calls)

    with pytest.raises(NotificationDeliveryError, match="after 3 attempts"):
        await client.send_alert_event(PAYLOAD)

    assert len(calls) == 3


async def test_deliver_alert_logs_instead_of_raising(caplog):
    calls = []
    client = make_client([502, 502], calls, max_retries=2)

    await deliver_alert(client, PAYLOAD)

    assert len(calls) == 2
    assert "Notification delivery failed" in caplog.text
