"""Tests for best-effort webhook notifications."""

import json

import httpx
import pytest

from rewards.services.notifications import NotificationDispatcher, NotificationEvent

WEBHOOK = "https://hooks.example.com/rewards"


def recording_transport(status_code: int = 200):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={"ok": status_code < 400})

    return httpx.MockTransport(handler), requests


class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_posts_event_envelope(self):
        transport, requests = recording_transport()
        dispatcher = NotificationDispatcher(webhook_url=WEBHOOK, transport=transport)

        delivered = await dispatcher.dispatch(
            NotificationEvent.COINS_AWARDED, {"amount": "10.00", "managerId": "m-1"}
        )

        assert delivered is True
        assert len(requests) == 1
        assert str(requests[0].url) == WEBHOOK
        body = json.loads(requests[0].content)
        assert body["event"] == "coins_awarded"
        assert body["payload"] == {"amount": "10.00", "managerId": "m-1"}
        assert "sentAt" in body

    @pytest.mark.asyncio
    async def test_server_error_is_swallowed(self):
        transport, requests = recording_transport(status_code=500)
        dispatcher = NotificationDispatcher(webhook_url=WEBHOOK, transport=transport)

        delivered = await dispatcher.dispatch(NotificationEvent.GAMES_AUTO_DISABLED, {})

        # Status errors are not retried
        assert delivered is False
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_network_errors_retry_then_give_up(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        dispatcher = NotificationDispatcher(
            webhook_url=WEBHOOK, transport=httpx.MockTransport(handler)
        )

        delivered = await dispatcher.dispatch(NotificationEvent.JACKPOT_WON, {"amount": "1.00"})

        assert delivered is False
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_no_webhook_configured(self):
        transport, requests = recording_transport()
        dispatcher = NotificationDispatcher(webhook_url="", transport=transport)

        assert await dispatcher.dispatch(NotificationEvent.PENDING_TRANSFER_CREATED, {}) is False
        assert requests == []
