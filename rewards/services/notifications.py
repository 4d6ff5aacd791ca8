"""Best-effort notification dispatch.

Notifications are sent after the unit of work commits. A failed delivery
is logged and dropped; it never reaches the financial path.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

import httpx
from tenacity import RetryError

from rewards.config import get_settings
from rewards.logging_config import get_logger
from rewards.utils.http_client import AsyncHttpClient

logger = get_logger(__name__)


class NotificationEvent(str, Enum):
    PENDING_TRANSFER_CREATED = "pending_transfer_created"
    PENDING_TRANSFER_CLAIMED = "pending_transfer_claimed"
    COINS_AWARDED = "coins_awarded"
    GAMES_AUTO_DISABLED = "games_auto_disabled"
    JACKPOT_WON = "jackpot_won"


class NotificationDispatcher:
    """Posts events to the configured webhook, if any."""

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.webhook_url = webhook_url if webhook_url is not None else settings.notification_webhook_url
        self.timeout = timeout or settings.notification_timeout_seconds
        self._transport = transport

    async def dispatch(self, event: NotificationEvent, payload: dict[str, Any]) -> bool:
        """Send one event. Returns True if delivered.

        Never raises: delivery problems are logged.
        """
        if not self.webhook_url:
            logger.debug("notification_skipped", notification=event.value, reason="no_webhook")
            return False

        body = {
            "event": event.value,
            "sentAt": datetime.now(timezone.utc).isoformat(),
            "payload": payload,
        }
        try:
            async with AsyncHttpClient(timeout=self.timeout, transport=self._transport) as client:
                await client.post(self.webhook_url, json=body)
        except (httpx.HTTPError, RetryError) as e:
            logger.warning(
                "notification_failed",
                notification=event.value,
                error=str(e),
            )
            return False

        logger.info("notification_sent", notification=event.value)
        return True
