"""Webhook-POST channels — one JSON text field posted to a configured URL."""

from __future__ import annotations

import httpx

from schedule_reminder.channels.base import DEFAULT_SEND_TIMEOUT, NotificationChannel, post_json
from schedule_reminder.engine.errors import ChannelConfigError
from schedule_reminder.records.models import Notification


class WebhookChannel(NotificationChannel):
    """
    Posts {text_field: message} to the webhook URL.

    Discord incoming webhooks read "content", Slack incoming webhooks read "text".
    """

    def __init__(
        self,
        name: str,
        webhook_url: str,
        client: httpx.AsyncClient,
        text_field: str = "text",
        timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        if not webhook_url:
            raise ChannelConfigError(f"webhook URL required for {name}", channel=name)
        self._name = name
        self._webhook_url = webhook_url
        self._client = client
        self._text_field = text_field
        self._timeout = timeout

    @property
    def channel_name(self) -> str:
        return self._name

    @property
    def webhook_url(self) -> str:
        return self._webhook_url

    async def send(self, notification: Notification) -> None:
        await post_json(
            self._client,
            self._name,
            self._webhook_url,
            {self._text_field: notification.message},
            timeout=self._timeout,
        )
