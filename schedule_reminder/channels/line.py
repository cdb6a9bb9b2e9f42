"""Token-push channel — LINE Messaging API push message with bearer auth."""

from __future__ import annotations

import httpx

from schedule_reminder.channels.base import DEFAULT_SEND_TIMEOUT, NotificationChannel, post_json
from schedule_reminder.engine.errors import ChannelConfigError
from schedule_reminder.records.models import Notification

LINE_PUSH_ENDPOINT = "https://api.line.me/v2/bot/message/push"


class LinePushChannel(NotificationChannel):
    """Pushes one text message to the notification's destination (a LINE user/group ID)."""

    def __init__(
        self,
        channel_token: str,
        recipient_id: str,
        client: httpx.AsyncClient,
        endpoint: str = LINE_PUSH_ENDPOINT,
        timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        if not channel_token:
            raise ChannelConfigError("channel access token required for LINE", channel="LINE")
        if not recipient_id:
            raise ChannelConfigError("recipient ID required for LINE", channel="LINE")
        self._channel_token = channel_token
        self._recipient_id = recipient_id
        self._client = client
        self._endpoint = endpoint
        self._timeout = timeout

    @property
    def channel_name(self) -> str:
        return "LINE"

    async def send(self, notification: Notification) -> None:
        destination = notification.destination or self._recipient_id
        payload = {
            "to": destination,
            "messages": [{"type": "text", "text": notification.message}],
        }
        await post_json(
            self._client,
            self.channel_name,
            self._endpoint,
            payload,
            headers={"Authorization": f"Bearer {self._channel_token}"},
            timeout=self._timeout,
        )
