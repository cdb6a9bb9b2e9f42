"""
Channel factory — maps a ReminderConfiguration to its sender.

    discord → WebhookChannel("content")
    slack   → WebhookChannel("text")
    line    → LinePushChannel
    email   → recognized, not implemented (ChannelNotImplementedError)
    other   → UnsupportedChannelError

Required fields are checked when the sender is built, before any network call.
One httpx.AsyncClient is pooled per channel kind and closed on shutdown.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx

from schedule_reminder.channels.base import DEFAULT_SEND_TIMEOUT, NotificationChannel
from schedule_reminder.channels.dry_run import DryRunChannel
from schedule_reminder.channels.line import LinePushChannel
from schedule_reminder.channels.webhook import WebhookChannel
from schedule_reminder.engine.errors import ChannelNotImplementedError, UnsupportedChannelError
from schedule_reminder.records.models import Channel, Notification, ReminderConfiguration

logger = logging.getLogger("schedule_reminder.channels.factory")

TOKEN_PUSH_CHANNELS = frozenset({Channel.LINE})


def lookup_channel(config: ReminderConfiguration) -> Channel:
    """
    Resolve the configured channel name against the enumeration.

    Raises:
        UnsupportedChannelError: name not in the enumeration.
    """
    channel = Channel.lookup(config.channel)
    if channel is None:
        raise UnsupportedChannelError(
            f"unsupported notification channel: {config.channel}",
            channel=config.channel,
            config_id=config.id,
        )
    return channel


def resolve_destination(config: ReminderConfiguration) -> str:
    """Webhook URL for webhook channels, recipient ID for token-push channels."""
    if Channel.lookup(config.channel) in TOKEN_PUSH_CHANNELS:
        return config.recipient_id
    return config.webhook_url


class ChannelFactory:
    """
    Builds senders for configurations, sharing one pooled httpx client per
    channel kind.

    Args:
        timeout: Per-request send timeout in seconds.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
        dry_run: Validate as usual, then return a DryRunChannel that only logs.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_SEND_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        dry_run: bool = False,
    ):
        self._timeout = timeout
        self._transport = transport
        self._dry_run = dry_run
        self._clients: Dict[Channel, httpx.AsyncClient] = {}
        self.dry_run_sent: List[Notification] = []

    def _get_or_create_client(self, channel: Channel) -> httpx.AsyncClient:
        if channel not in self._clients:
            self._clients[channel] = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=self._timeout),
                transport=self._transport,
            )
            logger.debug(f"Created httpx client for channel '{channel.value}'")
        return self._clients[channel]

    def create(self, config: ReminderConfiguration) -> NotificationChannel:
        """
        Build the sender for a configuration.

        Raises:
            UnsupportedChannelError: channel name not recognized.
            ChannelNotImplementedError: recognized but no sender ships for it.
            ChannelConfigError: required URL / token / recipient missing.
        """
        channel = lookup_channel(config)
        sender = self._build(channel, config)
        if self._dry_run:
            return DryRunChannel(sender.channel_name, sink=self.dry_run_sent)
        return sender

    def _build(self, channel: Channel, config: ReminderConfiguration) -> NotificationChannel:
        if channel is Channel.DISCORD:
            return WebhookChannel(
                "Discord",
                config.webhook_url,
                self._get_or_create_client(channel),
                text_field="content",
                timeout=self._timeout,
            )

        if channel is Channel.SLACK:
            return WebhookChannel(
                "Slack",
                config.webhook_url,
                self._get_or_create_client(channel),
                text_field="text",
                timeout=self._timeout,
            )

        if channel is Channel.LINE:
            return LinePushChannel(
                config.channel_token,
                config.recipient_id,
                self._get_or_create_client(channel),
                timeout=self._timeout,
            )

        raise ChannelNotImplementedError(
            f"{channel.value} notifier not yet implemented",
            channel=channel.value,
            config_id=config.id,
        )

    async def close_all_clients(self) -> None:
        """Close all pooled httpx clients."""
        for name, client in self._clients.items():
            try:
                await client.aclose()
            except Exception as e:
                logger.warning(f"Error closing httpx client for '{name.value}': {e}")
        self._clients.clear()
