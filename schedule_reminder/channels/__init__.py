"""Notification channels — webhook POST, token push, dry run."""

from schedule_reminder.channels.base import NotificationChannel  # noqa: F401
from schedule_reminder.channels.dry_run import DryRunChannel  # noqa: F401
from schedule_reminder.channels.factory import (  # noqa: F401
    ChannelFactory,
    lookup_channel,
    resolve_destination,
)
from schedule_reminder.channels.line import LinePushChannel  # noqa: F401
from schedule_reminder.channels.webhook import WebhookChannel  # noqa: F401

__all__ = [
    "ChannelFactory",
    "DryRunChannel",
    "LinePushChannel",
    "NotificationChannel",
    "WebhookChannel",
    "lookup_channel",
    "resolve_destination",
]
