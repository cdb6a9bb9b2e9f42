"""Dry-run channel — logs what would be sent and records it in memory."""

from __future__ import annotations

import logging
from typing import List, Optional

from schedule_reminder.channels.base import NotificationChannel
from schedule_reminder.records.models import Notification

logger = logging.getLogger("schedule_reminder.channels.dry_run")


class DryRunChannel(NotificationChannel):

    def __init__(self, wrapped_name: str, sink: Optional[List[Notification]] = None):
        self._wrapped_name = wrapped_name
        self.sent: List[Notification] = sink if sink is not None else []

    @property
    def channel_name(self) -> str:
        return f"{self._wrapped_name} (dry run)"

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)
        logger.info(
            f"[dry run] {self._wrapped_name} → {notification.destination or '-'}: "
            f"{notification.message!r}"
        )
