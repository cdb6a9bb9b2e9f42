"""
Notification channel interface and the shared JSON POST used by every sender.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from schedule_reminder.engine.errors import DeliveryError
from schedule_reminder.records.models import Notification

logger = logging.getLogger("schedule_reminder.channels")

DEFAULT_SEND_TIMEOUT = 10.0


class NotificationChannel(ABC):
    """A delivery mechanism: send one rendered notification or raise."""

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Display name, used in logs and run reports."""

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """
        Deliver the notification.

        Raises:
            DeliveryError: on non-2xx status or transport failure.
        """


async def post_json(
    client: httpx.AsyncClient,
    channel: str,
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_SEND_TIMEOUT,
) -> int:
    """
    POST a JSON body and enforce the 2xx policy.

    Returns:
        The response status code.
    """
    try:
        response = await client.post(url, json=payload, headers=headers, timeout=timeout)
    except httpx.HTTPError as e:
        raise DeliveryError(
            f"{channel} request failed: {e.__class__.__name__}: {e}",
            channel=channel,
        )

    if not 200 <= response.status_code < 300:
        raise DeliveryError(
            f"{channel} returned status {response.status_code}",
            channel=channel,
            status_code=response.status_code,
            response_body=response.text[:500],
        )
    return response.status_code
