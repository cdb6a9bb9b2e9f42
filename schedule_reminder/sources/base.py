"""
Reminder source interface — where configurations and due items come from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import List

from schedule_reminder.records.models import DueItem, ReminderConfiguration


class ReminderSource(ABC):
    """
    Supplies reminder configurations and the due items of each one.

    Implementations exhaust any pagination internally and drop invalid rows
    with a warning; only call-level failures raise.
    """

    @abstractmethod
    async def load_reminder_configs(self, master_ref: str) -> List[ReminderConfiguration]:
        """
        Return every enabled configuration in the master collection.

        Raises:
            SourceError: if the master collection cannot be read.
        """

    @abstractmethod
    async def fetch_due_items(
        self,
        config: ReminderConfiguration,
        today: date,
    ) -> List[DueItem]:
        """
        Return the configuration's due items, due on or after `today` where
        the backend can filter (callers re-check applicability themselves).

        Raises:
            SourceError: if the target collection cannot be read.
        """

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None
