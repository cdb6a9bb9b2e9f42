"""Reminder sources — where configurations and due items are read from."""

from schedule_reminder.sources.base import ReminderSource  # noqa: F401
from schedule_reminder.sources.notion import NotionSource  # noqa: F401
from schedule_reminder.sources.notion_setup import NotionSetup  # noqa: F401
from schedule_reminder.sources.static import StaticSource  # noqa: F401

__all__ = ["NotionSetup", "NotionSource", "ReminderSource", "StaticSource"]
