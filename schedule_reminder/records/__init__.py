"""Reminder records — configuration, due item, notification."""

from schedule_reminder.records.models import (  # noqa: F401
    AttributeValue,
    Channel,
    DueItem,
    Notification,
    ReminderConfiguration,
    stringify_attribute,
)

__all__ = [
    "AttributeValue",
    "Channel",
    "DueItem",
    "Notification",
    "ReminderConfiguration",
    "stringify_attribute",
]
