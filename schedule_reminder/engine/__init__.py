"""Schedule Reminder Engine — configuration, errors, logging, credentials."""

from schedule_reminder.engine.config import ReminderDefaults, Settings, load_settings  # noqa: F401
from schedule_reminder.engine.credentials import CredentialManager  # noqa: F401
from schedule_reminder.engine.errors import ReminderError  # noqa: F401

__all__ = [
    "CredentialManager",
    "ReminderDefaults",
    "ReminderError",
    "Settings",
    "load_settings",
]
