"""
Schedule Reminder — due-date reminders evaluated from Notion databases.
Version: 1.0

Each run loads enabled reminder configurations, evaluates every due item's
timing expressions against today's date in the configuration's timezone, and
sends the reminders that fall on today to Discord, Slack or LINE.
"""

__version__ = "1.0.0"
__all__ = ["engine", "records", "dates", "rendering", "channels", "sources", "process"]
