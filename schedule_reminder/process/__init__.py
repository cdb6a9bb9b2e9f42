"""Reminder process — one evaluation and dispatch pass."""

from schedule_reminder.process.orchestrator import (  # noqa: F401
    ConfigOutcome,
    ReminderOrchestrator,
    RunReport,
)

__all__ = ["ConfigOutcome", "ReminderOrchestrator", "RunReport"]
