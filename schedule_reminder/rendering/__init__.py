"""Message rendering."""

from schedule_reminder.rendering.template import render_message, select_template  # noqa: F401

__all__ = ["render_message", "select_template"]
