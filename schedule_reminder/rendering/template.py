"""
Message rendering — literal {placeholder} substitution for reminder messages.

Fixed placeholders:
    {title}        due item title
    {due_date}     due date as YYYY-MM-DD in the configuration's timezone
    {days_text}    offset label for the triggered timing
    {url}          link back to the source row
    {description}  due item description

Then every attribute of the due item, as {lower-cased attribute name}.
Fixed placeholders are substituted first, so an attribute can only fill
placeholders the fixed set leaves behind. Unknown placeholders stay verbatim.
"""

from __future__ import annotations

from typing import Dict

from schedule_reminder.dates.timing import format_days_text
from schedule_reminder.engine.config import DEFAULT_MESSAGE_TEMPLATE
from schedule_reminder.records.models import DueItem, ReminderConfiguration, stringify_attribute


def select_template(item: DueItem, config: ReminderConfiguration) -> str:
    """Item override, then configuration template, then the built-in default."""
    return item.message_template or config.message_template or DEFAULT_MESSAGE_TEMPLATE


def fixed_values(item: DueItem, config: ReminderConfiguration, expression: str) -> Dict[str, str]:
    return {
        "{title}": item.title,
        "{due_date}": item.due.astimezone(config.tz).date().isoformat(),
        "{days_text}": format_days_text(expression),
        "{url}": item.url,
        "{description}": item.description,
    }


def render_message(item: DueItem, config: ReminderConfiguration, expression: str) -> str:
    """Build the notification text for one triggered timing."""
    message = select_template(item, config)

    for placeholder, value in fixed_values(item, config, expression).items():
        message = message.replace(placeholder, value)

    for name, value in item.attributes.items():
        text = stringify_attribute(value)
        if text is None:
            continue
        message = message.replace("{" + name.lower() + "}", text)

    return message
