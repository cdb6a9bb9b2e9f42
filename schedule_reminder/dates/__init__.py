"""Date arithmetic — business days and timing expressions."""

from schedule_reminder.dates.business_days import BusinessDayCalculator  # noqa: F401
from schedule_reminder.dates.timing import (  # noqa: F401
    SAME_DAY,
    TimingExpression,
    TimingKind,
    evaluate,
    format_days_text,
    is_same_date,
)

__all__ = [
    "BusinessDayCalculator",
    "SAME_DAY",
    "TimingExpression",
    "TimingKind",
    "evaluate",
    "format_days_text",
    "is_same_date",
]
