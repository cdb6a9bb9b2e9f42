"""
Timing expressions — the closed grammar that turns a due date into a reminder date.

    same-day                   → the due date itself
    <N>-days-before            → N calendar days earlier
    <N>-business-days-before   → N business days earlier (needs a calculator)
    <N>-weeks-before           → 7·N calendar days earlier

Matching is exact after trimming surrounding whitespace. Each numeric form is
anchored on its full suffix, so "3-business-days-before" can never be read as
a "days-before" expression.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Union

from schedule_reminder.dates.business_days import BusinessDayCalculator
from schedule_reminder.engine.errors import CalculatorRequiredError, UnsupportedTimingError

SAME_DAY = "same-day"

LABEL_TODAY = "today"
LABEL_TOMORROW = "tomorrow"
LABEL_IN_TWO_DAYS = "in 2 days"

DateLike = Union[date, datetime]


class TimingKind(str, Enum):
    SAME_DAY = "same_day"
    DAYS_BEFORE = "days_before"
    BUSINESS_DAYS_BEFORE = "business_days_before"
    WEEKS_BEFORE = "weeks_before"


# Longest suffix first; ASCII digits only
_NUMERIC_FORMS = (
    (TimingKind.BUSINESS_DAYS_BEFORE, re.compile(r"^([0-9]+)-business-days-before$")),
    (TimingKind.WEEKS_BEFORE, re.compile(r"^([0-9]+)-weeks-before$")),
    (TimingKind.DAYS_BEFORE, re.compile(r"^([0-9]+)-days-before$")),
)

_LEADING_NUMBER = re.compile(r"^([0-9]+)")


@dataclass(frozen=True)
class TimingExpression:
    """A parsed timing expression."""

    kind: TimingKind
    amount: int = 0
    raw: str = ""

    @classmethod
    def parse(cls, expression: str) -> "TimingExpression":
        """
        Parse an expression string.

        Raises:
            UnsupportedTimingError: for anything outside the grammar.
        """
        text = expression.strip()
        if text == SAME_DAY:
            return cls(TimingKind.SAME_DAY, 0, text)

        for kind, pattern in _NUMERIC_FORMS:
            match = pattern.match(text)
            if match:
                return cls(kind, int(match.group(1)), text)

        raise UnsupportedTimingError(
            f"unsupported timing format: {expression}",
            expression=expression,
        )

    def reminder_date(
        self,
        due: DateLike,
        calculator: Optional[BusinessDayCalculator] = None,
    ) -> DateLike:
        """Apply this offset to a due date."""
        if self.kind is TimingKind.SAME_DAY:
            return due
        if self.kind is TimingKind.DAYS_BEFORE:
            return due - timedelta(days=self.amount)
        if self.kind is TimingKind.WEEKS_BEFORE:
            return due - timedelta(days=7 * self.amount)

        if calculator is None:
            raise CalculatorRequiredError(
                f"business day calculator required for: {self.raw}",
                expression=self.raw,
            )
        return calculator.subtract_business_days(due, self.amount)


def evaluate(
    due: DateLike,
    expression: str,
    calculator: Optional[BusinessDayCalculator] = None,
) -> DateLike:
    """
    Compute the reminder date for `expression` against `due`.

    Raises:
        UnsupportedTimingError: expression outside the grammar.
        CalculatorRequiredError: business-day form without a calculator.
    """
    return TimingExpression.parse(expression).reminder_date(due, calculator)


def is_same_date(a: DateLike, b: DateLike) -> bool:
    """Compare calendar year/month/day only. Zones must be normalized by the caller."""
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


def format_days_text(expression: str) -> str:
    """
    Short offset label for message rendering.

    same-day → "today", 1-days-before → "tomorrow", 2-days-before → "in 2 days".
    Every other expression becomes "in <N> days" from its leading integer,
    whatever its unit (weeks and business days included). Input with no
    leading integer is returned unchanged.
    """
    text = expression.strip()
    if text == SAME_DAY:
        return LABEL_TODAY
    if text == "1-days-before":
        return LABEL_TOMORROW
    if text == "2-days-before":
        return LABEL_IN_TWO_DAYS

    match = _LEADING_NUMBER.match(text)
    if match:
        return f"in {match.group(1)} days"
    return expression
