"""
Business-day arithmetic — weekends and a fixed holiday set, in one timezone.

Holidays are normalized to calendar dates once at construction so every lookup
during a walk is a set lookup.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import FrozenSet, Iterable, Optional, Union

# Monday == 0 ... Sunday == 6
SATURDAY = 5
SUNDAY = 6
WEEKEND_DAYS: FrozenSet[int] = frozenset({SATURDAY, SUNDAY})

DateLike = Union[date, datetime]


class BusinessDayCalculator:
    """
    Answers "is this a business day" and walks N business days back or forward.

    Immutable once constructed; one instance may be shared by every
    configuration using the same timezone.
    """

    __slots__ = ("_holidays", "_weekend_days", "_timezone")

    def __init__(
        self,
        holidays: Optional[Iterable[DateLike]] = None,
        timezone: Optional[tzinfo] = None,
        weekend_days: Iterable[int] = WEEKEND_DAYS,
    ):
        self._timezone = timezone
        self._weekend_days = frozenset(weekend_days)
        self._holidays: FrozenSet[date] = frozenset(
            self._calendar_date(h) for h in (holidays or ())
        )

    @property
    def timezone(self) -> Optional[tzinfo]:
        return self._timezone

    @property
    def holidays(self) -> FrozenSet[date]:
        return self._holidays

    def _normalize(self, value: DateLike) -> DateLike:
        if isinstance(value, datetime) and value.tzinfo is not None and self._timezone is not None:
            return value.astimezone(self._timezone)
        return value

    def _calendar_date(self, value: DateLike) -> date:
        value = self._normalize(value)
        if isinstance(value, datetime):
            return value.date()
        return value

    def is_business_day(self, value: DateLike) -> bool:
        """False on weekend days and holidays; time of day is ignored."""
        day = self._calendar_date(value)
        if day.weekday() in self._weekend_days:
            return False
        return day not in self._holidays

    def subtract_business_days(self, value: DateLike, days: int) -> DateLike:
        """
        Walk back one calendar day at a time until `days` business days are
        consumed. Time of day is preserved; days == 0 returns the input
        (normalized to the calculator's timezone).
        """
        return self._walk(value, days, step=-1)

    def add_business_days(self, value: DateLike, days: int) -> DateLike:
        """Forward counterpart of subtract_business_days."""
        return self._walk(value, days, step=1)

    def _walk(self, value: DateLike, days: int, step: int) -> DateLike:
        current = self._normalize(value)
        remaining = days
        one_day = timedelta(days=step)
        while remaining > 0:
            current = current + one_day
            if self.is_business_day(current):
                remaining -= 1
        return current

    def __repr__(self) -> str:
        return (
            f"BusinessDayCalculator(timezone={self._timezone!s}, "
            f"holidays={len(self._holidays)})"
        )
