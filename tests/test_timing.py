"""Unit tests for schedule_reminder.dates.timing — expression grammar and labels."""

import pytest
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from schedule_reminder.dates.business_days import BusinessDayCalculator
from schedule_reminder.dates.timing import (
    TimingExpression,
    TimingKind,
    evaluate,
    format_days_text,
    is_same_date,
)
from schedule_reminder.engine.errors import CalculatorRequiredError, UnsupportedTimingError

TOKYO = ZoneInfo("Asia/Tokyo")


class TestParse:

    @pytest.mark.parametrize("text,kind,amount", [
        ("same-day", TimingKind.SAME_DAY, 0),
        ("3-days-before", TimingKind.DAYS_BEFORE, 3),
        ("0-days-before", TimingKind.DAYS_BEFORE, 0),
        ("2-business-days-before", TimingKind.BUSINESS_DAYS_BEFORE, 2),
        ("1-weeks-before", TimingKind.WEEKS_BEFORE, 1),
        ("  same-day  ", TimingKind.SAME_DAY, 0),
    ])
    def test_grammar(self, text, kind, amount):
        parsed = TimingExpression.parse(text)
        assert parsed.kind is kind
        assert parsed.amount == amount

    def test_business_days_never_read_as_days(self):
        assert TimingExpression.parse("10-business-days-before").kind is TimingKind.BUSINESS_DAYS_BEFORE

    @pytest.mark.parametrize("text", [
        "garbage", "", "same day", "3 days before", "-1-days-before",
        "3-days-after", "x-days-before", "3-Days-Before", "1-week-before",
        "\uff13-days-before", "\u0663-business-days-before",
    ])
    def test_rejects_everything_else(self, text):
        with pytest.raises(UnsupportedTimingError, match="unsupported timing format"):
            TimingExpression.parse(text)


class TestEvaluate:

    def setup_method(self):
        self.due = datetime(2024, 1, 8, 9, 0, tzinfo=TOKYO)
        self.calc = BusinessDayCalculator(timezone=TOKYO)

    def test_same_day(self):
        assert evaluate(self.due, "same-day") == self.due

    @pytest.mark.parametrize("n", [0, 1, 2, 7, 30])
    def test_days_before(self, n):
        assert evaluate(self.due, f"{n}-days-before") == self.due - timedelta(days=n)

    def test_weeks_before(self):
        assert evaluate(self.due, "2-weeks-before") == self.due - timedelta(days=14)

    def test_business_days_before_skips_weekend(self):
        result = evaluate(self.due, "2-business-days-before", self.calc)
        assert result.date() == date(2024, 1, 4)

    def test_business_days_need_calculator(self):
        with pytest.raises(CalculatorRequiredError):
            evaluate(self.due, "2-business-days-before")

    def test_works_on_plain_dates(self):
        assert evaluate(date(2024, 1, 8), "1-days-before") == date(2024, 1, 7)

    def test_garbage(self):
        with pytest.raises(UnsupportedTimingError):
            evaluate(self.due, "garbage", self.calc)


class TestIsSameDate:

    def test_ignores_time_of_day(self):
        assert is_same_date(datetime(2024, 1, 8, 0, 1), datetime(2024, 1, 8, 23, 59))

    def test_mixed_date_and_datetime(self):
        assert is_same_date(datetime(2024, 1, 8, 9, 0, tzinfo=TOKYO), date(2024, 1, 8))
        assert not is_same_date(date(2024, 1, 7), date(2024, 1, 8))


class TestFormatDaysText:

    def test_fixed_labels(self):
        assert format_days_text("same-day") == "today"
        assert format_days_text("1-days-before") == "tomorrow"
        assert format_days_text("2-days-before") == "in 2 days"

    @pytest.mark.parametrize("text,label", [
        ("5-days-before", "in 5 days"),
        ("3-business-days-before", "in 3 days"),
        ("2-weeks-before", "in 2 days"),
    ])
    def test_fallback_keeps_leading_integer_only(self, text, label):
        assert format_days_text(text) == label

    def test_unparseable_returned_unchanged(self):
        assert format_days_text("whenever") == "whenever"
