from datetime import date

import pytest

from offer_analytics.target_achievement import (
    ErrorKind,
    InvalidPeriodError,
    InvalidReportInput,
    PeriodType,
    parse_period,
    period_key,
)
from offer_analytics.target_achievement.periods import current_period_key, days_in_month, month_keys


def test_parse_monthly_period_bounds():
    period = parse_period("2024-02", "MONTHLY")

    assert period.key == "2024-02"
    assert period.period_type == PeriodType.MONTHLY
    assert (period.year, period.month) == (2024, 2)
    assert period.start == date(2024, 2, 1)
    assert period.end == date(2024, 2, 29)
    assert period.days == 29


def test_parse_yearly_period_bounds():
    period = parse_period("2025", PeriodType.YEARLY)

    assert period.month is None
    assert period.start == date(2025, 1, 1)
    assert period.end == date(2025, 12, 31)
    assert not period.is_monthly


@pytest.mark.parametrize(
    "period, period_type",
    [
        ("2025-3", "MONTHLY"),
        ("2025-13", "MONTHLY"),
        ("2025-00", "MONTHLY"),
        ("2025", "MONTHLY"),
        ("2025-03", "YEARLY"),
        ("25", "YEARLY"),
        ("1899", "YEARLY"),
        ("2101-01", "MONTHLY"),
        ("", "YEARLY"),
    ],
)
def test_malformed_periods_are_bad_input(period, period_type):
    with pytest.raises(InvalidPeriodError) as exc_info:
        parse_period(period, period_type)

    assert exc_info.value.kind == ErrorKind.BAD_INPUT
    assert exc_info.value.field == "period"


def test_unknown_period_type_is_bad_input():
    with pytest.raises(InvalidReportInput) as exc_info:
        parse_period("2025", "WEEKLY")

    assert exc_info.value.to_dict()["kind"] == "BAD_INPUT"
    assert exc_info.value.field == "period_type"


def test_period_key_is_zero_padded():
    assert period_key(2025, 3) == "2025-03"
    assert period_key(2025) == "2025"
    assert month_keys(2025)[0] == "2025-01"
    assert month_keys(2025)[-1] == "2025-12"
    assert len(month_keys(2025)) == 12


def test_current_month_check_uses_given_today():
    period = parse_period("2025-03", "MONTHLY")

    assert period.is_current_month(date(2025, 3, 31))
    assert not period.is_current_month(date(2025, 4, 1))
    assert not parse_period("2025", "YEARLY").is_current_month(date(2025, 3, 31))
    assert current_period_key(date(2025, 3, 9), "MONTHLY") == "2025-03"
    assert current_period_key(date(2025, 3, 9), "YEARLY") == "2025"
    assert days_in_month(2025, 2) == 28
