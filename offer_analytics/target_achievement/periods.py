# offer_analytics/target_achievement/periods.py
"""
Period keys and calendar helpers.

Period keys are bit-exact: 'YYYY' for YEARLY, zero-padded 'YYYY-MM' for
MONTHLY. Anything else is rejected before any reconciliation starts.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union

from .constants import PeriodType, MIN_PERIOD_YEAR, MAX_PERIOD_YEAR
from .exceptions import InvalidPeriodError, InvalidReportInput

logger = logging.getLogger(__name__)

_YEARLY_PATTERN = re.compile(r'^(\d{4})$')
_MONTHLY_PATTERN = re.compile(r'^(\d{4})-(\d{2})$')


@dataclass(frozen=True)
class ReportPeriod:
    """A validated target period with its calendar bounds (inclusive)."""
    key: str
    period_type: PeriodType
    year: int
    month: Optional[int]
    start: date
    end: date

    @property
    def is_monthly(self) -> bool:
        return self.period_type == PeriodType.MONTHLY

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def is_current_month(self, today: date) -> bool:
        """True only for a MONTHLY period covering today's month."""
        return self.is_monthly and self.year == today.year and self.month == today.month


def coerce_period_type(period_type: Union[str, PeriodType]) -> PeriodType:
    """Accept enum members or their wire strings."""
    try:
        return PeriodType(period_type)
    except ValueError:
        raise InvalidReportInput(
            f"Unknown period type '{period_type}'. Expected MONTHLY or YEARLY",
            field='period_type'
        ) from None


def parse_period(period: str, period_type: Union[str, PeriodType]) -> ReportPeriod:
    """
    Validate a period key and resolve its calendar bounds.

    Args:
        period: 'YYYY' or 'YYYY-MM'
        period_type: MONTHLY or YEARLY (must agree with the key's shape)

    Returns:
        ReportPeriod

    Raises:
        InvalidPeriodError: Key does not match the period type's pattern,
            month outside 1-12 or year outside 1900-2100
    """
    period_type = coerce_period_type(period_type)
    key = period if isinstance(period, str) else ''

    if period_type == PeriodType.MONTHLY:
        match = _MONTHLY_PATTERN.match(key)
        if not match:
            logger.error(f"Invalid monthly period format: {period}. Expected YYYY-MM")
            raise InvalidPeriodError(period, period_type.value)
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise InvalidPeriodError(period, period_type.value, f"month {month} out of range")
    else:
        match = _YEARLY_PATTERN.match(key)
        if not match:
            logger.error(f"Invalid yearly period: {period}. Expected YYYY")
            raise InvalidPeriodError(period, period_type.value)
        year, month = int(match.group(1)), None

    if not MIN_PERIOD_YEAR <= year <= MAX_PERIOD_YEAR:
        raise InvalidPeriodError(period, period_type.value, f"year {year} out of range")

    if month is None:
        start, end = date(year, 1, 1), date(year, 12, 31)
    else:
        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])

    return ReportPeriod(
        key=key,
        period_type=period_type,
        year=year,
        month=month,
        start=start,
        end=end,
    )


def period_key(year: int, month: int = None) -> str:
    """Build the exact period key a target is stored under."""
    if month is None:
        return f"{int(year):04d}"
    return f"{int(year):04d}-{int(month):02d}"


def month_keys(year: int) -> List[str]:
    """All twelve monthly keys of a year, in calendar order."""
    return [period_key(year, m) for m in range(1, 13)]


def current_period_key(today: date, period_type: Union[str, PeriodType]) -> str:
    if coerce_period_type(period_type) == PeriodType.MONTHLY:
        return period_key(today.year, today.month)
    return period_key(today.year)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]
