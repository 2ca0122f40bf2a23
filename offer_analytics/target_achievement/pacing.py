# offer_analytics/target_achievement/pacing.py
"""
Pacing Projector

Run-rate pacing for the current calendar month only. Yearly periods and
past / future months get no pacing at all (None, not zeros).

Projection: required daily rate = target / days in month,
current daily rate = actual / elapsed days, month end ≈ current rate × days.
"""

import logging
from datetime import date
from typing import Optional

import numpy as np
import pandas as pd

from .models import PacingResult
from .periods import ReportPeriod, days_in_month
from .ratios import safe_divide, safe_percentage

logger = logging.getLogger(__name__)

PACING_COLUMNS = [
    'required_daily_rate',
    'current_daily_rate',
    'pace_percentage',
    'on_track',
    'remaining_gap',
    'needed_daily_rate_for_remainder',
    'projected_value',
]


class PacingProjector:
    """
    Usage:
        projector = PacingProjector(today=context.today)
        pacing = projector.project(1_000_000, 420_000, period)   # None unless current month
    """

    def __init__(self, today: date = None):
        self.today = today or date.today()

    def applies_to(self, period: ReportPeriod) -> bool:
        return period.is_current_month(self.today)

    def _calendar(self):
        total_days = days_in_month(self.today.year, self.today.month)
        day_of_month = max(1, self.today.day)
        return total_days, day_of_month

    def project(
        self,
        target_value: float,
        actual_value: float,
        period: ReportPeriod
    ) -> Optional[PacingResult]:
        """
        Pacing for one target / actual pair.

        Returns:
            PacingResult, or None when the period is not the current month
        """
        if not self.applies_to(period):
            logger.debug(f"[PacingProjector] Skipped for {period.period_type.value} {period.key}")
            return None

        target_value = float(target_value or 0)
        actual_value = float(actual_value or 0)
        total_days, day_of_month = self._calendar()

        required_daily_rate = safe_divide(target_value, total_days)
        current_daily_rate = safe_divide(actual_value, day_of_month)
        pace_percentage = safe_percentage(current_daily_rate, required_daily_rate)
        remaining_gap = max(0.0, target_value - actual_value)
        days_remaining = total_days - day_of_month

        return PacingResult(
            period=period.key,
            target_value=target_value,
            actual_value=actual_value,
            days_in_month=total_days,
            day_of_month=day_of_month,
            days_remaining=days_remaining,
            required_daily_rate=required_daily_rate,
            current_daily_rate=current_daily_rate,
            pace_percentage=pace_percentage,
            on_track=pace_percentage >= 100 or actual_value >= target_value,
            remaining_gap=remaining_gap,
            needed_daily_rate_for_remainder=remaining_gap / max(1, days_remaining),
            projected_value=current_daily_rate * total_days,
        )

    def apply_to_frame(self, reconciled_df: pd.DataFrame, period: ReportPeriod) -> pd.DataFrame:
        """
        Add per-row pacing columns to a reconciled frame.

        Returns the frame unchanged (no pacing columns) when pacing does not apply.
        """
        if not self.applies_to(period) or reconciled_df.empty:
            return reconciled_df

        df = reconciled_df.copy()
        total_days, day_of_month = self._calendar()
        days_remaining = total_days - day_of_month

        target = df['target_value'].astype(float)
        actual = df['actual_value'].astype(float)

        df['required_daily_rate'] = target / total_days
        df['current_daily_rate'] = actual / day_of_month
        df['pace_percentage'] = safe_percentage(df['current_daily_rate'], df['required_daily_rate'])
        df['on_track'] = (df['pace_percentage'] >= 100) | (actual >= target)
        df['remaining_gap'] = np.maximum(0.0, target - actual)
        df['needed_daily_rate_for_remainder'] = df['remaining_gap'] / max(1, days_remaining)
        df['projected_value'] = df['current_daily_rate'] * total_days
        return df
