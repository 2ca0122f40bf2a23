# offer_analytics/target_achievement/models.py
"""
Request, context and result containers for the target report engine.

Tabular results stay pandas DataFrames (one row per reconciled target);
everything else is a small dataclass.
"""

import math
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .constants import ALL_PRODUCT_TYPES


def to_camel(name: str) -> str:
    """snake_case → camelCase for the JSON-facing dicts."""
    head, *tail = name.split('_')
    return head + ''.join(part.capitalize() for part in tail)


def _clean_value(value: Any) -> Any:
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating, float)):
        value = float(value)
        return None if math.isnan(value) else value
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if value is pd.NA or value is pd.NaT:
        return None
    return value


def frame_to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame → list of camelCase dicts with NaN rendered as None."""
    if df is None or df.empty:
        return []
    records = []
    for row in df.to_dict(orient='records'):
        records.append({to_camel(str(k)): _clean_value(v) for k, v in row.items()})
    return records


# =============================================================================
# REQUEST / CONTEXT
# =============================================================================

@dataclass
class ReportRequest:
    """
    One target report request.

    Usage:
        request = ReportRequest(period='2025-03', period_type='MONTHLY', zone_id=4)
    """
    period: str
    period_type: str
    zone_id: Optional[int] = None
    user_id: Optional[int] = None
    product_type: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    require_data: bool = False

    def __repr__(self) -> str:
        scope = []
        if self.zone_id is not None:
            scope.append(f"zone={self.zone_id}")
        if self.user_id is not None:
            scope.append(f"user={self.user_id}")
        if self.product_type:
            scope.append(f"product_type={self.product_type}")
        scope_text = f" {' '.join(scope)}" if scope else ""
        return f"ReportRequest({self.period_type} {self.period}{scope_text})"


@dataclass
class ReportContext:
    """
    Explicit inputs that would otherwise come from globals or the clock.

    Attributes:
        today: Reference date for pacing and "current month" checks
        zones_df: Active zones (zone_id, zone_name); loaded from the store when None
        users_df: Users (user_id, user_name); loaded from the store when None
        product_types: Reference product-type enumeration for normalized views
        zone_restriction: Forces the zone scope (e.g. a zone-bound user)
    """
    today: date = field(default_factory=date.today)
    zones_df: Optional[pd.DataFrame] = None
    users_df: Optional[pd.DataFrame] = None
    product_types: List[str] = field(default_factory=lambda: list(ALL_PRODUCT_TYPES))
    zone_restriction: Optional[int] = None


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class PacingResult:
    """Run-rate pacing for the current calendar month."""
    period: str
    target_value: float
    actual_value: float
    days_in_month: int
    day_of_month: int
    days_remaining: int
    required_daily_rate: float
    current_daily_rate: float
    pace_percentage: float
    on_track: bool
    remaining_gap: float
    needed_daily_rate_for_remainder: float
    projected_value: float

    def to_dict(self) -> Dict[str, Any]:
        return {to_camel(k): v for k, v in asdict(self).items()}


@dataclass
class TargetReport:
    """Reconciled zone/user targets plus summary, pacing and standard rollups."""
    period: str
    period_type: str
    zone_targets: pd.DataFrame
    user_targets: pd.DataFrame
    summary: Dict[str, Any]
    pacing: Optional[PacingResult] = None
    product_types: pd.DataFrame = field(default_factory=pd.DataFrame)
    zone_product_pivot: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def has_targets(self) -> bool:
        return not (self.zone_targets.empty and self.user_targets.empty)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict; the pacing key is omitted when pacing does not apply."""
        result = {
            'period': self.period,
            'periodType': self.period_type,
            'zoneTargets': frame_to_records(self.zone_targets),
            'userTargets': frame_to_records(self.user_targets),
            'summary': {to_camel(k): _clean_value(v) for k, v in self.summary.items()},
            'productTypes': frame_to_records(self.product_types),
            'zoneProductPivot': [
                {str(k): _clean_value(v) for k, v in row.items()}
                for row in self.zone_product_pivot.to_dict(orient='records')
            ],
        }
        if self.pacing is not None:
            result['pacing'] = self.pacing.to_dict()
        return result
