# offer_analytics/target_achievement/rollups.py
"""
Rollup Views

Pure reshaping of already reconciled / aggregated data:
- Top-N / Bottom-N achievement rankings
- Pareto cumulative share (which product types make 80% of revenue)
- Achievement-band histogram
- Stacked zone × product type pivot
- User × zone matrix
- Monthly series and quarterly summary

No aggregation logic lives here; zero-filling goes through the Normalizer.
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from ..config import config
from .constants import (
    ACHIEVEMENT_BANDS, ALL_PRODUCT_TYPES, DEFAULT_TOP_N, MONTH_ORDER,
    PARETO_CUTOFF, QUARTER_MONTHS,
)
from .normalizer import normalize_matrix, normalize_months
from .ratios import safe_percentage

logger = logging.getLogger(__name__)


# =============================================================================
# RANKINGS
# =============================================================================

def _rank(df: pd.DataFrame, n: Optional[int], by: str, ascending: bool) -> pd.DataFrame:
    if df is None or df.empty:
        columns = list(df.columns) if df is not None else []
        return pd.DataFrame(columns=['rank'] + columns)

    if n is None:
        n = config.get_app_setting('DEFAULT_TOP_N', DEFAULT_TOP_N)

    sort_cols = [by]
    orders = [ascending]
    if 'scope_name' in df.columns:
        sort_cols.append('scope_name')
        orders.append(True)

    ranked = df.sort_values(sort_cols, ascending=orders, kind='mergesort', na_position='last')
    ranked = ranked.head(max(0, int(n))).reset_index(drop=True)
    ranked.insert(0, 'rank', range(1, len(ranked) + 1))
    return ranked


def top_n(df: pd.DataFrame, n: int = None, by: str = 'achievement') -> pd.DataFrame:
    """Best performers: highest `by` first."""
    return _rank(df, n, by, ascending=False)


def bottom_n(df: pd.DataFrame, n: int = None, by: str = 'achievement') -> pd.DataFrame:
    """Worst performers: lowest `by` first."""
    return _rank(df, n, by, ascending=True)


# =============================================================================
# PARETO
# =============================================================================

def pareto(
    df: pd.DataFrame,
    value_col: str = 'actual_value',
    label_col: str = 'product_type',
    cutoff: float = None
) -> pd.DataFrame:
    """
    Sort by value descending and add running cumulative share.

    Adds: cumulative_value, cumulative_percent (0-100), percent_contribution,
    is_core (the smallest leading group reaching the cutoff share).
    A zero total gives 0 for every percentage.
    """
    if cutoff is None:
        cutoff = config.get_app_setting('PARETO_CUTOFF', PARETO_CUTOFF)

    if df is None or df.empty:
        return pd.DataFrame(columns=[label_col, value_col, 'cumulative_value',
                                     'cumulative_percent', 'percent_contribution', 'is_core'])

    data = df.sort_values(value_col, ascending=False, kind='mergesort').reset_index(drop=True)
    total = float(data[value_col].sum())

    data['cumulative_value'] = data[value_col].cumsum()
    data['cumulative_percent'] = safe_percentage(data['cumulative_value'], total)
    data['percent_contribution'] = safe_percentage(data[value_col], total)

    if total > 0:
        # Core = every row up to and including the first one that reaches the cutoff
        reached = data['cumulative_percent'] >= cutoff * 100
        first_reach = int(reached.values.argmax()) if reached.any() else len(data) - 1
        data['is_core'] = data.index <= first_reach
    else:
        data['is_core'] = False

    logger.debug(
        f"[pareto] {int(data['is_core'].sum())} of {len(data)} {label_col} rows reach {cutoff:.0%} of {value_col}"
    )
    return data


# =============================================================================
# HISTOGRAM
# =============================================================================

def achievement_histogram(df: pd.DataFrame, col: str = 'achievement') -> pd.DataFrame:
    """
    Count rows per achievement band (0-50, 50-80, 80-100, 100-120, 120+).

    Lower bounds inclusive, upper bounds exclusive. Always five rows.
    """
    labels = [band[0] for band in ACHIEVEMENT_BANDS]
    edges = [band[1] for band in ACHIEVEMENT_BANDS] + [np.inf]

    if df is None or df.empty:
        counts = pd.Series(0, index=labels)
    else:
        banded = pd.cut(df[col].astype(float), bins=edges, labels=labels, right=False)
        counts = banded.value_counts().reindex(labels, fill_value=0)

    return pd.DataFrame({
        'band': labels,
        'lower': [band[1] for band in ACHIEVEMENT_BANDS],
        'upper': [band[2] for band in ACHIEVEMENT_BANDS],
        'count': counts.astype(int).values,
    })


# =============================================================================
# PIVOTS
# =============================================================================

def stacked_pivot(
    zone_product_agg: pd.DataFrame,
    zones_df: pd.DataFrame,
    product_types: Sequence[str] = None,
    value_col: str = 'won_value'
) -> pd.DataFrame:
    """
    One row per zone (zone_name) with one column per product type.

    Args:
        zone_product_agg: Aggregate grouped by [zone_id, product_type]
        zones_df: Reference zones (zone_id, zone_name)
        product_types: Column enumeration (default: all nine)
        value_col: Aggregate column to spread (default: won value = actual)

    Returns:
        DataFrame: zone_id, zone_name, <product types...>, total
    """
    product_types = list(product_types or ALL_PRODUCT_TYPES)
    zone_ids = zones_df['zone_id'].tolist() if zones_df is not None and not zones_df.empty else []

    grid = normalize_matrix(
        zone_product_agg, 'zone_id', zone_ids, 'product_type', product_types, [value_col]
    )
    if grid.empty:
        return pd.DataFrame(columns=['zone_id', 'zone_name'] + product_types + ['total'])

    pivot = grid.pivot(index='zone_id', columns='product_type', values=value_col)
    pivot = pivot.reindex(index=zone_ids, columns=product_types).fillna(0.0)
    pivot['total'] = pivot[product_types].sum(axis=1)
    pivot.columns.name = None
    pivot = pivot.reset_index()

    names = zones_df.set_index('zone_id')['zone_name']
    pivot.insert(1, 'zone_name', pivot['zone_id'].map(names))
    return pivot


def user_zone_matrix(
    owner_zone_agg: pd.DataFrame,
    users_df: pd.DataFrame,
    zones_df: pd.DataFrame,
    value_col: str = 'won_value'
) -> pd.DataFrame:
    """
    One row per user with one column per zone name, plus total.

    Args:
        owner_zone_agg: Aggregate grouped by [owner_id, zone_id]
        users_df: Reference users (user_id, user_name)
        zones_df: Reference zones (zone_id, zone_name)
    """
    user_ids = users_df['user_id'].tolist() if users_df is not None and not users_df.empty else []
    zone_ids = zones_df['zone_id'].tolist() if zones_df is not None and not zones_df.empty else []
    zone_names = zones_df.set_index('zone_id')['zone_name'] if zone_ids else pd.Series(dtype=object)

    grid = normalize_matrix(owner_zone_agg, 'owner_id', user_ids, 'zone_id', zone_ids, [value_col])
    columns = [zone_names[z] for z in zone_ids]
    if grid.empty:
        return pd.DataFrame(columns=['user_id', 'user_name'] + columns + ['total'])

    pivot = grid.pivot(index='owner_id', columns='zone_id', values=value_col)
    pivot = pivot.reindex(index=user_ids, columns=zone_ids).fillna(0.0)
    pivot.columns = columns
    pivot['total'] = pivot[columns].sum(axis=1)
    pivot.index.name = 'user_id'
    pivot = pivot.reset_index()

    names = users_df.set_index('user_id')['user_name']
    pivot.insert(1, 'user_name', pivot['user_id'].map(names))
    return pivot


# =============================================================================
# TIME SERIES
# =============================================================================

def monthly_series(
    month_agg: pd.DataFrame,
    monthly_targets_df: pd.DataFrame,
    year: int
) -> pd.DataFrame:
    """
    Twelve zero-filled months of target vs actual for a year.

    Args:
        month_agg: Aggregate grouped by month ('YYYY-MM')
        monthly_targets_df: Monthly targets with columns period, target_value
        year: Calendar year

    Returns:
        DataFrame: month, month_name, target_value, actual_value, offers_value,
        offer_count, won_count, variance, achievement, cumulative_target,
        cumulative_actual, cumulative_achievement
    """
    actuals = month_agg
    if actuals is not None and not actuals.empty:
        actuals = actuals[['month', 'won_value', 'total_value', 'offer_count', 'won_count']]
    series = normalize_months(actuals, year, ['won_value', 'total_value', 'offer_count', 'won_count'])

    if monthly_targets_df is not None and not monthly_targets_df.empty:
        targets = (
            monthly_targets_df.groupby('period', as_index=False)['target_value'].sum()
            .rename(columns={'period': 'month'})
        )
    else:
        targets = None
    targets = normalize_months(targets, year, ['target_value'])

    df = series.merge(targets, on='month', how='left')
    df = df.rename(columns={'won_value': 'actual_value', 'total_value': 'offers_value'})
    df.insert(1, 'month_name', MONTH_ORDER)

    df['variance'] = df['actual_value'] - df['target_value']
    df['achievement'] = safe_percentage(df['actual_value'], df['target_value'])
    df['cumulative_target'] = df['target_value'].cumsum()
    df['cumulative_actual'] = df['actual_value'].cumsum()
    df['cumulative_achievement'] = safe_percentage(df['cumulative_actual'], df['cumulative_target'])

    return df[[
        'month', 'month_name', 'target_value', 'actual_value', 'offers_value',
        'offer_count', 'won_count', 'variance', 'achievement',
        'cumulative_target', 'cumulative_actual', 'cumulative_achievement',
    ]]


def quarterly_summary(monthly_df: pd.DataFrame) -> pd.DataFrame:
    """
    Roll a monthly_series() frame up to quarters.

    dev_percent = (actual - target) / target * 100, guarded to 0.
    """
    rows = []
    month_numbers = monthly_df['month'].str.slice(5, 7).astype(int)
    for quarter, months in QUARTER_MONTHS.items():
        in_quarter = monthly_df[month_numbers.isin(months).values]
        target = float(in_quarter['target_value'].sum())
        actual = float(in_quarter['actual_value'].sum())
        rows.append({
            'quarter': f"Q{quarter}",
            'target_value': target,
            'actual_value': actual,
            'variance': actual - target,
            'achievement': safe_percentage(actual, target),
            'dev_percent': safe_percentage(actual - target, target),
        })
    return pd.DataFrame(rows)
