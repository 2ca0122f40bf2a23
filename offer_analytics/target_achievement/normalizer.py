# offer_analytics/target_achievement/normalizer.py
"""
Normalizer

Expands a result set to a fixed reference enumeration so downstream
consumers never branch on missing keys:
- Product types (the nine ProductType members)
- Active zones (from the zone store / report context)
- Offer stages, calendar months, zone × product type grids

Members absent from the input get zero-valued placeholder rows. Keys that
are not enumeration members are dropped: the enumeration is the contract.
"""

import logging
from typing import List, Optional, Sequence

import pandas as pd

from .constants import ALL_PRODUCT_TYPES, ALL_STAGES, AGGREGATE_VALUE_COLUMNS
from .periods import month_keys

logger = logging.getLogger(__name__)


def normalize(
    df: Optional[pd.DataFrame],
    key_col: str,
    members: Sequence,
    value_cols: List[str] = None,
    fill_value: float = 0
) -> pd.DataFrame:
    """
    One row per enumeration member, in enumeration order.

    Args:
        df: Input rows keyed by key_col (may be None or empty)
        key_col: Key column name
        members: Reference enumeration
        value_cols: Columns to carry over and zero-fill
            (default: every non-key column of df, else AGGREGATE_VALUE_COLUMNS)
        fill_value: Placeholder for absent members

    Returns:
        DataFrame with exactly len(members) rows
    """
    members = list(members)
    base = pd.DataFrame({key_col: members})

    if df is None or df.empty:
        value_cols = value_cols or list(AGGREGATE_VALUE_COLUMNS)
        result = base.copy()
        for col in value_cols:
            result[col] = fill_value
        return _restore_count_dtypes(result, value_cols)

    if value_cols is None:
        value_cols = [c for c in df.columns if c != key_col]

    src = df[df[key_col].isin(members)]
    dropped = len(df) - len(src)
    if dropped:
        logger.debug(f"[normalize] Dropped {dropped} row(s) with {key_col} outside the enumeration")

    # Input should already be unique per key; collapse defensively so the row count holds
    if src[key_col].duplicated().any():
        src = src.groupby(key_col, as_index=False, sort=False)[value_cols].sum()

    for col in value_cols:
        if col not in src.columns:
            src = src.assign(**{col: fill_value})

    result = base.merge(src[[key_col] + value_cols], on=key_col, how='left')
    numeric_cols = [c for c in value_cols if pd.api.types.is_numeric_dtype(src[c]) or src[c].isna().all()]
    result[numeric_cols] = result[numeric_cols].fillna(fill_value)
    return _restore_count_dtypes(result, value_cols)


def _restore_count_dtypes(df: pd.DataFrame, value_cols: List[str]) -> pd.DataFrame:
    for col in value_cols:
        if col.endswith('_count') and col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce').fillna(0).astype(int)
    return df


def normalize_product_types(
    df: Optional[pd.DataFrame],
    value_cols: List[str] = None,
    product_types: Sequence[str] = None
) -> pd.DataFrame:
    """Nine rows, one per product type."""
    return normalize(df, 'product_type', product_types or ALL_PRODUCT_TYPES, value_cols)


def normalize_stages(df: Optional[pd.DataFrame], value_cols: List[str] = None) -> pd.DataFrame:
    """Eight rows, one per offer stage, in pipeline order."""
    return normalize(df, 'stage', ALL_STAGES, value_cols)


def normalize_months(
    df: Optional[pd.DataFrame],
    year: int,
    value_cols: List[str] = None,
    key_col: str = 'month'
) -> pd.DataFrame:
    """Twelve rows keyed 'YYYY-MM' for the given year."""
    return normalize(df, key_col, month_keys(year), value_cols)


def normalize_zones(
    df: Optional[pd.DataFrame],
    zones_df: pd.DataFrame,
    value_cols: List[str] = None,
    key_col: str = 'zone_id'
) -> pd.DataFrame:
    """
    One row per active zone, carrying zone_name.

    Args:
        zones_df: Reference zones with columns zone_id, zone_name (order kept)
    """
    members = zones_df['zone_id'].tolist() if zones_df is not None and not zones_df.empty else []
    if df is not None and not df.empty and key_col != 'zone_id':
        df = df.rename(columns={key_col: 'zone_id'})
    result = normalize(df, 'zone_id', members, value_cols)
    names = zones_df[['zone_id', 'zone_name']] if members else pd.DataFrame(columns=['zone_id', 'zone_name'])
    result = result.merge(names, on='zone_id', how='left')
    ordered = ['zone_id', 'zone_name'] + [c for c in result.columns if c not in ('zone_id', 'zone_name')]
    result = result[ordered]
    if key_col != 'zone_id':
        result = result.rename(columns={'zone_id': key_col})
    return result


def normalize_matrix(
    df: Optional[pd.DataFrame],
    row_col: str,
    row_members: Sequence,
    col_col: str,
    col_members: Sequence,
    value_cols: List[str] = None,
    fill_value: float = 0
) -> pd.DataFrame:
    """
    Full cartesian grid (long form) of row_members × col_members.

    Returns:
        DataFrame with len(row_members) * len(col_members) rows
    """
    value_cols = value_cols or list(AGGREGATE_VALUE_COLUMNS)
    grid = pd.MultiIndex.from_product(
        [list(row_members), list(col_members)],
        names=[row_col, col_col]
    ).to_frame(index=False)

    if df is None or df.empty:
        result = grid
        for col in value_cols:
            result[col] = fill_value
        return _restore_count_dtypes(result, value_cols)

    src = df[df[row_col].isin(list(row_members)) & df[col_col].isin(list(col_members))]
    src = src.groupby([row_col, col_col], as_index=False, sort=False)[value_cols].sum()
    result = grid.merge(src, on=[row_col, col_col], how='left')
    result[value_cols] = result[value_cols].fillna(fill_value)
    return _restore_count_dtypes(result, value_cols)
