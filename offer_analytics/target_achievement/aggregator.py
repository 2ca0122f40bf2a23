# offer_analytics/target_achievement/aggregator.py
"""
Offer Aggregator

Groups an immutable offer snapshot by zone, owner, product type, stage or
calendar month and sums value / count, with the won and probability-
weighted open pipeline computed in the same pass.

All operations are Pandas-based and return new DataFrames; the snapshot
passed in is copied once and never mutated.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..config import config
from .constants import (
    OFFER_COLUMNS, AGGREGATE_VALUE_COLUMNS, GROUP_KEYS,
    WON_STAGE, TERMINAL_STAGES, EXPECTED_PROBABILITY_THRESHOLD,
)
from .exceptions import InvalidReportInput

logger = logging.getLogger(__name__)


def resolve_offer_value(offers_df: pd.DataFrame) -> pd.Series:
    """
    Contributing value per offer.

    po_value if present and non-zero, else offer_value if present and
    non-zero, else 0. The order is fixed; negative amounts count as absent.
    """
    po_value = pd.to_numeric(offers_df['po_value'], errors='coerce')
    offer_value = pd.to_numeric(offers_df['offer_value'], errors='coerce')
    value = np.where(
        po_value > 0,
        po_value,
        np.where(offer_value > 0, offer_value, 0.0)
    )
    return pd.Series(value, index=offers_df.index, dtype=float)


def coerce_ids(series: pd.Series) -> pd.Series:
    """Numeric ids → nullable Int64 so joins between stores line up."""
    numeric = pd.to_numeric(series, errors='coerce')
    if numeric.notna().sum() != series.notna().sum():
        # Non-numeric ids (e.g. UUIDs): keep as-is
        return series
    return numeric.round().astype('Int64')


def _enum_text(value) -> Optional[str]:
    """Enum member or raw string → plain string; missing → None."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(getattr(value, 'value', value))


def _empty_aggregate(df: pd.DataFrame, keys: List[str]) -> pd.DataFrame:
    """Zero-row aggregate that keeps the key dtypes (safe to merge on)."""
    empty = pd.DataFrame({key: df[key].iloc[0:0] for key in keys})
    for col in AGGREGATE_VALUE_COLUMNS:
        empty[col] = pd.Series(dtype=int if col.endswith('_count') else float)
    return empty


class OfferAggregator:
    """
    Aggregate offers for target reconciliation.

    Usage:
        aggregator = OfferAggregator(offers_df)

        by_zone = aggregator.aggregate('zone_id', date_from=start, date_to=end)
        by_zone_pt = aggregator.aggregate(['zone_id', 'product_type'])
        totals = aggregator.totals(zone_id=4)
    """

    def __init__(
        self,
        offers_df: pd.DataFrame,
        probability_threshold: float = None
    ):
        """
        Initialize with an offer snapshot.

        Args:
            offers_df: Offers with the columns in OFFER_COLUMNS
            probability_threshold: Open offers must be strictly above this
                win probability to count towards expected value
        """
        if probability_threshold is None:
            probability_threshold = config.get_app_setting(
                'EXPECTED_PROBABILITY_THRESHOLD', EXPECTED_PROBABILITY_THRESHOLD
            )
        self.probability_threshold = probability_threshold
        self._offers = self._prepare(offers_df)

    def _prepare(self, offers_df: Optional[pd.DataFrame]) -> pd.DataFrame:
        """Copy the snapshot and derive value / stage flag columns."""
        if offers_df is None:
            offers_df = pd.DataFrame(columns=OFFER_COLUMNS)

        df = offers_df.copy()
        for col in OFFER_COLUMNS:
            if col not in df.columns:
                df[col] = np.nan

        df['created_at'] = pd.to_datetime(df['created_at'], errors='coerce')
        if getattr(df['created_at'].dt, 'tz', None) is not None:
            df['created_at'] = df['created_at'].dt.tz_localize(None)
        df['zone_id'] = coerce_ids(df['zone_id'])
        df['owner_id'] = coerce_ids(df['owner_id'])
        df['product_type'] = df['product_type'].map(_enum_text)
        df['stage'] = df['stage'].map(_enum_text)
        df['probability_percentage'] = pd.to_numeric(df['probability_percentage'], errors='coerce')

        df['value'] = resolve_offer_value(df)
        df['month'] = df['created_at'].dt.strftime('%Y-%m')

        is_won = df['stage'] == WON_STAGE
        is_open = df['stage'].notna() & ~df['stage'].isin(TERMINAL_STAGES)
        above_cutoff = df['probability_percentage'] > self.probability_threshold

        df['is_won'] = is_won
        df['is_open'] = is_open
        df['won_value'] = np.where(is_won, df['value'], 0.0)
        df['open_value'] = np.where(is_open, df['value'], 0.0)
        df['expected_value'] = np.where(
            is_open & above_cutoff,
            df['value'] * df['probability_percentage'].fillna(0) / 100,
            0.0
        )

        logger.debug(f"[OfferAggregator] Prepared {len(df):,} offers")
        return df

    @property
    def offers(self) -> pd.DataFrame:
        """Copy of the prepared snapshot."""
        return self._offers.copy()

    @property
    def is_empty(self) -> bool:
        return self._offers.empty

    # =========================================================================
    # FILTERING
    # =========================================================================

    def filter_offers(
        self,
        date_from: Union[date, datetime, None] = None,
        date_to: Union[date, datetime, None] = None,
        zone_id=None,
        owner_id=None,
        product_type: Optional[str] = None,
        exclude_stages: Sequence[str] = None
    ) -> pd.DataFrame:
        """
        Offers created within [date_from, date_to] matching the scope.

        A plain date as date_to covers that whole day. Both bounds are
        optional (open-ended).
        """
        df = self._offers
        mask = pd.Series(True, index=df.index)

        if date_from is not None:
            mask &= df['created_at'] >= pd.Timestamp(date_from)

        if date_to is not None:
            if isinstance(date_to, datetime):
                mask &= df['created_at'] <= pd.Timestamp(date_to)
            else:
                mask &= df['created_at'] < pd.Timestamp(date_to + timedelta(days=1))

        if zone_id is not None:
            mask &= df['zone_id'] == zone_id

        if owner_id is not None:
            mask &= df['owner_id'] == owner_id

        if product_type is not None:
            mask &= df['product_type'] == str(getattr(product_type, 'value', product_type))

        if exclude_stages:
            excluded = [str(getattr(s, 'value', s)) for s in exclude_stages]
            mask &= ~df['stage'].isin(excluded)

        return df[mask.fillna(False).astype(bool)].copy()

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def aggregate(
        self,
        group_by: Union[str, List[str]],
        **filters
    ) -> pd.DataFrame:
        """
        One aggregate row per distinct key present in the filtered offers.

        Args:
            group_by: One or more of zone_id, owner_id, product_type, month, stage
            **filters: Passed to filter_offers()

        Returns:
            DataFrame: group columns + total_value, offer_count, won_value,
            won_count, expected_value, open_value. Keys without offers
            (and offers with a null key) produce no row.
        """
        keys = [group_by] if isinstance(group_by, str) else list(group_by)
        unknown = [k for k in keys if k not in GROUP_KEYS]
        if unknown:
            raise InvalidReportInput(
                f"Unsupported group key(s): {unknown}. Expected one of {GROUP_KEYS}",
                field='group_by'
            )

        df = self.filter_offers(**filters)
        if df.empty:
            return _empty_aggregate(df, keys)

        grouped = df.groupby(keys, dropna=True, sort=True).agg(
            total_value=('value', 'sum'),
            offer_count=('value', 'size'),
            won_value=('won_value', 'sum'),
            won_count=('is_won', 'sum'),
            expected_value=('expected_value', 'sum'),
            open_value=('open_value', 'sum'),
        ).reset_index()

        grouped['offer_count'] = grouped['offer_count'].astype(int)
        grouped['won_count'] = grouped['won_count'].astype(int)

        logger.debug(f"[OfferAggregator] {keys} → {len(grouped)} groups from {len(df):,} offers")
        return grouped

    def totals(self, **filters) -> Dict[str, float]:
        """Single ungrouped aggregate for a filter."""
        df = self.filter_offers(**filters)
        return {
            'total_value': float(df['value'].sum()),
            'offer_count': int(len(df)),
            'won_value': float(df['won_value'].sum()),
            'won_count': int(df['is_won'].sum()),
            'expected_value': float(df['expected_value'].sum()),
            'open_value': float(df['open_value'].sum()),
        }
