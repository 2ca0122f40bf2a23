# offer_analytics/target_achievement/pipeline_metrics.py
"""
Pipeline Metrics

Dashboard-level offer metrics computed from the same aggregator snapshot:
- Stage breakdown (all eight stages, zero-filled)
- Pipeline summary: win rate, conversion rate, average offer value
- Zone highlights: offers, orders received, open funnel vs booking target
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from .aggregator import OfferAggregator, coerce_ids
from .constants import LOST_STAGE, WON_STAGE
from .normalizer import normalize_stages, normalize_zones
from .ratios import safe_divide, safe_percentage
from .reconciler import prepare_targets

logger = logging.getLogger(__name__)

HIGHLIGHT_VALUE_COLUMNS = [
    'num_offers', 'offers_value', 'orders_received', 'open_funnel',
    'booking_target', 'balance',
]


def stage_breakdown(aggregator: OfferAggregator, **filters) -> pd.DataFrame:
    """
    Offer count and value per stage, one row per stage in pipeline order.

    Returns:
        DataFrame: stage, offer_count, total_value, count_share, value_share
    """
    agg = aggregator.aggregate('stage', **filters)
    if not agg.empty:
        agg = agg[['stage', 'offer_count', 'total_value']]
    df = normalize_stages(agg, ['offer_count', 'total_value'])

    df['count_share'] = safe_percentage(df['offer_count'], df['offer_count'].sum())
    df['value_share'] = safe_percentage(df['total_value'], df['total_value'].sum())
    return df


def pipeline_summary(aggregator: OfferAggregator, **filters) -> Dict[str, Any]:
    """
    Headline pipeline numbers for a filter.

    win_rate = won / (won + lost) * 100, conversion_rate = won / total * 100.
    Both are 0 when their denominator is 0.
    """
    offers = aggregator.filter_offers(**filters)
    totals = aggregator.totals(**filters)

    won_count = totals['won_count']
    lost_count = int((offers['stage'] == LOST_STAGE).sum())
    open_count = int(offers['is_open'].sum())
    total_count = totals['offer_count']

    summary = {
        'total_offers': total_count,
        'total_value': totals['total_value'],
        'won_offers': won_count,
        'won_value': totals['won_value'],
        'lost_offers': lost_count,
        'lost_value': float(offers.loc[offers['stage'] == LOST_STAGE, 'value'].sum()),
        'open_offers': open_count,
        'open_value': totals['open_value'],
        'expected_value': totals['expected_value'],
        'win_rate': safe_percentage(won_count, won_count + lost_count),
        'conversion_rate': safe_percentage(won_count, total_count),
        'average_offer_value': safe_divide(totals['total_value'], total_count),
        'average_won_value': safe_divide(totals['won_value'], won_count),
    }

    logger.debug(
        f"[pipeline_summary] {total_count} offers, {won_count} {WON_STAGE}, "
        f"win rate {summary['win_rate']:.1f}%"
    )
    return summary


def booking_targets(
    yearly_targets_df: Optional[pd.DataFrame],
    monthly_targets_df: Optional[pd.DataFrame] = None
) -> pd.DataFrame:
    """
    Booking target per zone for a year.

    A zone's yearly target wins; zones without one fall back to the sum of
    their monthly targets.

    Returns:
        DataFrame: zone_id, booking_target
    """
    frames = []
    yearly = _by_zone(yearly_targets_df)
    if not yearly.empty:
        frames.append(yearly)

    monthly = _by_zone(monthly_targets_df)
    if not monthly.empty:
        if not yearly.empty:
            monthly = monthly[~monthly['zone_id'].isin(yearly['zone_id'])]
        frames.append(monthly)

    if not frames:
        return pd.DataFrame({'zone_id': pd.Series(dtype='Int64'), 'booking_target': pd.Series(dtype=float)})
    return pd.concat(frames, ignore_index=True)


def _by_zone(targets_df: Optional[pd.DataFrame]) -> pd.DataFrame:
    combined = combine_targets(targets_df, ['scope_id'])
    return combined.rename(columns={'scope_id': 'zone_id', 'target_value': 'booking_target'})


def combine_targets(targets_df: Optional[pd.DataFrame], by: List[str]) -> pd.DataFrame:
    """
    One target value per `by` key, without double counting.

    Within each (scope, key) the all-product-types target (null product
    type) is used when present; otherwise the per-product-type targets are
    summed. The scope-level values are then summed per key.

    Returns:
        DataFrame: by columns + target_value
    """
    if targets_df is None or targets_df.empty:
        return pd.DataFrame({col: pd.Series(dtype=object) for col in by}).assign(
            target_value=pd.Series(dtype=float)
        )

    df = prepare_targets(targets_df)
    df['_combined'] = df['product_type'].isna()
    scope_keys = list(dict.fromkeys(['scope_type', 'scope_id'] + by))
    has_combined = df.groupby(scope_keys, dropna=False)['_combined'].transform('any')
    picked = df[df['_combined'] | ~has_combined]
    return picked.groupby(by, as_index=False, sort=True)['target_value'].sum()


def zone_highlights(
    aggregator: OfferAggregator,
    zones_df: pd.DataFrame,
    booking_targets_df: Optional[pd.DataFrame] = None,
    **filters
) -> Dict[str, Any]:
    """
    Per-zone highlight rows plus a totals row.

    Args:
        aggregator: Offer snapshot
        zones_df: Active zones (zone_id, zone_name)
        booking_targets_df: zone_id, booking_target (see booking_targets())
        **filters: Passed to the aggregator (date range, product type)

    Returns:
        Dict with 'rows' (DataFrame, one row per active zone) and 'total' (dict)
    """
    agg = aggregator.aggregate('zone_id', **filters)
    if not agg.empty:
        agg = agg.rename(columns={
            'offer_count': 'num_offers',
            'total_value': 'offers_value',
            'won_value': 'orders_received',
        })[['zone_id', 'num_offers', 'offers_value', 'orders_received']]

    rows = normalize_zones(agg, zones_df, ['num_offers', 'offers_value', 'orders_received'])
    rows['num_offers'] = rows['num_offers'].astype(int)

    if booking_targets_df is not None and not booking_targets_df.empty:
        targets = booking_targets_df[['zone_id', 'booking_target']].copy()
        targets['zone_id'] = coerce_ids(targets['zone_id'])
        rows['zone_id'] = coerce_ids(rows['zone_id'])
        rows = rows.merge(targets, on='zone_id', how='left')
        rows['booking_target'] = rows['booking_target'].fillna(0.0)
    else:
        rows['booking_target'] = 0.0

    rows['open_funnel'] = rows['offers_value'] - rows['orders_received']
    rows['balance'] = rows['booking_target'] - rows['orders_received']
    rows['dev_percent'] = safe_percentage(
        rows['orders_received'] - rows['booking_target'],
        rows['booking_target']
    )

    total = {col: rows[col].sum() for col in HIGHLIGHT_VALUE_COLUMNS}
    total['num_offers'] = int(total['num_offers'])
    total = {k: (v if k == 'num_offers' else float(v)) for k, v in total.items()}
    total['dev_percent'] = safe_percentage(
        total['orders_received'] - total['booking_target'],
        total['booking_target']
    )

    logger.debug(f"[zone_highlights] {len(rows)} zones, {total['num_offers']} offers")
    return {
        'rows': rows[['zone_id', 'zone_name'] + HIGHLIGHT_VALUE_COLUMNS + ['dev_percent']],
        'total': total,
    }
