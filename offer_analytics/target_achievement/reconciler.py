# offer_analytics/target_achievement/reconciler.py
"""
Target Reconciler

Pairs each zone / user target with the matching offer aggregate and derives
achievement, variance, expected achievement and open funnel.

Matching rules:
- Target with a product type → aggregate keyed by (scope, product_type)
- Target without a product type → scope-wide total across all product types
- No matching aggregate → actuals of 0 (the target row is still reported)

Duplicate target keys are reconciled row by row and flagged, never summed.
"""

import logging
from typing import List, Optional

import numpy as np
import pandas as pd

from .aggregator import OfferAggregator, coerce_ids
from .constants import (
    TARGET_COLUMNS, TARGET_KEY_COLUMNS, AGGREGATE_VALUE_COLUMNS,
    SCOPE_COLUMN, ScopeType,
)
from .exceptions import InvalidReportInput
from .ratios import safe_percentage

logger = logging.getLogger(__name__)

RECONCILED_COLUMNS = TARGET_COLUMNS + [
    'actual_value',
    'actual_offer_count',
    'achievement',
    'variance',
    'variance_percentage',
    'expected_value',
    'expected_achievement',
    'offers_value_total',
    'open_funnel',
    'count_achievement',
    'is_duplicate',
    'funnel_inconsistent',
]

# Tolerance for float noise before a negative funnel is flagged
_FUNNEL_TOLERANCE = 1e-6


def prepare_targets(targets_df: Optional[pd.DataFrame]) -> pd.DataFrame:
    """Normalize target dtypes; missing columns are added empty."""
    if targets_df is None:
        targets_df = pd.DataFrame(columns=TARGET_COLUMNS)

    df = targets_df.copy()
    for col in TARGET_COLUMNS:
        if col not in df.columns:
            df[col] = np.nan

    df['scope_type'] = df['scope_type'].map(lambda v: str(getattr(v, 'value', v)))
    df['period_type'] = df['period_type'].map(lambda v: str(getattr(v, 'value', v)))
    df['scope_id'] = coerce_ids(df['scope_id'])
    df['product_type'] = df['product_type'].map(
        lambda v: None if v is None or (not isinstance(v, str) and pd.isna(v)) else str(getattr(v, 'value', v))
    )
    df['target_value'] = pd.to_numeric(df['target_value'], errors='coerce').fillna(0.0).astype(float)
    df['target_offer_count'] = pd.to_numeric(df['target_offer_count'], errors='coerce')
    return df[TARGET_COLUMNS + [c for c in df.columns if c not in TARGET_COLUMNS]]


def find_duplicate_targets(targets_df: pd.DataFrame) -> List[str]:
    """
    Keys that appear on more than one target row.

    Returns:
        Sorted list of 'SCOPE:id:product_type:period:period_type' strings
        (product type rendered as ALL when null)
    """
    if targets_df is None or targets_df.empty:
        return []

    targets = prepare_targets(targets_df)
    dup_mask = targets.duplicated(TARGET_KEY_COLUMNS, keep=False)
    if not dup_mask.any():
        return []

    keys = set()
    for _, row in targets[dup_mask].iterrows():
        product_type = 'ALL' if pd.isna(row['product_type']) else row['product_type']
        keys.add(f"{row['scope_type']}:{row['scope_id']}:{product_type}:{row['period']}:{row['period_type']}")
    return sorted(keys)


class TargetReconciler:
    """
    Reconcile targets against offer aggregates.

    Usage:
        reconciler = TargetReconciler(OfferAggregator(offers_df))
        zone_rows = reconciler.reconcile(zone_targets_df, date_from=start, date_to=end)
    """

    def __init__(self, aggregator: OfferAggregator):
        self.aggregator = aggregator

    def reconcile(self, targets_df: pd.DataFrame, **offer_filters) -> pd.DataFrame:
        """
        Reconcile every target row.

        Args:
            targets_df: Targets (TARGET_COLUMNS); may mix ZONE and USER scopes
            **offer_filters: Date range / scope filters for the aggregator
                (date_from, date_to, zone_id, product_type, ...)

        Returns:
            DataFrame with RECONCILED_COLUMNS, one row per target, in input order
        """
        targets = prepare_targets(targets_df)
        if targets.empty:
            return pd.DataFrame(columns=RECONCILED_COLUMNS)

        targets = targets.reset_index(drop=True)
        targets['_order'] = range(len(targets))
        targets['is_duplicate'] = targets.duplicated(TARGET_KEY_COLUMNS, keep=False)

        if targets['is_duplicate'].any():
            for key in find_duplicate_targets(targets):
                logger.warning(f"Duplicate target rows for {key} - reconciled individually, not summed")

        parts = []
        for scope_type, scope_targets in targets.groupby('scope_type', sort=False):
            if scope_type not in SCOPE_COLUMN:
                raise InvalidReportInput(
                    f"Unknown scope type '{scope_type}'. Expected one of {[s.value for s in ScopeType]}",
                    field='scope_type'
                )
            parts.append(self._match_scope(scope_targets, SCOPE_COLUMN[scope_type], offer_filters))

        matched = pd.concat(parts, ignore_index=True).sort_values('_order')
        result = self._apply_metrics(matched)
        return result[RECONCILED_COLUMNS].reset_index(drop=True)

    def _match_scope(
        self,
        targets: pd.DataFrame,
        scope_col: str,
        offer_filters: dict
    ) -> pd.DataFrame:
        """Attach aggregate columns to targets of one scope type."""
        overall = self.aggregator.aggregate([scope_col], **offer_filters)
        overall = overall.rename(columns={scope_col: 'scope_id'})

        by_product = self.aggregator.aggregate([scope_col, 'product_type'], **offer_filters)
        by_product = by_product.rename(columns={scope_col: 'scope_id'})

        combined_targets = targets[targets['product_type'].isna()]
        product_targets = targets[targets['product_type'].notna()]

        merged = []
        if not combined_targets.empty:
            merged.append(combined_targets.merge(
                overall[['scope_id'] + AGGREGATE_VALUE_COLUMNS],
                on='scope_id',
                how='left'
            ))
        if not product_targets.empty:
            merged.append(product_targets.merge(
                by_product[['scope_id', 'product_type'] + AGGREGATE_VALUE_COLUMNS],
                on=['scope_id', 'product_type'],
                how='left'
            ))

        df = pd.concat(merged, ignore_index=True)
        df[AGGREGATE_VALUE_COLUMNS] = df[AGGREGATE_VALUE_COLUMNS].astype(float).fillna(0.0)
        return df

    @staticmethod
    def _apply_metrics(df: pd.DataFrame) -> pd.DataFrame:
        """Derive achievement / variance / expectation columns."""
        df = df.copy()
        target = df['target_value']

        df['actual_value'] = df['won_value']
        df['actual_offer_count'] = df['won_count'].astype(int)
        df['achievement'] = safe_percentage(df['actual_value'], target)
        df['variance'] = df['actual_value'] - target
        df['variance_percentage'] = safe_percentage(df['variance'], target)
        df['expected_achievement'] = safe_percentage(df['expected_value'], target)

        df['offers_value_total'] = df['total_value']
        df['open_funnel'] = df['offers_value_total'] - df['actual_value']
        df['funnel_inconsistent'] = df['open_funnel'] < -_FUNNEL_TOLERANCE

        df['count_achievement'] = safe_percentage(
            df['actual_offer_count'],
            df['target_offer_count'].fillna(0)
        )

        inconsistent = df[df['funnel_inconsistent']]
        for _, row in inconsistent.iterrows():
            logger.warning(
                f"Negative open funnel for {row['scope_type']} {row['scope_id']} "
                f"({row['period']}): {row['open_funnel']:,.2f}"
            )

        return df
