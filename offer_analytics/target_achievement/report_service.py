# offer_analytics/target_achievement/report_service.py
"""
Target Report Service

VERSION: 1.1.0

CHANGELOG:
- v1.1.0: build_analytics() with rankings, Pareto, histogram, user × zone
          matrix, monthly / quarterly series and pipeline metrics
- v1.0.0: Initial build_report() orchestration

Single entry point of the engine. One request = one read from each store,
then everything else happens in memory:

1. Validate the request (period key, zone, user, product type, date range)
2. Load targets and offers for the period
3. Aggregate offers once, reconcile zone and user targets
4. Summarize, project pacing, build the standard normalized views

Scope defaults (zone restriction, today, reference enumerations) come from
the ReportContext, never from the environment.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from .aggregator import OfferAggregator
from .constants import ALL_PRODUCT_TYPES, PeriodType
from .exceptions import InvalidReportInput, NoReportData
from .models import ReportContext, ReportRequest, TargetReport
from .normalizer import normalize_product_types
from .pacing import PacingProjector
from .periods import ReportPeriod, parse_period
from .pipeline_metrics import (
    booking_targets, combine_targets, pipeline_summary, stage_breakdown, zone_highlights,
)
from .queries import OfferAnalyticsQueries
from .ratios import safe_percentage
from .reconciler import (
    RECONCILED_COLUMNS, TargetReconciler, find_duplicate_targets, prepare_targets,
)
from .rollups import (
    achievement_histogram, bottom_n, monthly_series, pareto, quarterly_summary,
    stacked_pivot, top_n, user_zone_matrix,
)

logger = logging.getLogger(__name__)

PRODUCT_TYPE_VIEW_COLUMNS = [
    'product_type', 'target_value', 'actual_value', 'offers_value', 'offer_count',
    'won_count', 'expected_value', 'achievement', 'variance',
]


@dataclass
class _ResolvedScope:
    """Validated request plus everything loaded for it."""
    period: ReportPeriod
    zone_id: Optional[int]
    user_id: Optional[int]
    product_type: Optional[str]
    date_from: date
    date_to: date
    zones_df: pd.DataFrame
    zone_targets_df: pd.DataFrame
    user_targets_df: pd.DataFrame
    aggregator: OfferAggregator
    require_data: bool = False

    @property
    def offer_filters(self) -> Dict[str, Any]:
        return {'date_from': self.date_from, 'date_to': self.date_to}


class TargetReportService:
    """
    Build target achievement reports.

    Usage:
        service = TargetReportService(context=ReportContext(today=date(2025, 3, 14)))

        report = service.build_report(ReportRequest(period='2025-03', period_type='MONTHLY'))
        payload = report.to_dict()

        analytics = service.build_analytics(ReportRequest(period='2025', period_type='YEARLY'))
    """

    def __init__(self, queries: OfferAnalyticsQueries = None, context: ReportContext = None):
        """
        Args:
            queries: Store adapter (default: SQL adapter on the shared engine)
            context: Explicit defaults (today, zones, product types, zone restriction)
        """
        self.queries = queries or OfferAnalyticsQueries()
        self.context = context or ReportContext()

    # =========================================================================
    # MAIN ENTRY POINTS
    # =========================================================================

    def build_report(self, request: ReportRequest) -> TargetReport:
        """
        Reconcile every zone and user target of the requested period.

        Raises:
            InvalidReportInput: Malformed period, unknown zone / user /
                product type, inverted date range
            NoReportData: request.require_data and neither targets nor offers exist
        """
        logger.info(f"Building target report: {request!r}")
        scope = self._resolve(request)
        report = self._assemble_report(scope)

        if not report.has_targets:
            logger.info(f"No zone or user targets for {scope.period.key}")

        logger.info(
            f"✅ Report {scope.period.key}: {len(report.zone_targets)} zone / "
            f"{len(report.user_targets)} user targets, "
            f"achievement {report.summary['total_achievement']:.1f}%"
        )
        return report

    def build_analytics(self, request: ReportRequest) -> Dict[str, Any]:
        """
        Report plus the multi-dimensional rollups built from the same snapshot.

        Returns:
            Dict with keys: report, top_zones, bottom_zones, top_users,
            bottom_users, product_pareto, achievement_histogram,
            user_zone_matrix, stage_breakdown, pipeline_summary,
            zone_highlights, and for YEARLY periods monthly_series and
            quarterly_summary
        """
        logger.info(f"Building target analytics: {request!r}")
        scope = self._resolve(request)
        report = self._assemble_report(scope)
        aggregator = scope.aggregator
        filters = scope.offer_filters

        all_rows = _concat_rows([report.zone_targets, report.user_targets])
        users_df = self._load_users()

        analytics = {
            'report': report,
            'top_zones': top_n(report.zone_targets),
            'bottom_zones': bottom_n(report.zone_targets),
            'top_users': top_n(report.user_targets),
            'bottom_users': bottom_n(report.user_targets),
            'product_pareto': pareto(report.product_types, value_col='actual_value', label_col='product_type'),
            'achievement_histogram': achievement_histogram(all_rows),
            'user_zone_matrix': user_zone_matrix(
                aggregator.aggregate(['owner_id', 'zone_id'], **filters),
                users_df,
                scope.zones_df,
            ),
            'stage_breakdown': stage_breakdown(aggregator, **filters),
            'pipeline_summary': pipeline_summary(aggregator, **filters),
        }

        if scope.period.period_type == PeriodType.YEARLY:
            monthly_targets_df = self.queries.get_monthly_zone_targets(scope.period.year, zone_id=scope.zone_id)
            monthly_targets_df = _filter_product_type(monthly_targets_df, scope.product_type)

            series = monthly_series(
                aggregator.aggregate('month', **filters),
                combine_targets(monthly_targets_df, ['period']),
                scope.period.year,
            )
            analytics['monthly_series'] = series
            analytics['quarterly_summary'] = quarterly_summary(series)
            booking = booking_targets(scope.zone_targets_df, monthly_targets_df)
        else:
            booking = booking_targets(scope.zone_targets_df)

        analytics['zone_highlights'] = zone_highlights(aggregator, scope.zones_df, booking, **filters)

        logger.info(f"✅ Analytics {scope.period.key}: {len(analytics)} views")
        return analytics

    # =========================================================================
    # VALIDATION & LOADING
    # =========================================================================

    def _resolve(self, request: ReportRequest) -> _ResolvedScope:
        """Validate the request and load targets and offers once."""
        period = parse_period(request.period, request.period_type)
        zone_id = self._resolve_zone(request.zone_id)
        product_type = self._resolve_product_type(request.product_type)

        zones_df = self._load_zones()
        if zone_id is not None:
            if zone_id not in set(zones_df['zone_id'].tolist()):
                raise InvalidReportInput(f"Unknown zone {zone_id}", field='zone_id')
            zones_df = zones_df[zones_df['zone_id'] == zone_id].reset_index(drop=True)

        user_id = request.user_id
        if user_id is not None:
            users_df = self._load_users()
            if user_id not in set(users_df['user_id'].tolist()):
                raise InvalidReportInput(f"Unknown user {user_id}", field='user_id')

        date_from = request.date_from or period.start
        date_to = request.date_to or period.end
        if _as_day(date_from) > _as_day(date_to):
            raise InvalidReportInput(
                f"Invalid date range: {date_from} is after {date_to}",
                field='date_from'
            )

        zone_targets_df = self.queries.get_zone_targets(
            period.key, period.period_type.value, zone_id=zone_id, product_type=product_type
        )
        user_targets_df = self.queries.get_user_targets(
            period.key, period.period_type.value, user_id=user_id, product_type=product_type
        )
        offers_df = self.queries.get_offers(
            date_from, date_to, zone_id=zone_id, product_type=product_type
        )

        logger.debug(
            f"Loaded {len(zone_targets_df)} zone targets, {len(user_targets_df)} user targets, "
            f"{len(offers_df)} offers for {period.key} ({date_from} → {date_to})"
        )

        return _ResolvedScope(
            period=period,
            zone_id=zone_id,
            user_id=user_id,
            product_type=product_type,
            date_from=date_from,
            date_to=date_to,
            zones_df=zones_df,
            zone_targets_df=_filter_product_type(zone_targets_df, product_type),
            user_targets_df=_filter_product_type(user_targets_df, product_type),
            aggregator=OfferAggregator(offers_df),
            require_data=request.require_data,
        )

    def _resolve_zone(self, zone_id: Optional[int]) -> Optional[int]:
        """A zone restriction in the context overrides the request."""
        restriction = self.context.zone_restriction
        if restriction is None:
            return zone_id
        if zone_id is not None and zone_id != restriction:
            raise InvalidReportInput(
                f"Zone {zone_id} is outside the restricted zone {restriction}",
                field='zone_id'
            )
        return restriction

    def _resolve_product_type(self, product_type) -> Optional[str]:
        if product_type is None:
            return None
        value = str(getattr(product_type, 'value', product_type))
        if value not in self._product_types:
            raise InvalidReportInput(f"Unknown product type '{value}'", field='product_type')
        return value

    @property
    def _product_types(self) -> List[str]:
        return [str(getattr(pt, 'value', pt)) for pt in (self.context.product_types or ALL_PRODUCT_TYPES)]

    def _load_zones(self) -> pd.DataFrame:
        if self.context.zones_df is not None:
            return self.context.zones_df
        return self.queries.get_active_zones()

    def _load_users(self) -> pd.DataFrame:
        if self.context.users_df is not None:
            return self.context.users_df
        return self.queries.get_users()

    # =========================================================================
    # ASSEMBLY
    # =========================================================================

    def _assemble_report(self, scope: _ResolvedScope) -> TargetReport:
        period = scope.period
        aggregator = scope.aggregator
        filters = scope.offer_filters

        if (
            scope.require_data
            and scope.zone_targets_df.empty
            and scope.user_targets_df.empty
            and aggregator.is_empty
        ):
            raise NoReportData(f"No targets or offers for {period.period_type.value} {period.key}")

        reconciler = TargetReconciler(aggregator)
        zone_rows = reconciler.reconcile(scope.zone_targets_df, **filters)
        user_rows = reconciler.reconcile(scope.user_targets_df, **filters)

        summary = summarize(zone_rows, user_rows)

        projector = PacingProjector(today=self.context.today)
        pacing = projector.project(summary['total_target_value'], summary['total_actual_value'], period)
        zone_rows = projector.apply_to_frame(zone_rows, period)
        user_rows = projector.apply_to_frame(user_rows, period)

        product_type_view = self._product_type_view(aggregator, scope.zone_targets_df, filters)
        pivot = stacked_pivot(
            aggregator.aggregate(['zone_id', 'product_type'], **filters),
            scope.zones_df,
            self._product_types,
        )

        return TargetReport(
            period=period.key,
            period_type=period.period_type.value,
            zone_targets=zone_rows,
            user_targets=user_rows,
            summary=summary,
            pacing=pacing,
            product_types=product_type_view,
            zone_product_pivot=pivot,
        )

    def _product_type_view(
        self,
        aggregator: OfferAggregator,
        zone_targets_df: pd.DataFrame,
        filters: Dict[str, Any]
    ) -> pd.DataFrame:
        """One row per product type: zone targets for that type vs won value."""
        agg = aggregator.aggregate('product_type', **filters)
        view = normalize_product_types(
            agg, ['total_value', 'offer_count', 'won_value', 'won_count', 'expected_value'],
            self._product_types,
        )

        targets_df = prepare_targets(zone_targets_df)
        typed_targets = targets_df[targets_df['product_type'].notna()]
        targets = normalize_product_types(
            typed_targets[['product_type', 'target_value']] if not typed_targets.empty else None,
            ['target_value'],
            self._product_types,
        )

        view = view.merge(targets, on='product_type', how='left')
        view = view.rename(columns={'won_value': 'actual_value', 'total_value': 'offers_value'})
        view['achievement'] = safe_percentage(view['actual_value'], view['target_value'])
        view['variance'] = view['actual_value'] - view['target_value']
        return view[PRODUCT_TYPE_VIEW_COLUMNS]


# =============================================================================
# SUMMARY
# =============================================================================

def summarize(zone_rows: pd.DataFrame, user_rows: pd.DataFrame) -> Dict[str, Any]:
    """
    Report-level totals across zone and user targets.

    Totals sum both scopes; total_achievement and total_expected_achievement
    are guarded ratios of those totals.
    """
    rows = _concat_rows([zone_rows, user_rows])

    total_target = float(rows['target_value'].sum()) if not rows.empty else 0.0
    total_actual = float(rows['actual_value'].sum()) if not rows.empty else 0.0
    total_expected = float(rows['expected_value'].sum()) if not rows.empty else 0.0
    total_funnel = float(rows['open_funnel'].sum()) if not rows.empty else 0.0

    return {
        'total_target_value': total_target,
        'total_actual_value': total_actual,
        'total_achievement': safe_percentage(total_actual, total_target),
        'total_variance': total_actual - total_target,
        'total_expected_value': total_expected,
        'total_expected_achievement': safe_percentage(total_expected, total_target),
        'total_open_funnel': total_funnel,
        'total_zone_targets': int(len(zone_rows)),
        'total_user_targets': int(len(user_rows)),
        'targets_met': int((rows['achievement'] >= 100).sum()) if not rows.empty else 0,
        'average_achievement': float(rows['achievement'].mean()) if not rows.empty else 0.0,
        'duplicate_target_keys': find_duplicate_targets(rows) if not rows.empty else [],
    }


def _concat_rows(frames: List[pd.DataFrame]) -> pd.DataFrame:
    non_empty = [f for f in frames if f is not None and not f.empty]
    if not non_empty:
        return pd.DataFrame(columns=RECONCILED_COLUMNS)
    return pd.concat(non_empty, ignore_index=True)


def _filter_product_type(targets_df: pd.DataFrame, product_type: Optional[str]) -> pd.DataFrame:
    """With a product type filter, only targets of exactly that type remain."""
    if product_type is None or targets_df is None or targets_df.empty:
        return targets_df
    return targets_df[targets_df['product_type'] == product_type].reset_index(drop=True)


def _as_day(value: date) -> date:
    """Calendar day of a date or datetime bound."""
    return value.date() if isinstance(value, datetime) else value
