# offer_analytics/target_achievement/__init__.py
"""
Target Achievement Module

Reconciles period-scoped zone / user targets against offer actuals and
builds the analytics views around them.

VERSION: 1.1.0
CHANGELOG:
- v1.1.0: ADDED analytics rollups and pipeline metrics:
          - rollups.py: top_n / bottom_n, pareto, achievement_histogram,
            stacked_pivot, user_zone_matrix, monthly_series, quarterly_summary
          - pipeline_metrics.py: stage_breakdown, pipeline_summary,
            zone_highlights (booking target = yearly target, else sum of months)
          - report_service.py: build_analytics()
          FIXED store failures being reported as "no targets":
          - queries.py: SQLAlchemy errors are logged and re-raised
- v1.0.0: Initial release:
          - aggregator.py: OfferAggregator (po_value > offer_value > 0)
          - reconciler.py: TargetReconciler with duplicate / funnel flags
          - normalizer.py: zero-filled product type, zone, stage, month views
          - pacing.py: PacingProjector for the current month

Components:
- constants.py: Enumerations and business settings
- exceptions.py: TargetReportError hierarchy (BAD_INPUT / NO_DATA)
- periods.py: Period key parsing and calendar bounds
- models.py: ReportRequest, ReportContext, PacingResult, TargetReport
- queries.py: Offer / target store adapter
- report_service.py: TargetReportService (entry point)
"""

from .constants import (
    ProductType,
    OfferStage,
    PeriodType,
    ScopeType,
    ALL_PRODUCT_TYPES,
    ALL_STAGES,
)

from .exceptions import (
    ErrorKind,
    TargetReportError,
    InvalidReportInput,
    InvalidPeriodError,
    NoReportData,
)

from .periods import (
    ReportPeriod,
    parse_period,
    period_key,
)

from .models import (
    ReportRequest,
    ReportContext,
    PacingResult,
    TargetReport,
)

from .aggregator import OfferAggregator, resolve_offer_value
from .reconciler import TargetReconciler, find_duplicate_targets
from .normalizer import (
    normalize,
    normalize_product_types,
    normalize_zones,
    normalize_stages,
    normalize_months,
    normalize_matrix,
)
from .pacing import PacingProjector
from .rollups import (
    top_n,
    bottom_n,
    pareto,
    achievement_histogram,
    stacked_pivot,
    user_zone_matrix,
    monthly_series,
    quarterly_summary,
)
from .pipeline_metrics import (
    stage_breakdown,
    pipeline_summary,
    booking_targets,
    zone_highlights,
)
from .queries import OfferAnalyticsQueries
from .report_service import TargetReportService, summarize

__all__ = [
    # Constants
    'ProductType',
    'OfferStage',
    'PeriodType',
    'ScopeType',
    'ALL_PRODUCT_TYPES',
    'ALL_STAGES',

    # Errors
    'ErrorKind',
    'TargetReportError',
    'InvalidReportInput',
    'InvalidPeriodError',
    'NoReportData',

    # Periods
    'ReportPeriod',
    'parse_period',
    'period_key',

    # Models
    'ReportRequest',
    'ReportContext',
    'PacingResult',
    'TargetReport',

    # Engine
    'OfferAggregator',
    'resolve_offer_value',
    'TargetReconciler',
    'find_duplicate_targets',
    'normalize',
    'normalize_product_types',
    'normalize_zones',
    'normalize_stages',
    'normalize_months',
    'normalize_matrix',
    'PacingProjector',

    # Rollups
    'top_n',
    'bottom_n',
    'pareto',
    'achievement_histogram',
    'stacked_pivot',
    'user_zone_matrix',
    'monthly_series',
    'quarterly_summary',

    # Pipeline metrics
    'stage_breakdown',
    'pipeline_summary',
    'booking_targets',
    'zone_highlights',

    # Service
    'OfferAnalyticsQueries',
    'TargetReportService',
    'summarize',
]

__version__ = '1.1.0'
