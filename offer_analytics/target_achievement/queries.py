# offer_analytics/target_achievement/queries.py
"""
SQL Queries and Data Loading for Target Achievement

Read-only adapters over the Offer Store and Target Store:
- Offers (date range, zone, owner, product type)
- Zone targets and user targets for a period
- Monthly / yearly zone targets for a calendar year
- Lookup data (active zones, users)

Every method returns a pandas DataFrame shaped like OFFER_COLUMNS /
TARGET_COLUMNS so the engine never sees store-specific names.
Store failures are logged and re-raised, never turned into empty frames.

CHANGELOG:
- v1.1.0: Store errors propagate (previously returned an empty DataFrame,
          which made an outage look like "no targets")
- v1.0.0: Initial offer / zone target / user target loaders
"""

import logging
from datetime import date, timedelta
from typing import Optional

import pandas as pd
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..db import execute_query_df, get_db_engine
from .constants import OFFER_COLUMNS, TARGET_COLUMNS, PeriodType, ScopeType

logger = logging.getLogger(__name__)


class OfferAnalyticsQueries:
    """
    Data loading class for target achievement.

    Usage:
        queries = OfferAnalyticsQueries()

        offers_df = queries.get_offers(date(2025, 1, 1), date(2025, 12, 31))
        zone_targets_df = queries.get_zone_targets('2025', 'YEARLY')
    """

    def __init__(self, engine: Engine = None):
        """
        Initialize with an optional engine.

        Args:
            engine: SQLAlchemy engine; the shared singleton is used when None
        """
        self._engine = engine

    @property
    def engine(self) -> Engine:
        """Lazy load database engine."""
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    # =========================================================================
    # OFFER STORE
    # =========================================================================

    def get_offers(
        self,
        date_from: date = None,
        date_to: date = None,
        zone_id: int = None,
        owner_id: int = None,
        product_type: str = None
    ) -> pd.DataFrame:
        """
        Load offers created within [date_from, date_to].

        Args:
            date_from: First day (inclusive)
            date_to: Last day (inclusive, whole day)
            zone_id: Optional zone filter
            owner_id: Optional creating-user filter
            product_type: Optional product type filter

        Returns:
            DataFrame with OFFER_COLUMNS
        """
        query = """
            SELECT
                id,
                stage,
                po_value,
                offer_value,
                zone_id,
                created_by_id AS owner_id,
                product_type,
                probability_percentage,
                created_at
            FROM offers
            WHERE 1 = 1
        """
        params = {}

        if date_from is not None:
            query += " AND created_at >= :date_from"
            params['date_from'] = date_from.strftime('%Y-%m-%d')

        if date_to is not None:
            query += " AND created_at < :date_to_exclusive"
            params['date_to_exclusive'] = (date_to + timedelta(days=1)).strftime('%Y-%m-%d')

        if zone_id is not None:
            query += " AND zone_id = :zone_id"
            params['zone_id'] = zone_id

        if owner_id is not None:
            query += " AND created_by_id = :owner_id"
            params['owner_id'] = owner_id

        if product_type is not None:
            query += " AND product_type = :product_type"
            params['product_type'] = str(getattr(product_type, 'value', product_type))

        query += " ORDER BY created_at, id"

        df = self._execute_query(query, params, "offers")
        return _ensure_columns(df, OFFER_COLUMNS)

    # =========================================================================
    # TARGET STORE
    # =========================================================================

    def get_zone_targets(
        self,
        period: str,
        period_type: str,
        zone_id: int = None,
        product_type: str = None
    ) -> pd.DataFrame:
        """
        Load zone targets for one period.

        Args:
            period: Exact period key ('YYYY' or 'YYYY-MM')
            period_type: MONTHLY or YEARLY
            zone_id: Optional zone filter
            product_type: Optional product type filter (null-type targets excluded)

        Returns:
            DataFrame with TARGET_COLUMNS, scope_type = ZONE
        """
        query = f"""
            SELECT
                t.id,
                '{ScopeType.ZONE.value}' AS scope_type,
                t.service_zone_id AS scope_id,
                z.name AS scope_name,
                t.product_type,
                t.target_period AS period,
                t.period_type,
                t.target_value,
                t.target_offer_count
            FROM zone_targets t
            LEFT JOIN service_zones z ON z.id = t.service_zone_id
            WHERE t.target_period = :period
              AND t.period_type = :period_type
        """
        params = {'period': period, 'period_type': str(getattr(period_type, 'value', period_type))}

        if zone_id is not None:
            query += " AND t.service_zone_id = :zone_id"
            params['zone_id'] = zone_id

        if product_type is not None:
            query += " AND t.product_type = :product_type"
            params['product_type'] = str(getattr(product_type, 'value', product_type))

        query += " ORDER BY z.name, t.product_type, t.id"

        df = self._execute_query(query, params, "zone_targets")
        return _ensure_columns(df, TARGET_COLUMNS)

    def get_user_targets(
        self,
        period: str,
        period_type: str,
        user_id: int = None,
        product_type: str = None
    ) -> pd.DataFrame:
        """
        Load user targets for one period.

        scope_name is the user's name, falling back to email.

        Returns:
            DataFrame with TARGET_COLUMNS, scope_type = USER
        """
        query = f"""
            SELECT
                t.id,
                '{ScopeType.USER.value}' AS scope_type,
                t.user_id AS scope_id,
                COALESCE(u.name, u.email) AS scope_name,
                t.product_type,
                t.target_period AS period,
                t.period_type,
                t.target_value,
                t.target_offer_count
            FROM user_targets t
            LEFT JOIN users u ON u.id = t.user_id
            WHERE t.target_period = :period
              AND t.period_type = :period_type
        """
        params = {'period': period, 'period_type': str(getattr(period_type, 'value', period_type))}

        if user_id is not None:
            query += " AND t.user_id = :user_id"
            params['user_id'] = user_id

        if product_type is not None:
            query += " AND t.product_type = :product_type"
            params['product_type'] = str(getattr(product_type, 'value', product_type))

        query += " ORDER BY scope_name, t.product_type, t.id"

        df = self._execute_query(query, params, "user_targets")
        return _ensure_columns(df, TARGET_COLUMNS)

    def get_monthly_zone_targets(self, year: int, zone_id: int = None) -> pd.DataFrame:
        """
        All MONTHLY zone targets of a calendar year ('YYYY-01' .. 'YYYY-12').

        Returns:
            DataFrame with TARGET_COLUMNS
        """
        query = f"""
            SELECT
                t.id,
                '{ScopeType.ZONE.value}' AS scope_type,
                t.service_zone_id AS scope_id,
                z.name AS scope_name,
                t.product_type,
                t.target_period AS period,
                t.period_type,
                t.target_value,
                t.target_offer_count
            FROM zone_targets t
            LEFT JOIN service_zones z ON z.id = t.service_zone_id
            WHERE t.period_type = :period_type
              AND t.target_period LIKE :year_prefix
        """
        params = {'period_type': PeriodType.MONTHLY.value, 'year_prefix': f"{int(year):04d}-%"}

        if zone_id is not None:
            query += " AND t.service_zone_id = :zone_id"
            params['zone_id'] = zone_id

        query += " ORDER BY t.target_period, t.service_zone_id, t.id"

        df = self._execute_query(query, params, "monthly_zone_targets")
        return _ensure_columns(df, TARGET_COLUMNS)

    def get_yearly_zone_targets(self, year: int, zone_id: int = None) -> pd.DataFrame:
        """All YEARLY zone targets for a calendar year."""
        return self.get_zone_targets(f"{int(year):04d}", PeriodType.YEARLY.value, zone_id=zone_id)

    # =========================================================================
    # LOOKUP DATA
    # =========================================================================

    def get_active_zones(self) -> pd.DataFrame:
        """
        Active service zones, ordered by name.

        Returns:
            DataFrame: zone_id, zone_name
        """
        query = """
            SELECT
                id AS zone_id,
                name AS zone_name
            FROM service_zones
            WHERE is_active = 1
            ORDER BY name, id
        """
        df = self._execute_query(query, {}, "active_zones")
        return _ensure_columns(df, ['zone_id', 'zone_name'])

    def get_users(self, zone_id: Optional[int] = None) -> pd.DataFrame:
        """
        Active users, ordered by name.

        Args:
            zone_id: Only users who created offers in this zone

        Returns:
            DataFrame: user_id, user_name
        """
        query = """
            SELECT
                u.id AS user_id,
                COALESCE(u.name, u.email) AS user_name
            FROM users u
            WHERE u.is_active = 1
        """
        params = {}
        if zone_id is not None:
            query += """
              AND EXISTS (
                  SELECT 1 FROM offers o
                  WHERE o.created_by_id = u.id AND o.zone_id = :zone_id
              )
            """
            params['zone_id'] = zone_id

        query += " ORDER BY user_name, u.id"

        df = self._execute_query(query, params, "users")
        return _ensure_columns(df, ['user_id', 'user_name'])

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _execute_query(
        self,
        query: str,
        params: dict,
        query_name: str = "query"
    ) -> pd.DataFrame:
        """
        Execute SQL query and return DataFrame.

        Args:
            query: SQL query string
            params: Query parameters
            query_name: Name for logging

        Returns:
            DataFrame with results

        Raises:
            SQLAlchemyError: Store failure (logged, then re-raised)
        """
        try:
            logger.debug(f"Executing {query_name}")
            df = execute_query_df(query, params, engine=self.engine)
            logger.debug(f"{query_name} returned {len(df)} rows")
            return df
        except SQLAlchemyError as e:
            logger.error(f"Error executing {query_name}: {e}")
            raise


def _ensure_columns(df: pd.DataFrame, columns: list) -> pd.DataFrame:
    """Keep the contract column order; absent columns come back empty."""
    for col in columns:
        if col not in df.columns:
            df[col] = pd.Series(dtype=object)
    return df[columns]
