# offer_analytics/__init__.py
"""
Offer Analytics Package

Shared infrastructure plus the target achievement engine:
- config: Configuration management (.env via python-dotenv)
- db: Database connection management with pooling
- target_achievement: Target reconciliation and analytics

Usage:
    from offer_analytics import config, get_db_engine
    from offer_analytics.target_achievement import TargetReportService, ReportRequest
"""

# Configuration
from .config import (
    config,
    Config,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    execute_query_df,
)

__all__ = [
    # Config
    'config',
    'Config',

    # Database
    'get_db_engine',
    'check_db_connection',
    'execute_query_df',
]

__version__ = '1.1.0'
