# offer_analytics/db.py
"""
Database Connection Management

Version: 1.1.0
Features:
- Singleton engine with thread-safe double-checked locking
- Connection pooling with auto-reconnect
- Health check
- Read-only query helper returning DataFrames

The Offer Store and Target Store are owned elsewhere; this module only
ever reads from them.
"""

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from urllib.parse import quote_plus
import logging
import threading
from typing import Tuple, Optional, Dict, Any

from .config import config

logger = logging.getLogger(__name__)

# ==================== SINGLETON ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def get_db_engine() -> Engine:
    """
    Get SQLAlchemy database engine (singleton pattern)

    Reuses the same engine across all report requests so concurrent
    requests share one connection pool.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _create_engine()

    return _engine


def _create_engine() -> Engine:
    """Create new database engine with configured settings"""
    db_config = config.get_db_config()
    app_config = config.app_config

    dialect = db_config["dialect"]
    user = db_config["user"]
    password = quote_plus(str(db_config["password"]))
    host = db_config["host"]
    port = db_config["port"]
    database = db_config["database"]

    url = f"{dialect}://{user}:{password}@{host}:{port}/{database}"

    logger.info(f"🔌 Creating database engine: {dialect}://{user}:***@{host}:{port}/{database}")

    pool_size = app_config.get("DB_POOL_SIZE", 5)
    pool_recycle = app_config.get("DB_POOL_RECYCLE", 3600)

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # Auto-reconnect on stale connections
        echo=False
    )

    logger.info(f"✅ Database engine created (pool_size={pool_size}, recycle={pool_recycle}s)")

    return engine


# ==================== CONNECTION MANAGEMENT ====================

def check_db_connection(engine: Engine = None) -> Tuple[bool, Optional[str]]:
    """
    Check if the Offer Store / Target Store is reachable

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        engine = engine or get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except OperationalError as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False, "Cannot connect to database. Please check your network/VPN connection."
    except SQLAlchemyError as e:
        logger.error(f"❌ Database error: {e}")
        return False, f"Database error: {str(e)}"


# ==================== QUERY HELPERS ====================

def execute_query_df(query: str, params: Dict[str, Any] = None, engine: Engine = None) -> pd.DataFrame:
    """
    Execute SELECT query and return results as DataFrame

    Runs on a plain connection so driver failures surface as SQLAlchemyError
    whatever the installed pandas version.

    Args:
        query: SQL query string
        params: Query parameters
        engine: Optional engine override (defaults to the singleton)

    Returns:
        pandas DataFrame (result columns are kept even with zero rows)
    """
    engine = engine or get_db_engine()
    with engine.connect() as conn:
        result = conn.execute(text(query), params or {})
        columns = list(result.keys())
        rows = result.fetchall()
    return pd.DataFrame.from_records(rows, columns=columns, coerce_float=True)


# ==================== EXPORTS ====================

__all__ = [
    'get_db_engine',
    'check_db_connection',
    'execute_query_df',
]
