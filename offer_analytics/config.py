# offer_analytics/config.py
"""
Centralized Configuration Management

Version: 1.1.0
Features:
- Local .env loading (python-dotenv)
- Singleton pattern for efficiency
- Type-safe getters with defaults
- Lazy database validation (importing the package never needs a database)
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any
from dataclasses import dataclass

# Initialize logger
logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Database configuration container"""
    host: str
    port: int
    user: str
    password: str
    database: str
    dialect: str = "mysql+pymysql"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database,
            'dialect': self.dialect,
        }

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)


class Config:
    """
    Centralized configuration management

    Usage:
        from offer_analytics.config import config

        # Get database config (raises if .env is incomplete)
        db_config = config.get_db_config()

        # Get engine settings
        threshold = config.get_app_setting("EXPECTED_PROBABILITY_THRESHOLD", 50)
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._load_config()
        self._initialized = True

    def _load_config(self):
        """Load configuration from the local environment"""
        self._load_env_file()
        self._load_db_config()
        self._load_app_config()
        self._log_config_status()

    def _load_env_file(self):
        """Find and load the first .env file found"""
        env_paths = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

    def _load_db_config(self):
        """Read Offer Store / Target Store connection settings"""
        self._db_config = DatabaseConfig(
            host=os.getenv("DB_HOST", ""),
            port=int(os.getenv("DB_PORT", "3306")),
            user=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            database=os.getenv("DB_NAME", os.getenv("DB_DATABASE", "offer_crm")),
            dialect=os.getenv("DB_DIALECT", "mysql+pymysql"),
        )

    def _load_app_config(self):
        """Load engine-specific settings"""
        self._app_config = {
            # Reconciliation
            "EXPECTED_PROBABILITY_THRESHOLD": int(os.getenv("EXPECTED_PROBABILITY_THRESHOLD", "50")),

            # Rollups
            "PARETO_CUTOFF": float(os.getenv("PARETO_CUTOFF", "0.8")),
            "DEFAULT_TOP_N": int(os.getenv("DEFAULT_TOP_N", "5")),

            # Database pool
            "DB_POOL_SIZE": int(os.getenv("DB_POOL_SIZE", "5")),
            "DB_POOL_RECYCLE": int(os.getenv("DB_POOL_RECYCLE", "3600")),
        }

    def _log_config_status(self):
        """Log configuration status"""
        if self._db_config.is_configured():
            logger.info(f"✅ Database: {self._db_config.host}/{self._db_config.database}")
        else:
            logger.info("⚠️ Database: Not configured")

    # ==================== PUBLIC GETTERS ====================

    def get_db_config(self) -> Dict[str, Any]:
        """
        Get database configuration as dictionary.

        Raises:
            ValueError: If host, user or password is missing
        """
        if not self._db_config.is_configured():
            logger.error("Missing required database configuration")
            raise ValueError("Missing required database configuration. Please check .env file.")
        return self._db_config.to_dict()

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        return self._app_config.get(key, default)

    # ==================== PROPERTIES ====================

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

__all__ = [
    'config',
    'Config',
    'DatabaseConfig',
]
