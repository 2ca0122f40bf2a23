from datetime import date, datetime

import pandas as pd
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from offer_analytics.target_achievement import ReportContext, TargetReportService
from offer_analytics.target_achievement.queries import OfferAnalyticsQueries

from .factories import FrameQueries, make_offer, make_target


TODAY = date(2025, 3, 10)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def zones_df():
    return pd.DataFrame({"zone_id": [1, 2, 3], "zone_name": ["East", "North", "South"]})


@pytest.fixture
def users_df():
    return pd.DataFrame({"user_id": [10, 11], "user_name": ["Asha", "Ravi"]})


@pytest.fixture
def offers_df():
    return pd.DataFrame([
        make_offer(1, "WON", po_value=400_000, offer_value=350_000, zone_id=1, owner_id=10, product_type="CONTRACT"),
        make_offer(2, "WON", po_value=0, offer_value=250_000, zone_id=1, owner_id=11, product_type="SPP"),
        make_offer(3, "NEGOTIATION", offer_value=200_000, zone_id=1, owner_id=10, product_type="CONTRACT", probability=60),
        make_offer(4, "PROPOSAL_SENT", offer_value=100_000, zone_id=2, owner_id=11, product_type="SPP", probability=50),
        make_offer(5, "LOST", offer_value=80_000, zone_id=2, owner_id=11, product_type="RELOCATION"),
        make_offer(6, "WON", po_value=120_000, zone_id=2, owner_id=11, product_type="RELOCATION"),
        make_offer(
            7, "WON", po_value=999_000, zone_id=1, owner_id=10, product_type="CONTRACT",
            created_at=datetime(2025, 2, 27, 12, 0),
        ),
    ])


@pytest.fixture
def zone_targets_df():
    return pd.DataFrame([
        make_target(101, "ZONE", 1, 1_000_000, scope_name="East"),
        make_target(102, "ZONE", 1, 500_000, product_type="CONTRACT", scope_name="East"),
        make_target(103, "ZONE", 2, 0, scope_name="North"),
    ])


@pytest.fixture
def user_targets_df():
    return pd.DataFrame([
        make_target(201, "USER", 10, 300_000, scope_name="Asha", target_offer_count=2),
        make_target(202, "USER", 11, 400_000, scope_name="Ravi"),
    ])


@pytest.fixture
def frame_queries(offers_df, zone_targets_df, user_targets_df, zones_df, users_df):
    return FrameQueries(offers_df, zone_targets_df, user_targets_df, zones_df, users_df)


@pytest.fixture
def service(frame_queries, today):
    return TargetReportService(queries=frame_queries, context=ReportContext(today=today))


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    statements = [
        """CREATE TABLE service_zones (
            id INTEGER PRIMARY KEY, name TEXT, is_active INTEGER)""",
        """CREATE TABLE users (
            id INTEGER PRIMARY KEY, name TEXT, email TEXT, is_active INTEGER)""",
        """CREATE TABLE offers (
            id INTEGER PRIMARY KEY, stage TEXT, po_value REAL, offer_value REAL,
            zone_id INTEGER, created_by_id INTEGER, product_type TEXT,
            probability_percentage REAL, created_at TEXT)""",
        """CREATE TABLE zone_targets (
            id INTEGER PRIMARY KEY, service_zone_id INTEGER, product_type TEXT,
            target_period TEXT, period_type TEXT, target_value REAL, target_offer_count INTEGER)""",
        """CREATE TABLE user_targets (
            id INTEGER PRIMARY KEY, user_id INTEGER, product_type TEXT,
            target_period TEXT, period_type TEXT, target_value REAL, target_offer_count INTEGER)""",
        "INSERT INTO service_zones VALUES (1, 'East', 1), (2, 'North', 1), (3, 'Closed', 0)",
        "INSERT INTO users VALUES (10, 'Asha', 'asha@example.com', 1), (11, NULL, 'ravi@example.com', 1)",
        """INSERT INTO offers VALUES
            (1, 'WON', 400000, 350000, 1, 10, 'CONTRACT', 100, '2025-03-05 09:30:00'),
            (2, 'NEGOTIATION', NULL, 200000, 1, 10, 'CONTRACT', 60, '2025-03-31 23:15:00'),
            (3, 'WON', 120000, NULL, 2, 11, 'RELOCATION', 100, '2025-04-01 00:00:00'),
            (4, 'LOST', NULL, 80000, 2, 11, 'SPP', 10, '2025-02-28 18:00:00')""",
        """INSERT INTO zone_targets VALUES
            (101, 1, NULL, '2025-03', 'MONTHLY', 1000000, NULL),
            (102, 1, 'CONTRACT', '2025-03', 'MONTHLY', 500000, 3),
            (103, 2, NULL, '2025-04', 'MONTHLY', 200000, NULL),
            (104, 1, NULL, '2025', 'YEARLY', 9000000, NULL)""",
        """INSERT INTO user_targets VALUES
            (201, 10, NULL, '2025-03', 'MONTHLY', 300000, 2),
            (202, 11, NULL, '2025-03', 'MONTHLY', 400000, NULL)""",
    ]
    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))
    yield engine
    engine.dispose()


@pytest.fixture
def sql_queries(sqlite_engine):
    return OfferAnalyticsQueries(engine=sqlite_engine)
