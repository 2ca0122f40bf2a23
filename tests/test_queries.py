from datetime import date

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from offer_analytics import check_db_connection, execute_query_df
from offer_analytics.target_achievement import ReportContext, ReportRequest, TargetReportService
from offer_analytics.target_achievement.constants import OFFER_COLUMNS, TARGET_COLUMNS


def test_get_offers_filters_by_whole_day_range(sql_queries):
    offers = sql_queries.get_offers(date(2025, 3, 1), date(2025, 3, 31))

    assert list(offers.columns) == OFFER_COLUMNS
    assert offers["id"].tolist() == [1, 2]
    assert offers["owner_id"].tolist() == [10, 10]


def test_get_offers_scope_filters(sql_queries):
    assert sql_queries.get_offers(zone_id=2)["id"].tolist() == [4, 3]
    assert sql_queries.get_offers(owner_id=11, product_type="SPP")["id"].tolist() == [4]


def test_get_zone_targets_for_period(sql_queries):
    targets = sql_queries.get_zone_targets("2025-03", "MONTHLY")

    assert list(targets.columns) == TARGET_COLUMNS
    assert targets["id"].tolist() == [101, 102]
    assert targets["scope_type"].unique().tolist() == ["ZONE"]
    assert targets["scope_name"].unique().tolist() == ["East"]


def test_get_zone_targets_product_type_excludes_combined(sql_queries):
    targets = sql_queries.get_zone_targets("2025-03", "MONTHLY", product_type="CONTRACT")

    assert targets["id"].tolist() == [102]


def test_get_user_targets_fall_back_to_email(sql_queries):
    targets = sql_queries.get_user_targets("2025-03", "MONTHLY")

    assert targets["scope_type"].unique().tolist() == ["USER"]
    assert targets["scope_name"].tolist() == ["Asha", "ravi@example.com"]
    assert sql_queries.get_user_targets("2025-03", "MONTHLY", user_id=11)["id"].tolist() == [202]


def test_monthly_and_yearly_zone_targets(sql_queries):
    monthly = sql_queries.get_monthly_zone_targets(2025)
    yearly = sql_queries.get_yearly_zone_targets(2025)

    assert sorted(monthly["id"].tolist()) == [101, 102, 103]
    assert yearly["id"].tolist() == [104]


def test_lookup_data(sql_queries):
    zones = sql_queries.get_active_zones()
    users = sql_queries.get_users()

    assert zones["zone_name"].tolist() == ["East", "North"]
    assert users["user_id"].tolist() == [10, 11]
    assert sql_queries.get_users(zone_id=2)["user_id"].tolist() == [11]


def test_store_failures_propagate(sql_queries, sqlite_engine):
    with sqlite_engine.begin() as conn:
        conn.execute(text("DROP TABLE offers"))

    with pytest.raises(SQLAlchemyError):
        sql_queries.get_offers()


def test_execute_query_df_keeps_columns_without_rows(sqlite_engine):
    df = execute_query_df(
        "SELECT id, po_value FROM offers WHERE zone_id = :zone_id", {"zone_id": 99}, engine=sqlite_engine
    )

    assert df.empty
    assert df.columns.tolist() == ["id", "po_value"]


def test_execute_query_df_reads_nulls_as_nan(sqlite_engine):
    df = execute_query_df("SELECT id, po_value FROM offers ORDER BY id", engine=sqlite_engine)

    assert df["id"].tolist() == [1, 2, 3, 4]
    assert df["po_value"].isna().tolist() == [False, True, False, True]


def test_check_db_connection_healthy(sqlite_engine):
    assert check_db_connection(sqlite_engine) == (True, None)


def test_check_db_connection_unreachable(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'offers.db'}")

    ok, message = check_db_connection(engine)

    assert not ok
    assert "Cannot connect" in message


def test_report_over_sql_store(sql_queries):
    service = TargetReportService(queries=sql_queries, context=ReportContext(today=date(2025, 6, 1)))

    report = service.build_report(ReportRequest(period="2025-03", period_type="MONTHLY"))
    zones = report.zone_targets.set_index("id")
    users = report.user_targets.set_index("id")

    assert zones.loc[101, "achievement"] == pytest.approx(40.0)
    assert zones.loc[101, "open_funnel"] == 200_000
    assert zones.loc[101, "expected_value"] == pytest.approx(120_000)
    assert zones.loc[102, "achievement"] == pytest.approx(80.0)
    assert users.loc[201, "achievement"] == pytest.approx(400_000 / 300_000 * 100)
    assert users.loc[202, "actual_value"] == 0
    assert report.pacing is None
