from datetime import date

import pandas as pd

from offer_analytics.target_achievement import (
    ALL_PRODUCT_TYPES,
    ALL_STAGES,
    OfferAggregator,
    normalize,
    normalize_matrix,
    normalize_months,
    normalize_product_types,
    normalize_stages,
    normalize_zones,
)


def test_product_types_always_nine_rows(offers_df):
    agg = OfferAggregator(offers_df).aggregate("product_type", date_from=date(2025, 3, 1))

    view = normalize_product_types(agg)

    assert len(view) == 9
    assert view["product_type"].tolist() == ALL_PRODUCT_TYPES


def test_missing_member_gets_zero_row(offers_df):
    agg = OfferAggregator(offers_df).aggregate("product_type", date_from=date(2025, 3, 1))

    software = normalize_product_types(agg).set_index("product_type").loc["SOFTWARE"]

    assert software["offer_count"] == 0
    assert software["total_value"] == 0
    assert software["won_value"] == 0


def test_empty_input_still_full_enumeration():
    view = normalize_product_types(None)

    assert len(view) == 9
    assert (view["total_value"] == 0).all()
    assert view["offer_count"].dtype.kind == "i"


def test_non_members_are_dropped():
    df = pd.DataFrame({"product_type": ["SPP", "HARDWARE"], "total_value": [10.0, 99.0]})

    view = normalize_product_types(df, ["total_value"])

    assert "HARDWARE" not in view["product_type"].tolist()
    assert view["total_value"].sum() == 10.0


def test_duplicate_keys_collapse_to_one_row():
    df = pd.DataFrame({"stage": ["WON", "WON"], "offer_count": [1, 2]})

    view = normalize(df, "stage", ["WON", "LOST"])

    assert view.set_index("stage").loc["WON", "offer_count"] == 3
    assert len(view) == 2


def test_stages_in_pipeline_order():
    view = normalize_stages(None, ["offer_count"])

    assert view["stage"].tolist() == ALL_STAGES
    assert len(view) == 8


def test_months_cover_the_year():
    df = pd.DataFrame({"month": ["2025-02"], "won_value": [50.0]})

    view = normalize_months(df, 2025, ["won_value"])

    assert len(view) == 12
    assert view.loc[1, "won_value"] == 50.0
    assert view["won_value"].sum() == 50.0


def test_zones_carry_names_in_reference_order(offers_df, zones_df):
    agg = OfferAggregator(offers_df).aggregate("zone_id")

    view = normalize_zones(agg, zones_df, ["won_value"])

    assert view["zone_name"].tolist() == ["East", "North", "South"]
    assert view.set_index("zone_id").loc[3, "won_value"] == 0


def test_matrix_is_full_grid(offers_df, zones_df):
    agg = OfferAggregator(offers_df).aggregate(["zone_id", "product_type"])

    grid = normalize_matrix(agg, "zone_id", zones_df["zone_id"], "product_type", ALL_PRODUCT_TYPES, ["won_value"])

    assert len(grid) == len(zones_df) * len(ALL_PRODUCT_TYPES)
    assert grid["won_value"].sum() == agg["won_value"].sum()
