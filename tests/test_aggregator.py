from datetime import date

import pandas as pd
import pytest

from offer_analytics.target_achievement import (
    ErrorKind, InvalidReportInput, OfferAggregator, resolve_offer_value,
)

from .factories import make_offer


def test_value_resolution_priority():
    offers = pd.DataFrame([
        make_offer(1, "WON", po_value=500, offer_value=300),
        make_offer(2, "WON", po_value=0, offer_value=300),
        make_offer(3, "WON", po_value=0, offer_value=None),
        make_offer(4, "WON", po_value=None, offer_value=None),
        make_offer(5, "WON", po_value=-20, offer_value=40),
    ])

    assert resolve_offer_value(offers).tolist() == [500.0, 300.0, 0.0, 0.0, 40.0]


def test_input_frame_is_not_mutated(offers_df):
    before = offers_df.copy()

    OfferAggregator(offers_df).aggregate("zone_id")

    pd.testing.assert_frame_equal(offers_df, before)


def test_aggregate_by_zone_sums_totals_and_won(offers_df):
    agg = OfferAggregator(offers_df).aggregate(
        "zone_id", date_from=date(2025, 3, 1), date_to=date(2025, 3, 31)
    )
    east = agg[agg["zone_id"] == 1].iloc[0]
    north = agg[agg["zone_id"] == 2].iloc[0]

    assert agg["zone_id"].tolist() == [1, 2]
    assert east["total_value"] == 850_000
    assert east["offer_count"] == 3
    assert east["won_value"] == 650_000
    assert east["won_count"] == 2
    assert north["won_value"] == 120_000
    assert north["open_value"] == 100_000


def test_expected_value_uses_strict_probability_cutoff(offers_df):
    agg = OfferAggregator(offers_df).aggregate("zone_id", date_from=date(2025, 3, 1))
    by_zone = agg.set_index("zone_id")["expected_value"]

    # 200,000 at 60% counts; 100,000 at exactly 50% does not
    assert by_zone[1] == pytest.approx(120_000)
    assert by_zone[2] == 0


def test_zones_without_offers_produce_no_row(offers_df):
    agg = OfferAggregator(offers_df).aggregate("zone_id")

    assert 3 not in agg["zone_id"].tolist()


def test_multi_key_grouping(offers_df):
    agg = OfferAggregator(offers_df).aggregate(
        ["zone_id", "product_type"], date_from=date(2025, 3, 1)
    )
    keys = list(zip(agg["zone_id"], agg["product_type"]))

    assert keys == [(1, "CONTRACT"), (1, "SPP"), (2, "RELOCATION"), (2, "SPP")]


def test_month_bucket_and_whole_day_upper_bound():
    offers = pd.DataFrame([
        make_offer(1, "WON", po_value=10, created_at=pd.Timestamp("2025-03-31 23:59:00")),
        make_offer(2, "WON", po_value=20, created_at=pd.Timestamp("2025-04-01 00:00:00")),
    ])
    aggregator = OfferAggregator(offers)

    march = aggregator.totals(date_from=date(2025, 3, 1), date_to=date(2025, 3, 31))
    by_month = aggregator.aggregate("month")

    assert march["total_value"] == 10
    assert by_month["month"].tolist() == ["2025-03", "2025-04"]


def test_null_group_keys_are_dropped():
    offers = pd.DataFrame([
        make_offer(1, "WON", po_value=10, product_type=None),
        make_offer(2, "WON", po_value=20, product_type="SPP"),
    ])

    agg = OfferAggregator(offers).aggregate("product_type")

    assert agg["product_type"].tolist() == ["SPP"]


def test_aggregation_is_idempotent_and_order_independent(offers_df):
    first = OfferAggregator(offers_df).aggregate(["zone_id", "product_type"])
    shuffled = offers_df.sample(frac=1, random_state=7).reset_index(drop=True)
    second = OfferAggregator(shuffled).aggregate(["zone_id", "product_type"])

    pd.testing.assert_frame_equal(first, second)


def test_empty_snapshot_gives_empty_aggregate():
    aggregator = OfferAggregator(pd.DataFrame())

    assert aggregator.is_empty
    assert aggregator.aggregate("zone_id").empty
    assert aggregator.totals()["offer_count"] == 0


def test_unknown_group_key_rejected(offers_df):
    with pytest.raises(InvalidReportInput) as exc_info:
        OfferAggregator(offers_df).aggregate("customer_id")

    assert exc_info.value.kind == ErrorKind.BAD_INPUT
    assert exc_info.value.field == "group_by"
