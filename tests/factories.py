from datetime import datetime

import pandas as pd


def make_offer(
    offer_id,
    stage,
    po_value=None,
    offer_value=None,
    zone_id=1,
    owner_id=10,
    product_type="CONTRACT",
    probability=None,
    created_at=datetime(2025, 3, 5, 9, 30),
):
    return {
        "id": offer_id,
        "stage": stage,
        "po_value": po_value,
        "offer_value": offer_value,
        "zone_id": zone_id,
        "owner_id": owner_id,
        "product_type": product_type,
        "probability_percentage": probability,
        "created_at": created_at,
    }


def make_target(
    target_id,
    scope_type,
    scope_id,
    target_value,
    period="2025-03",
    period_type="MONTHLY",
    product_type=None,
    scope_name=None,
    target_offer_count=None,
):
    return {
        "id": target_id,
        "scope_type": scope_type,
        "scope_id": scope_id,
        "scope_name": scope_name or f"{scope_type.title()} {scope_id}",
        "product_type": product_type,
        "period": period,
        "period_type": period_type,
        "target_value": target_value,
        "target_offer_count": target_offer_count,
    }


class FrameQueries:
    """In-memory stand-in for the SQL store adapter."""

    def __init__(self, offers_df, zone_targets_df, user_targets_df, zones_df, users_df, monthly_targets_df=None):
        self.offers_df = offers_df
        self.zone_targets_df = zone_targets_df
        self.user_targets_df = user_targets_df
        self.zones_df = zones_df
        self.users_df = users_df
        self.monthly_targets_df = monthly_targets_df
        self.calls = []

    def get_offers(self, date_from=None, date_to=None, zone_id=None, owner_id=None, product_type=None):
        self.calls.append("offers")
        df = self.offers_df
        created = pd.to_datetime(df["created_at"])
        mask = pd.Series(True, index=df.index)
        if date_from is not None:
            mask &= created >= pd.Timestamp(date_from)
        if date_to is not None:
            mask &= created < pd.Timestamp(date_to) + pd.Timedelta(days=1)
        if zone_id is not None:
            mask &= df["zone_id"] == zone_id
        if product_type is not None:
            mask &= df["product_type"] == product_type
        return df[mask].reset_index(drop=True)

    def _targets(self, df, period, period_type, scope_id, product_type):
        if df is None or df.empty:
            return pd.DataFrame(columns=df.columns if df is not None else [])
        mask = (df["period"] == period) & (df["period_type"] == period_type)
        if scope_id is not None:
            mask &= df["scope_id"] == scope_id
        if product_type is not None:
            mask &= df["product_type"] == product_type
        return df[mask].reset_index(drop=True)

    def get_zone_targets(self, period, period_type, zone_id=None, product_type=None):
        self.calls.append("zone_targets")
        return self._targets(self.zone_targets_df, period, period_type, zone_id, product_type)

    def get_user_targets(self, period, period_type, user_id=None, product_type=None):
        self.calls.append("user_targets")
        return self._targets(self.user_targets_df, period, period_type, user_id, product_type)

    def get_monthly_zone_targets(self, year, zone_id=None):
        df = self.monthly_targets_df
        if df is None:
            return pd.DataFrame()
        mask = df["period"].str.startswith(f"{year}-")
        if zone_id is not None:
            mask &= df["scope_id"] == zone_id
        return df[mask].reset_index(drop=True)

    def get_active_zones(self):
        return self.zones_df

    def get_users(self, zone_id=None):
        return self.users_df
