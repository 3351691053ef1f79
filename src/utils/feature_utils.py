import pandas as pd

from features import (
    EventCalendar, build_calendar_features, build_event_features,
    lag, rolling_mean, trend_features,
)
from utils.constants import (
    DATE_COL, REVENUE_COL, QUANTITY_COL, LAG_OFFSETS, ROLLING_WINDOWS,
)
from utils.schema import FEATURE_COLS


def observation_row(date, revenue: float, quantity: float) -> dict:
    return {
        DATE_COL: pd.Timestamp(date).normalize(),
        REVENUE_COL: float(revenue),
        QUANTITY_COL: quantity,
    }


def featurize_next_day(work: pd.DataFrame, date, calendar: EventCalendar = None) -> pd.DataFrame:
    """
    Feature row for `date`, the day right after the last row of `work`.
    Mirrors build_feature_matrix for index len(work) without a known target.
    """
    rev = work[REVENUE_COL].to_numpy(dtype=float)
    qty = work[QUANTITY_COL].to_numpy(dtype=float)
    index = len(rev)

    row = {}
    for k in LAG_OFFSETS:
        row[f"revenue_lag{k}"] = lag(rev, index, k)
        row[f"quantity_lag{k}"] = lag(qty, index, k)
    for w in ROLLING_WINDOWS:
        row[f"revenue_rolling_{w}"] = float(rolling_mean(rev, w)[-1]) if index else 0.0
        row[f"quantity_rolling_{w}"] = float(rolling_mean(qty, w)[-1]) if index else 0.0

    row.update(build_calendar_features(date))
    row.update(build_event_features(date, work[DATE_COL].iloc[:1], calendar))
    row["days_since_promo"] += 1
    row.update(trend_features(rev, index - 1))

    feats = pd.DataFrame([row])
    missing = [c for c in FEATURE_COLS if c not in feats.columns]
    if missing:
        raise RuntimeError(f"Feature generation missing columns: {missing}")
    return feats[FEATURE_COLS].copy()
