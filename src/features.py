# features.py
"""
Feature engineering for daily revenue forecasting.

Every feature of row i is computed from history strictly before i (lags,
rolling means, trend statistics) or from the calendar date of i itself, so the
same computation applies to a future day whose revenue is still unknown.
"""

from dataclasses import dataclass, fields
from typing import Iterable, List, NamedTuple, Tuple

import numpy as np
import pandas as pd

from data_loader import prepare_observations
from utils.constants import (
    DATE_COL, REVENUE_COL, QUANTITY_COL,
    LAG_OFFSETS, ROLLING_WINDOWS, TREND_WINDOWS, VOLATILITY_WINDOW,
)
from utils.math_utils import normalized_slope
from utils.schema import FEATURE_COLS, LAG_COLS


def _to_timestamp(date) -> pd.Timestamp:
    return pd.Timestamp(date).normalize()


# ------------------ Calendar ------------------
def build_calendar_features(date) -> dict:
    ts = _to_timestamp(date)
    return {
        "day_of_week": int(ts.dayofweek),  # Monday=0
        "month": int(ts.month),
        "is_weekend": int(ts.dayofweek >= 5),
        "day_of_month": int(ts.day),
        "quarter": int(ts.quarter),
    }


# ------------------ Business events ------------------
@dataclass(frozen=True)
class EventCalendar:
    """Payday and promo-period rules. Day thresholds are configurable heuristics."""

    payday_first_days: int = 3
    payday_last_days: int = 3
    promo_days_of_month: Tuple[int, ...] = (15,)
    promo_month_end_days: int = 1
    twin_date_promo: bool = True

    @classmethod
    def from_config(cls, cfg: dict) -> "EventCalendar":
        events = cfg.get("events", {}) if cfg else {}
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in events.items() if k in known}
        if "promo_days_of_month" in kwargs:
            kwargs["promo_days_of_month"] = tuple(int(d) for d in kwargs["promo_days_of_month"])
        return cls(**kwargs)

    def is_payday(self, date) -> bool:
        ts = _to_timestamp(date)
        days_left = ts.days_in_month - ts.day
        return ts.day <= self.payday_first_days or days_left < self.payday_last_days

    def is_promo_day(self, date) -> bool:
        ts = _to_timestamp(date)
        if ts.day in self.promo_days_of_month:
            return True
        if ts.days_in_month - ts.day < self.promo_month_end_days:
            return True
        return self.twin_date_promo and ts.day == ts.month


def build_event_features(date, known_dates: Iterable, calendar: EventCalendar = None) -> dict:
    """
    Payday / promo flags for `date` plus the number of days since the most recent
    promo day at or before it. The search never goes earlier than min(known_dates);
    days_since_promo is -1 when no promo day is found in that range.
    """
    calendar = calendar or EventCalendar()
    ts = _to_timestamp(date)
    known = [_to_timestamp(d) for d in known_dates]
    earliest = min(known) if known else ts

    days_since_promo = -1
    cursor = ts
    while cursor >= earliest:
        if calendar.is_promo_day(cursor):
            days_since_promo = (ts - cursor).days
            break
        cursor -= pd.Timedelta(days=1)

    return {
        "is_payday": int(calendar.is_payday(ts)),
        "is_promo_period": int(calendar.is_promo_day(ts)),
        "days_since_promo": days_since_promo,
    }


# ------------------ Lag / rolling / trend ------------------
def lag(series, index: int, offset: int) -> float:
    """series[index - offset], or 0.0 when that position does not exist."""
    pos = index - offset
    if pos < 0 or pos >= len(series):
        return 0.0
    return float(series[pos])


def rolling_mean(series, window: int) -> np.ndarray:
    """Trailing mean ending at each index; partial windows at the start."""
    return (
        pd.Series(series, dtype=float)
        .rolling(window=window, min_periods=1)
        .mean()
        .to_numpy()
    )


def trend_features(series, index: int) -> dict:
    """
    trend_Nd: least-squares slope of the trailing N values ending at `index`,
    relative to their mean. volatility_7d: std of the trailing 7 values.
    Short history gives 0.0.
    """
    values = np.asarray(series, dtype=float)
    out = {f"trend_{n}d": 0.0 for n in TREND_WINDOWS}
    out[f"volatility_{VOLATILITY_WINDOW}d"] = 0.0
    if index < 0 or values.size == 0:
        return out
    index = min(index, values.size - 1)

    for n in TREND_WINDOWS:
        if index + 1 >= n:
            out[f"trend_{n}d"] = normalized_slope(values[index - n + 1:index + 1])

    window = values[max(0, index - VOLATILITY_WINDOW + 1):index + 1]
    if window.size >= 2:
        out[f"volatility_{VOLATILITY_WINDOW}d"] = float(np.std(window))
    return out


# ------------------ Matrix assembly ------------------
class FeatureMatrix(NamedTuple):
    all: pd.DataFrame
    clean: pd.DataFrame


def select_clean_rows(rows: pd.DataFrame) -> pd.DataFrame:
    """Rows whose six lag features all come from real (non-zero) observations."""
    mask = (rows[LAG_COLS] > 0).all(axis=1)
    return rows[mask].reset_index(drop=True)


def _empty_matrix() -> pd.DataFrame:
    return pd.DataFrame(columns=[DATE_COL, REVENUE_COL, QUANTITY_COL] + FEATURE_COLS)


def build_feature_matrix(observations, calendar: EventCalendar = None) -> FeatureMatrix:
    """
    One feature row per observation. Rows whose lags fall before the start of
    the series carry 0.0 there and are left out of `clean`.
    """
    obs = prepare_observations(observations)
    if obs.empty:
        empty = _empty_matrix()
        return FeatureMatrix(all=empty, clean=empty.copy())

    rev = obs[REVENUE_COL].astype(float)
    qty = obs[QUANTITY_COL].astype(float)
    out = obs[[DATE_COL, REVENUE_COL, QUANTITY_COL]].copy()

    # --- Lags (0.0 before the series starts) ---
    for k in LAG_OFFSETS:
        out[f"revenue_lag{k}"] = rev.shift(k).fillna(0.0)
        out[f"quantity_lag{k}"] = qty.shift(k).fillna(0.0)

    # --- Past rolling means (exclude today via shift) ---
    for w in ROLLING_WINDOWS:
        out[f"revenue_rolling_{w}"] = rev.shift(1).rolling(window=w, min_periods=1).mean().fillna(0.0)
        out[f"quantity_rolling_{w}"] = qty.shift(1).rolling(window=w, min_periods=1).mean().fillna(0.0)

    # --- Calendar & event bits ---
    dates: List[pd.Timestamp] = out[DATE_COL].tolist()
    search_bound = dates[:1]  # sorted, so only the first date bounds the promo search
    date_rows = []
    for d in dates:
        row = build_calendar_features(d)
        row.update(build_event_features(d, search_bound, calendar))
        row["days_since_promo"] += 1
        date_rows.append(row)

    # --- Trend / volatility up to yesterday ---
    rev_values = rev.to_numpy()
    trend_rows = [trend_features(rev_values, i - 1) for i in range(len(rev_values))]

    out = pd.concat(
        [out, pd.DataFrame(date_rows, index=out.index), pd.DataFrame(trend_rows, index=out.index)],
        axis=1,
    )
    out = out[[DATE_COL, REVENUE_COL, QUANTITY_COL] + FEATURE_COLS]

    return FeatureMatrix(all=out, clean=select_clean_rows(out))
