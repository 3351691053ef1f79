# tests/test_features.py
import numpy as np
import pandas as pd
import pytest

from features import (
    EventCalendar, build_calendar_features, build_event_features, build_feature_matrix,
    lag, rolling_mean, select_clean_rows, trend_features,
)
from utils.feature_utils import featurize_next_day
from utils.schema import FEATURE_COLS, LAG_COLS


def test_calendar_features_saturday():
    cal = build_calendar_features("2024-06-15")
    assert cal == {
        "day_of_week": 5,
        "month": 6,
        "is_weekend": 1,
        "day_of_month": 15,
        "quarter": 2,
    }


def test_calendar_features_weekday_accepts_timestamp():
    cal = build_calendar_features(pd.Timestamp("2024-01-01 13:45"))  # Monday
    assert cal["day_of_week"] == 0
    assert cal["is_weekend"] == 0
    assert cal["quarter"] == 1


def test_event_calendar_payday_window():
    cal = EventCalendar()
    assert cal.is_payday("2024-03-02")
    assert cal.is_payday("2024-03-29")
    assert cal.is_payday("2024-02-29")
    assert not cal.is_payday("2024-03-10")
    assert not cal.is_payday("2024-03-28")


def test_event_calendar_promo_days():
    cal = EventCalendar()
    assert cal.is_promo_day("2024-03-15")   # mid-month
    assert cal.is_promo_day("2024-03-31")   # month end
    assert cal.is_promo_day("2024-11-11")   # twin date
    assert not cal.is_promo_day("2024-03-10")

    no_twin = EventCalendar(twin_date_promo=False)
    assert not no_twin.is_promo_day("2024-11-11")


def test_event_calendar_from_config():
    cal = EventCalendar.from_config({"events": {"promo_days_of_month": [10, 20], "payday_last_days": 1}})
    assert cal.promo_days_of_month == (10, 20)
    assert cal.is_promo_day("2024-05-20")
    assert not cal.is_payday("2024-05-30")
    assert cal.is_payday("2024-05-31")


def test_event_features_days_since_promo():
    known = pd.date_range("2024-03-01", "2024-03-10", freq="D")
    evt = build_event_features("2024-03-10", known)
    # 3.3 is the most recent promo day (twin date)
    assert evt == {"is_payday": 0, "is_promo_period": 0, "days_since_promo": 7}

    on_promo = build_event_features("2024-03-15", known)
    assert on_promo["is_promo_period"] == 1
    assert on_promo["days_since_promo"] == 0


def test_event_features_search_bounded_by_known_dates():
    known = pd.date_range("2024-03-05", "2024-03-10", freq="D")
    evt = build_event_features("2024-03-10", known)
    assert evt["days_since_promo"] == -1


def test_lag_zero_fallback():
    series = [10.0, 20.0, 30.0]
    assert lag(series, 2, 1) == 20.0
    assert lag(series, 2, 2) == 10.0
    assert lag(series, 0, 1) == 0.0
    assert lag(series, 1, 28) == 0.0


def test_rolling_mean_partial_windows():
    out = rolling_mean([2.0, 4.0, 6.0, 8.0], 2)
    assert np.allclose(out, [2.0, 3.0, 5.0, 7.0])
    assert np.allclose(rolling_mean([2.0, 4.0, 6.0], 7), [2.0, 3.0, 4.0])


def test_trend_features_linear_series():
    series = 1_000.0 + 100.0 * np.arange(60)
    out = trend_features(series, 59)
    # slope 100 per day relative to the mean of the last 7 values
    expected_7 = 100.0 / series[53:60].mean()
    expected_14 = 100.0 / series[46:60].mean()
    assert out["trend_7d"] > 0
    assert out["trend_7d"] == pytest.approx(expected_7, rel=1e-9)
    assert out["trend_14d"] == pytest.approx(expected_14, rel=1e-9)
    assert out["volatility_7d"] == pytest.approx(np.std(series[53:60]))


def test_trend_features_short_series_do_not_raise():
    assert trend_features([], 0) == {"trend_7d": 0.0, "trend_14d": 0.0, "volatility_7d": 0.0}
    assert trend_features([5.0], -1) == {"trend_7d": 0.0, "trend_14d": 0.0, "volatility_7d": 0.0}

    out = trend_features([5.0, 6.0], 1)
    assert out["trend_7d"] == 0.0
    assert out["trend_14d"] == 0.0
    assert out["volatility_7d"] == pytest.approx(0.5)


def test_feature_matrix_columns_and_lags(weekly_observations):
    matrix = build_feature_matrix(weekly_observations)
    rows = matrix.all
    assert list(rows.columns) == ["date", "revenue", "quantity"] + FEATURE_COLS
    assert len(rows) == len(weekly_observations)

    revenue = weekly_observations["revenue"].to_numpy()
    quantity = weekly_observations["quantity"].to_numpy()
    for i in range(28, len(rows)):
        assert rows.loc[i, "revenue_lag28"] == revenue[i - 28]
        assert rows.loc[i, "quantity_lag7"] == quantity[i - 7]
        assert rows.loc[i, "revenue_lag1"] == revenue[i - 1]


def test_feature_matrix_rolling_uses_only_past(weekly_observations):
    rows = build_feature_matrix(weekly_observations).all
    revenue = weekly_observations["revenue"].to_numpy()
    assert rows.loc[0, "revenue_rolling_7"] == 0.0
    assert rows.loc[3, "revenue_rolling_7"] == pytest.approx(revenue[:3].mean())
    assert rows.loc[40, "revenue_rolling_28"] == pytest.approx(revenue[12:40].mean())


def test_feature_matrix_ignores_current_target(weekly_observations):
    base = build_feature_matrix(weekly_observations).all
    changed = weekly_observations.copy()
    changed.loc[changed.index[-1], "revenue"] = 1.0
    other = build_feature_matrix(changed).all
    pd.testing.assert_series_equal(
        base[FEATURE_COLS].iloc[-1], other[FEATURE_COLS].iloc[-1]
    )


def test_clean_row_gating(weekly_observations):
    matrix = build_feature_matrix(weekly_observations)
    assert len(matrix.clean) == len(matrix.all) - 28
    assert len(matrix.clean) <= len(matrix.all)
    assert (matrix.clean[LAG_COLS] > 0).all().all()

    excluded = matrix.all[~matrix.all["date"].isin(matrix.clean["date"])]
    assert ((excluded[LAG_COLS] == 0).any(axis=1)).all()


def test_zero_day_makes_dependent_rows_unclean(weekly_observations):
    obs = weekly_observations.copy()
    obs.loc[50, "revenue"] = 0.0
    matrix = build_feature_matrix(obs)
    clean_dates = set(matrix.clean["date"])
    for offset in (1, 7, 28):
        assert obs.loc[50 + offset, "date"] not in clean_dates
    assert obs.loc[52, "date"] in clean_dates
    assert len(select_clean_rows(matrix.all)) == len(matrix.clean)


def test_days_since_promo_shifted(make_observations):
    obs = make_observations(20, np.full(20, 500.0), start="2024-03-01")
    rows = build_feature_matrix(obs).all.set_index("date")
    # 3.3 is a promo day: stored as raw days + 1
    assert rows.loc[pd.Timestamp("2024-03-03"), "days_since_promo"] == 1
    assert rows.loc[pd.Timestamp("2024-03-10"), "days_since_promo"] == 8
    # no promo day on or after 3.1 before 3.3
    assert rows.loc[pd.Timestamp("2024-03-01"), "days_since_promo"] == 0


def test_empty_observations():
    matrix = build_feature_matrix([])
    assert matrix.all.empty and matrix.clean.empty
    assert list(matrix.all.columns)[3:] == FEATURE_COLS


def test_next_day_features_match_matrix(weekly_observations):
    """Features for a future day equal what the assembler computes for that index."""
    next_date = weekly_observations["date"].iloc[-1] + pd.Timedelta(days=1)
    future = featurize_next_day(weekly_observations, next_date)

    extended = pd.concat(
        [weekly_observations, pd.DataFrame([{"date": next_date, "revenue": 0.0, "quantity": 0}])],
        ignore_index=True,
    )
    expected = build_feature_matrix(extended).all[FEATURE_COLS].iloc[-1].to_numpy(dtype=float)
    assert list(future.columns) == FEATURE_COLS
    assert np.allclose(future.iloc[0].to_numpy(dtype=float), expected)
