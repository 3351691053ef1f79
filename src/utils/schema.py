# schema.py
"""
Schema definition for forecasting model features and target.
Order matters: the model consumes flat arrays positionally matched to FEATURE_COLS.
"""

LAG_COLS = [
    "revenue_lag1", "revenue_lag7", "revenue_lag28",
    "quantity_lag1", "quantity_lag7", "quantity_lag28",
]

ROLLING_COLS = [
    "revenue_rolling_7", "revenue_rolling_14", "revenue_rolling_28",
    "quantity_rolling_7", "quantity_rolling_14", "quantity_rolling_28",
]

CALENDAR_COLS = ["day_of_week", "month", "is_weekend", "day_of_month", "quarter"]

EVENT_COLS = ["is_payday", "is_promo_period", "days_since_promo"]

TREND_COLS = ["trend_7d", "trend_14d", "volatility_7d"]

FEATURE_COLS = LAG_COLS + ROLLING_COLS + CALENDAR_COLS + EVENT_COLS + TREND_COLS

TARGET_COL = "revenue"

FORECAST_COLS = [
    "date", "revenue", "quantity", "orders", "profit", "avg_order_value", "is_forecast",
]
