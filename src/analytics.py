# analytics.py
"""Headline numbers shown above the forecast chart."""

import pandas as pd

from data_loader import prepare_observations
from utils.constants import DATE_COL, REVENUE_COL, ORDERS_COL, SUMMARY_WINDOW_DAYS


def summarize(observations, window: int = SUMMARY_WINDOW_DAYS) -> dict:
    """
    Totals, average order value and the recent revenue trend: mean revenue of the
    last `window` days against the `window` days before, in %.
    """
    df = prepare_observations(observations)

    total_revenue = float(df[REVENUE_COL].sum())
    if ORDERS_COL in df.columns:
        total_orders = int(pd.to_numeric(df[ORDERS_COL], errors="coerce").fillna(0).sum())
    else:
        total_orders = len(df)
    avg_order_value = total_revenue / total_orders if total_orders > 0 else 0.0

    recent = df[REVENUE_COL].iloc[-window:]
    older = df[REVENUE_COL].iloc[-2 * window:-window]
    recent_avg = float(recent.mean()) if len(recent) else 0.0
    older_avg = float(older.mean()) if len(older) else recent_avg
    trend_pct = (recent_avg - older_avg) / older_avg * 100.0 if older_avg > 0 else 0.0

    return {
        "total_revenue": total_revenue,
        "total_orders": total_orders,
        "avg_order_value": avg_order_value,
        "trend_pct": trend_pct,
        "market_cycle": "expansion" if trend_pct > 0 else "neutral",
        "last_data_date": df[DATE_COL].iloc[-1].date().isoformat() if len(df) else None,
    }
