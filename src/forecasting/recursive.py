# recursive.py
"""
Recursive multi-step revenue forecast.
- Trains once on the full clean feature matrix.
- Walks forward one day at a time: each prediction is appended to the working
  series and feeds the lags / rolling means / trends of the following days.
  Errors compound over the horizon; that is the accepted behavior.
- Quantity, orders and profit are fixed ratios of predicted revenue
  (business approximations; overridable via the `forecast` config section).
"""

from typing import Tuple

import numpy as np
import pandas as pd

from data_loader import prepare_observations
from features import EventCalendar, build_feature_matrix
from models.modeling import GradientBoostedTrees, TrainingParameters, train
from utils.constants import (
    DATE_COL, REVENUE_COL, QUANTITY_COL,
    QUANTITY_RATIO, ORDERS_RATIO, PROFIT_MARGIN, HORIZON_DAYS,
)
from utils.feature_utils import featurize_next_day, observation_row
from utils.schema import FORECAST_COLS


def _round_half_up(x: float) -> int:
    return int(np.floor(x + 0.5))


def forecast_step(
    model: GradientBoostedTrees,
    work: pd.DataFrame,
    calendar: EventCalendar = None,
    quantity_ratio: float = QUANTITY_RATIO,
    orders_ratio: float = ORDERS_RATIO,
    profit_margin: float = PROFIT_MARGIN,
) -> Tuple[pd.DataFrame, dict]:
    """
    Predict the day after the last row of `work`.
    Returns (extended working series, forecast row); `work` itself is not modified.
    """
    next_date = work[DATE_COL].iloc[-1] + pd.Timedelta(days=1)
    x_row = featurize_next_day(work, next_date, calendar)
    yhat = float(model.predict(x_row)[0])

    quantity = _round_half_up(yhat / quantity_ratio)
    orders = _round_half_up(yhat / orders_ratio)
    row = {
        "date": next_date,
        "revenue": yhat,
        "quantity": quantity,
        "orders": orders,
        "profit": yhat * profit_margin,
        "avg_order_value": yhat / max(1, orders),
        "is_forecast": True,
    }

    extended = pd.concat(
        [work, pd.DataFrame([observation_row(next_date, yhat, quantity)])],
        ignore_index=True,
    )
    return extended, row


def forecast(
    observations,
    params: TrainingParameters = None,
    horizon_days: int = None,
    config: dict = None,
) -> pd.DataFrame:
    """
    Train on all clean history and forecast `horizon_days` days past the last
    observation. `config` is an already-loaded config dict; without it the
    built-in defaults apply. Raises InsufficientDataError / InvalidParametersError
    from training.
    """
    cfg = config or {}
    fc = cfg.get("forecast", {})
    if horizon_days is None:
        horizon_days = fc.get("horizon_days", HORIZON_DAYS)
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, (int, np.integer)) or horizon_days < 0:
        raise ValueError(f"horizon_days must be a non-negative integer, got {horizon_days!r}")

    params = params or TrainingParameters.from_config(cfg)
    calendar = EventCalendar.from_config(cfg)

    matrix = build_feature_matrix(observations, calendar)
    model = train(matrix.clean, params)

    work = prepare_observations(observations)[[DATE_COL, REVENUE_COL, QUANTITY_COL]]
    rows = []
    for _ in range(int(horizon_days)):
        work, row = forecast_step(
            model,
            work,
            calendar,
            quantity_ratio=float(fc.get("quantity_ratio", QUANTITY_RATIO)),
            orders_ratio=float(fc.get("orders_ratio", ORDERS_RATIO)),
            profit_margin=float(fc.get("profit_margin", PROFIT_MARGIN)),
        )
        rows.append(row)

    return pd.DataFrame(rows, columns=FORECAST_COLS)
