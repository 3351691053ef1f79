import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score


def mape(y_true, y_pred, floor: float = 1.0) -> float:
    """Mean Absolute Percentage Error (MAPE) in %. Actuals are floored at `floor`."""
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    if y_true.size == 0:
        return 0.0
    denom = np.maximum(y_true, floor)
    return float(np.mean(np.abs(y_true - y_pred) / denom) * 100.0)


def rmse(y_true, y_pred) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def calculate_metrics(y_true, y_pred) -> dict:
    """Standard regression metrics used by the evaluator and the baselines."""
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    if len(y_true) != len(y_pred):
        raise ValueError(f"y_true and y_pred length mismatch: {len(y_true)} vs {len(y_pred)}.")
    if y_true.size == 0:
        return {"mape": 0.0, "rmse": 0.0, "mae": 0.0, "r2": 0.0}
    # r2_score is undefined for a single point
    r2 = float(r2_score(y_true, y_pred)) if y_true.size > 1 else 0.0
    return {
        "mape": mape(y_true, y_pred),
        "rmse": rmse(y_true, y_pred),
        "mae": float(mean_absolute_error(y_true, y_pred)),
        "r2": r2,
    }


def normalized_slope(values) -> float:
    """Least-squares slope of `values` over their positions, divided by their mean."""
    values = np.asarray(values, dtype=float)
    if values.size < 2:
        return 0.0
    mean = values.mean()
    if mean <= 0:
        return 0.0
    x = np.arange(values.size, dtype=float)
    slope = np.polyfit(x, values, deg=1)[0]
    return float(slope / mean)
