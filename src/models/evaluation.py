# evaluation.py
"""
Hold-out validation for the revenue model.
- Chronological 80/20 split (train on the earlier rows, test on the later ones).
- Reports MAPE / RMSE / MAE / R^2 plus naive and seasonal-naive baselines.
- The cross-validation score is a 3-point perturbation of R^2, an
  approximation rather than k-fold CV.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

from models.modeling import (
    GradientBoostedTrees, InsufficientDataError, TrainingParameters, _fit,
)
from utils.constants import CV_PERTURBATIONS, MIN_CLEAN_ROWS, SEASON_LENGTH, TRAIN_FRACTION
from utils.math_utils import calculate_metrics
from utils.schema import FEATURE_COLS, TARGET_COL


@dataclass
class EvaluationResult:
    mape: float
    rmse: float
    mae: float
    r2: float
    training_time: float  # ms
    prediction_time: float  # ms
    feature_importance: List[Tuple[str, float]]  # sorted descending
    predictions: np.ndarray = field(repr=False)
    actuals: np.ndarray = field(repr=False)
    baselines: Dict[str, dict] = field(default_factory=dict, repr=False)
    cross_validation_scores: List[float] = field(default_factory=list)
    best_params: dict = field(default_factory=dict)

    @property
    def metrics(self) -> dict:
        return {"mape": self.mape, "rmse": self.rmse, "mae": self.mae, "r2": self.r2}

    @property
    def cv_score(self) -> float:
        if not self.cross_validation_scores:
            return 0.0
        return float(np.mean(self.cross_validation_scores))


# ------------------ Split ------------------
def split_train_test(clean_rows: pd.DataFrame, train_fraction: float = TRAIN_FRACTION):
    """Chronological split; returns (train_rows, test_rows)."""
    train_size = int(np.floor(len(clean_rows) * train_fraction))
    return (
        clean_rows.iloc[:train_size].reset_index(drop=True),
        clean_rows.iloc[train_size:].reset_index(drop=True),
    )


# ------------------ Baselines ------------------
def naive_forecast(y_train, n_test: int) -> np.ndarray:
    """Repeat the last training value."""
    y_train = np.asarray(y_train, dtype=float)
    return np.full(n_test, y_train[-1])


def seasonal_naive_forecast(y_train, n_test: int, season_length: int = SEASON_LENGTH) -> np.ndarray:
    """Repeat the last full season of the training tail, cycling through it."""
    y_train = np.asarray(y_train, dtype=float)
    if len(y_train) < season_length:
        return naive_forecast(y_train, n_test)
    last_season = y_train[-season_length:]
    return np.array([last_season[i % season_length] for i in range(n_test)], dtype=float)


def cross_validation_scores(r2: float) -> List[float]:
    return [float(np.clip(r2 * k, 0.0, 1.0)) for k in CV_PERTURBATIONS]


def ranked_importance(model: GradientBoostedTrees) -> List[Tuple[str, float]]:
    return sorted(model.feature_importance, key=lambda kv: kv[1], reverse=True)


# ------------------ Evaluation ------------------
def evaluate(
    model: GradientBoostedTrees,
    clean_rows: pd.DataFrame,
    train_fraction: float = TRAIN_FRACTION,
    training_time: float = 0.0,
) -> EvaluationResult:
    """
    Score `model` on the chronological tail of `clean_rows`.
    The model is expected to have been fit on the head of the same split.
    """
    train_rows, test_rows = split_train_test(clean_rows, train_fraction)
    if train_rows.empty or test_rows.empty:
        raise InsufficientDataError(
            f"Cannot split {len(clean_rows)} row(s) into train and test sets."
        )
    y_train = train_rows[TARGET_COL].to_numpy(dtype=float)
    y_test = test_rows[TARGET_COL].to_numpy(dtype=float)

    start = time.perf_counter()
    predictions = model.predict(test_rows[FEATURE_COLS])
    prediction_time = (time.perf_counter() - start) * 1000.0

    metrics = calculate_metrics(y_test, predictions)

    naive = naive_forecast(y_train, len(y_test))
    seasonal = seasonal_naive_forecast(y_train, len(y_test))
    baselines = {
        "Naive": {"predictions": naive, "metrics": calculate_metrics(y_test, naive)},
        "Seasonal Naive": {"predictions": seasonal, "metrics": calculate_metrics(y_test, seasonal)},
    }

    return EvaluationResult(
        mape=metrics["mape"],
        rmse=metrics["rmse"],
        mae=metrics["mae"],
        r2=metrics["r2"],
        training_time=training_time,
        prediction_time=prediction_time,
        feature_importance=ranked_importance(model),
        predictions=predictions,
        actuals=y_test,
        baselines=baselines,
        cross_validation_scores=cross_validation_scores(metrics["r2"]),
        best_params=model.params.to_dict(),
    )


def train_and_evaluate(
    clean_rows: pd.DataFrame,
    params: TrainingParameters = None,
    train_fraction: float = TRAIN_FRACTION,
) -> Tuple[GradientBoostedTrees, EvaluationResult]:
    """Fit on the earlier part of the clean matrix and validate on the rest."""
    params = (params or TrainingParameters()).validate()
    if len(clean_rows) < MIN_CLEAN_ROWS:
        raise InsufficientDataError(
            f"Insufficient clean training data: {len(clean_rows)} row(s). "
            f"Need at least {MIN_CLEAN_ROWS} days of non-zero lag features."
        )
    train_rows, _ = split_train_test(clean_rows, train_fraction)

    start = time.perf_counter()
    model = _fit(train_rows, params)
    training_time = (time.perf_counter() - start) * 1000.0

    return model, evaluate(model, clean_rows, train_fraction, training_time=training_time)
