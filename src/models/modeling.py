# modeling.py
"""
Model training for daily revenue forecasting.
- Lightweight gradient-boosted regression trees: each round fits a shallow
  sklearn DecisionTreeRegressor on the residuals of the ensemble so far.
- Row and column subsampling per tree, seeded for reproducibility.
- Ensures schema correctness via utils/schema.
"""

from dataclasses import asdict, dataclass, fields
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.tree import DecisionTreeRegressor

from utils.constants import MIN_CLEAN_ROWS, SEED
from utils.schema import FEATURE_COLS, TARGET_COL


class InvalidParametersError(Exception):
    """Raised when a TrainingParameters invariant is violated."""


class InsufficientDataError(Exception):
    """Raised when there are not enough clean feature rows to train."""


def _is_number(value) -> bool:
    """Finite int/float; bool and None are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return bool(np.isfinite(value))


def _is_whole(value) -> bool:
    return _is_number(value) and float(value).is_integer()


# ------------------ Parameters ------------------
@dataclass(frozen=True)
class TrainingParameters:
    learning_rate: float = 0.1
    max_depth: int = 4
    n_estimators: int = 100
    subsample: float = 0.8
    colsample_bytree: float = 0.8
    min_child_weight: int = 3
    seed: int = SEED

    @classmethod
    def from_config(cls, cfg: dict, **overrides) -> "TrainingParameters":
        """Build from the `training` section of forecast_config.yaml; None overrides are ignored."""
        training = dict(cfg.get("training", {})) if cfg else {}
        training.update({k: v for k, v in overrides.items() if v is not None})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(training) - known)
        if unknown:
            raise InvalidParametersError(f"Unknown training parameters: {unknown}")
        return cls(**training)

    def validate(self) -> "TrainingParameters":
        errors = []
        for name in ("learning_rate", "subsample", "colsample_bytree"):
            value = getattr(self, name)
            if not _is_number(value) or not 0 < value <= 1:
                errors.append(f"{name} must be a number in (0, 1], got {value!r}")
        for name in ("max_depth", "n_estimators", "min_child_weight"):
            value = getattr(self, name)
            if not _is_whole(value) or value < 1:
                errors.append(f"{name} must be an integer >= 1, got {value!r}")
        if not _is_whole(self.seed) or self.seed < 0:
            errors.append(f"seed must be a non-negative integer, got {self.seed!r}")
        if errors:
            raise InvalidParametersError("; ".join(errors))
        return self

    def to_dict(self) -> dict:
        return asdict(self)


# ------------------ Input checks ------------------
def _check_schema(rows: pd.DataFrame):
    """Ensure rows have all required features and the target column."""
    missing_feats = [col for col in FEATURE_COLS if col not in rows.columns]
    if missing_feats:
        raise ValueError(f"Missing required feature columns: {missing_feats}")
    if TARGET_COL not in rows.columns:
        raise ValueError(f"Target column '{TARGET_COL}' not found.")


def _check_inputs(X, y) -> Tuple[np.ndarray, np.ndarray]:
    """Type, shape, and NA checks before fitting."""
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()
    if X.ndim != 2:
        raise ValueError(f"X must be 2-dimensional, got shape {X.shape}.")
    if np.isnan(X).any():
        raise ValueError("X contains NaN values. Handle missing data before training.")
    if np.isnan(y).any():
        raise ValueError("y contains NaN values.")
    if len(X) != len(y):
        raise ValueError(f"X and y length mismatch: {len(X)} vs {len(y)}.")
    return X, y


# ------------------ Model ------------------
class GradientBoostedTrees:
    """Additive ensemble of shallow regression trees with learning-rate shrinkage."""

    def __init__(self, params: TrainingParameters = None, feature_names: Sequence[str] = None):
        self.params = (params or TrainingParameters()).validate()
        self.feature_names: List[str] = list(feature_names) if feature_names is not None else []
        self.base_score = 0.0
        self.trees: List[Tuple[DecisionTreeRegressor, np.ndarray]] = []
        self.feature_importances_ = np.array([])

    def fit(self, X, y) -> "GradientBoostedTrees":
        if isinstance(X, pd.DataFrame) and not self.feature_names:
            self.feature_names = [str(c) for c in X.columns]
        X, y = _check_inputs(X, y)
        n_rows, n_cols = X.shape
        if n_rows < 2:
            raise InsufficientDataError(f"Need at least 2 rows to fit, got {n_rows}.")
        if not self.feature_names:
            self.feature_names = [f"feature_{i}" for i in range(n_cols)]
        if len(self.feature_names) != n_cols:
            raise ValueError(
                f"Got {n_cols} columns but {len(self.feature_names)} feature names."
            )

        p = self.params
        rng = np.random.default_rng(p.seed)
        n_sample = max(1, int(round(p.subsample * n_rows)))
        n_features = max(1, int(round(p.colsample_bytree * n_cols)))

        self.base_score = float(np.mean(y))
        self.trees = []
        pred = np.full(n_rows, self.base_score)
        importance = np.zeros(n_cols)

        for _ in range(int(p.n_estimators)):
            rows = np.sort(rng.choice(n_rows, size=n_sample, replace=False))
            cols = np.sort(rng.choice(n_cols, size=n_features, replace=False))
            residual = y - pred

            tree = DecisionTreeRegressor(
                max_depth=int(p.max_depth),
                min_samples_leaf=int(p.min_child_weight),
                random_state=int(rng.integers(0, 2**31 - 1)),
            )
            tree.fit(X[np.ix_(rows, cols)], residual[rows])

            pred += p.learning_rate * tree.predict(X[:, cols])
            importance[cols] += tree.feature_importances_
            self.trees.append((tree, cols))

        total = importance.sum()
        # constant target: no tree ever split
        self.feature_importances_ = importance / total if total > 0 else np.full(n_cols, 1.0 / n_cols)
        return self

    def predict(self, X) -> np.ndarray:
        if isinstance(X, pd.DataFrame):
            X = X[self.feature_names]
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        out = np.full(X.shape[0], self.base_score)
        for tree, cols in self.trees:
            out += self.params.learning_rate * tree.predict(X[:, cols])
        return out

    @property
    def feature_importance(self) -> List[Tuple[str, float]]:
        """(feature, importance) pairs in training column order."""
        return [(name, float(v)) for name, v in zip(self.feature_names, self.feature_importances_)]


# ------------------ Training ------------------
def _fit(rows: pd.DataFrame, params: TrainingParameters) -> GradientBoostedTrees:
    _check_schema(rows)
    model = GradientBoostedTrees(params, feature_names=FEATURE_COLS)
    return model.fit(rows[FEATURE_COLS], rows[TARGET_COL])


def train(clean_rows: pd.DataFrame, params: TrainingParameters = None) -> GradientBoostedTrees:
    """
    Train on clean feature rows against revenue.
    Raises InvalidParametersError for bad parameters and InsufficientDataError
    below MIN_CLEAN_ROWS rows.
    """
    params = (params or TrainingParameters()).validate()
    if len(clean_rows) < MIN_CLEAN_ROWS:
        raise InsufficientDataError(
            f"Insufficient clean training data: {len(clean_rows)} row(s). "
            f"Need at least {MIN_CLEAN_ROWS} days of non-zero lag features."
        )
    return _fit(clean_rows, params)
