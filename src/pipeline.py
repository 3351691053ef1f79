# pipeline.py
"""
Sales forecasting pipeline.

CLI:
- Train & evaluate against naive baselines:
  python pipeline.py evaluate --data daily_sales.csv --n-estimators 200 --learning-rate 0.05

- Forecast revenue for a horizon:
  python pipeline.py forecast --data daily_sales.csv --horizon 90 --out forecast.csv

- Summary numbers for the dashboard header:
  python pipeline.py summary --data daily_sales.csv
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from typing import Optional

import pandas as pd

from analytics import summarize
from data_loader import load_data
from features import EventCalendar, build_feature_matrix
from forecasting.recursive import forecast
from models.evaluation import EvaluationResult, train_and_evaluate
from models.modeling import TrainingParameters
from utils.constants import DATE_COL
from utils.io_utils import load_config


# ---------- Helpers ----------
def _params_from_args(cfg: dict, args) -> TrainingParameters:
    return TrainingParameters.from_config(
        cfg,
        learning_rate=args.learning_rate,
        max_depth=args.max_depth,
        n_estimators=args.n_estimators,
        subsample=args.subsample,
        colsample_bytree=args.colsample_bytree,
        min_child_weight=args.min_child_weight,
        seed=args.seed,
    )


def _print_result(result: EvaluationResult, top_k: int = 10) -> None:
    print("Validation metrics (hold-out 20%):")
    print(f"  R^2  : {result.r2:.4f}")
    print(f"  RMSE : {result.rmse:.2f}")
    print(f"  MAE  : {result.mae:.2f}")
    print(f"  MAPE : {result.mape:.2f}%")
    print(f"  CV   : {result.cv_score:.4f} (approximation)")
    print(f"  Training time   : {result.training_time:.0f} ms")
    print(f"  Prediction time : {result.prediction_time:.1f} ms")
    for name, baseline in result.baselines.items():
        m = baseline["metrics"]
        print(f"Baseline {name}: R^2 {m['r2']:.4f} | RMSE {m['rmse']:.2f} | MAE {m['mae']:.2f} | MAPE {m['mape']:.2f}%")
    print(f"Top {top_k} features:")
    for feature, importance in result.feature_importance[:top_k]:
        print(f"  {feature:<22} {importance:.4f}")


# ---------- Commands ----------
def cmd_evaluate(data_path: str, params: TrainingParameters, cfg: dict) -> EvaluationResult:
    observations = load_data(data_path)
    print(f"Loaded {len(observations)} daily observations")

    matrix = build_feature_matrix(observations, EventCalendar.from_config(cfg))
    print(f"Feature rows: {len(matrix.all)} | clean rows: {len(matrix.clean)}")

    _, result = train_and_evaluate(matrix.clean, params)
    _print_result(result)
    print("✅ Evaluation complete")
    return result


def cmd_forecast(
    data_path: str,
    horizon: Optional[int],
    out_csv: Optional[str],
    params: TrainingParameters,
    cfg: dict,
) -> str:
    observations = load_data(data_path)
    print(f"Loaded {len(observations)} daily observations")

    if horizon is None:
        horizon = int(cfg["forecast"].get("horizon_days", 90))
    result = forecast(observations, params, horizon, config=cfg)

    out = result.copy()
    out[DATE_COL] = pd.to_datetime(out[DATE_COL]).dt.date.astype(str)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    default_name = f"forecast_{horizon}days_{ts}.csv"
    out_path = out_csv if out_csv else os.path.join(os.getcwd(), default_name)
    out.to_csv(out_path, index=False)
    print(f"✅ Forecast of {len(out)} day(s) saved to: {out_path}")
    return out_path


def cmd_summary(data_path: str) -> dict:
    observations = load_data(data_path)
    summary = summarize(observations)
    for key, value in summary.items():
        print(f"  {key:<16} {value}")
    return summary


# ---------- CLI ----------
def _add_training_args(p) -> None:
    p.add_argument("--config", default=None)
    p.add_argument("--learning-rate", type=float, default=None)
    p.add_argument("--max-depth", type=int, default=None)
    p.add_argument("--n-estimators", type=int, default=None)
    p.add_argument("--subsample", type=float, default=None)
    p.add_argument("--colsample-bytree", type=float, default=None)
    p.add_argument("--min-child-weight", type=int, default=None)
    p.add_argument("--seed", type=int, default=None)


def main(argv=None):
    import argparse
    parser = argparse.ArgumentParser(description="Sales forecasting pipeline")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_eval = sub.add_parser("evaluate", help="Train on 80% of history and evaluate on the rest")
    p_eval.add_argument("--data", required=True)
    _add_training_args(p_eval)

    p_fc = sub.add_parser("forecast", help="Recursive revenue forecast")
    p_fc.add_argument("--data", required=True)
    p_fc.add_argument("--horizon", type=int, default=None)
    p_fc.add_argument("--out", default=None)
    _add_training_args(p_fc)

    p_sum = sub.add_parser("summary", help="Revenue totals and recent trend")
    p_sum.add_argument("--data", required=True)

    args = parser.parse_args(argv)
    if args.cmd == "evaluate":
        cfg = load_config(args.config)
        cmd_evaluate(args.data, _params_from_args(cfg, args), cfg)
    elif args.cmd == "forecast":
        cfg = load_config(args.config)
        cmd_forecast(args.data, args.horizon, args.out, _params_from_args(cfg, args), cfg)
    elif args.cmd == "summary":
        cmd_summary(args.data)
    else:
        parser.print_help()


def run():
    try:
        main()
    except Exception as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
