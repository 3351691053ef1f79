# utils/io_utils.py
import os
import yaml


def default_config_path() -> str:
    # project root = parent of utils/ (i.e., src/)
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(project_root, "forecasting", "forecast_config.yaml")


def load_config(path: str = None) -> dict:
    """
    Load forecast_config.yaml configuration.
    If no path provided, defaults to the forecast_config.yaml shipped with the forecasting package.
    """
    if path is None:
        path = default_config_path()

    if not os.path.exists(path):
        raise FileNotFoundError(f"forecast_config.yaml not found at: {path}")
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    for section in ("training", "events", "forecast"):
        cfg.setdefault(section, {})
    return cfg
