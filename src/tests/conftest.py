# src/tests/conftest.py
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add the parent directory of this tests folder (i.e., src/) to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


def _observations(n_days: int, revenue, quantity=None, start: str = "2024-01-01") -> pd.DataFrame:
    dates = pd.date_range(start, periods=n_days, freq="D")
    revenue = np.asarray(revenue, dtype=float)
    if quantity is None:
        quantity = np.maximum(1, np.round(revenue / 100.0)).astype(int)
    return pd.DataFrame({"date": dates, "revenue": revenue, "quantity": quantity})


@pytest.fixture
def make_observations():
    """Factory for daily observation frames."""
    return _observations


@pytest.fixture
def weekly_observations():
    """120 days of revenue with a weekly cycle and a mild upward drift."""
    n = 120
    i = np.arange(n)
    revenue = 10_000 + 40 * i + 2_500 * np.sin(2 * np.pi * i / 7)
    return _observations(n, revenue)


@pytest.fixture
def constant_observations():
    n = 90
    return _observations(n, np.full(n, 100_000.0), np.full(n, 50))
