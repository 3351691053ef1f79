"""
data_loader.py
CSV loader with schema checks for the forecasting engine.
- Accepts either daily observations (date, revenue, quantity) or raw sales
  records exported by the dashboard backend (one row per order).
- Raw records are aggregated to one observation per day:
    * date     -> delivered_time if present, else created_time
    * revenue  -> highest of settlement_amount / total_revenue / order_amount
    * quantity -> at least 1 per record
    * orders   -> number of records that day
- Enforces dtypes on observations:
    * date -> datetime64 (normalized to midnight)
    * revenue -> float64, non-null, non-negative
    * quantity -> int64, non-null, non-negative, whole numbers only
- Raises DataLoaderError with a concise summary if any observation is invalid.
- Returns a typed DataFrame sorted by date.
"""

import pandas as pd

from utils.constants import (
    DATE_COL, REVENUE_COL, QUANTITY_COL, ORDERS_COL, REQUIRED_COLUMNS,
    RAW_TIME_COLS, RAW_REVENUE_COLS, RAW_QUANTITY_COL,
)


class DataLoaderError(Exception):
    """Raised when observations fail validation."""


def _ensure_required_columns(df: pd.DataFrame) -> None:
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise KeyError(f"Missing required columns: {missing}")


def _to_naive_dates(values: pd.Series) -> pd.Series:
    dates = pd.to_datetime(values, errors="coerce", utc=True)
    return dates.dt.tz_localize(None).dt.normalize()


def prepare_observations(observations) -> pd.DataFrame:
    """
    Validate and type a sequence of daily observations.
    Accepts a DataFrame or an iterable of mappings with date/revenue/quantity.
    """
    if isinstance(observations, pd.DataFrame):
        df = observations.copy()
    else:
        df = pd.DataFrame(list(observations))
        if df.empty:
            df = pd.DataFrame(columns=REQUIRED_COLUMNS)

    _ensure_required_columns(df)

    df[DATE_COL] = _to_naive_dates(df[DATE_COL])
    df[REVENUE_COL] = pd.to_numeric(df[REVENUE_COL], errors="coerce")
    df[QUANTITY_COL] = pd.to_numeric(df[QUANTITY_COL], errors="coerce")

    invalid_mask = df[DATE_COL].isna()
    invalid_mask |= df[REVENUE_COL].isna() | (df[REVENUE_COL] < 0)
    invalid_mask |= df[QUANTITY_COL].isna() | (df[QUANTITY_COL] < 0)
    invalid_mask |= (df[QUANTITY_COL] % 1 != 0) & df[QUANTITY_COL].notna()
    invalid_mask |= df[DATE_COL].duplicated(keep=False) & df[DATE_COL].notna()

    if invalid_mask.any():
        example_idx = list(df.index[invalid_mask][:5])
        raise DataLoaderError(
            f"Validation failed for {int(invalid_mask.sum())} observation(s). "
            f"Invalid row indices (first 5): {example_idx}. "
            "Dates must be unique, revenue non-negative and quantity a non-negative integer."
        )

    df[REVENUE_COL] = df[REVENUE_COL].astype("float64")
    df[QUANTITY_COL] = df[QUANTITY_COL].astype("int64")
    return df.sort_values(DATE_COL).reset_index(drop=True)


def aggregate_daily_sales(sales: pd.DataFrame) -> pd.DataFrame:
    """Collapse raw sales records into one observation per day."""
    time_cols = [c for c in RAW_TIME_COLS if c in sales.columns]
    revenue_cols = [c for c in RAW_REVENUE_COLS if c in sales.columns]
    if not time_cols:
        raise KeyError(f"Sales records need one of {RAW_TIME_COLS}")
    if not revenue_cols:
        raise KeyError(f"Sales records need one of {RAW_REVENUE_COLS}")

    df = sales.copy()

    dates = pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns]")
    for c in time_cols:  # delivered_time wins over created_time
        dates = dates.fillna(_to_naive_dates(df[c]))

    amounts = df[revenue_cols].apply(pd.to_numeric, errors="coerce")
    valid = dates.notna() & amounts.notna().any(axis=1)

    if RAW_QUANTITY_COL in df.columns:
        qty = pd.to_numeric(df[RAW_QUANTITY_COL], errors="coerce").fillna(1).clip(lower=1)
    else:
        qty = pd.Series(1, index=df.index)

    records = pd.DataFrame({
        DATE_COL: dates[valid],
        REVENUE_COL: amounts[valid].fillna(0.0).max(axis=1).clip(lower=0.0),
        QUANTITY_COL: qty[valid].astype("int64"),
    })

    daily = (
        records.groupby(DATE_COL, as_index=False)
        .agg(**{
            REVENUE_COL: (REVENUE_COL, "sum"),
            QUANTITY_COL: (QUANTITY_COL, "sum"),
            ORDERS_COL: (REVENUE_COL, "size"),
        })
        .sort_values(DATE_COL)
        .reset_index(drop=True)
    )
    return daily


def load_data(path: str) -> pd.DataFrame:
    """
    Read a CSV of daily observations or raw sales records and return
    validated daily observations.
    """
    df = pd.read_csv(
        path,
        keep_default_na=True,
        na_values=["", "NA", "N/A", "na", "n/a", "NULL", "null", "-", "--"],
    )

    if set(REQUIRED_COLUMNS).issubset(df.columns):
        return prepare_observations(df)
    if any(c in df.columns for c in RAW_TIME_COLS):
        return prepare_observations(aggregate_daily_sales(df))

    raise KeyError(
        f"Input file must include {REQUIRED_COLUMNS} or raw sales columns "
        f"({RAW_TIME_COLS} and one of {RAW_REVENUE_COLS})"
    )
