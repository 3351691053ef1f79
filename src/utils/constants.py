# utils/constants.py

SEED = 42

# Schema constants used by data_loader and others
DATE_COL = "date"
REVENUE_COL = "revenue"
QUANTITY_COL = "quantity"
ORDERS_COL = "orders"

REQUIRED_COLUMNS = [DATE_COL, REVENUE_COL, QUANTITY_COL]

# Raw sales records (one row per order) as exported by the dashboard backend
RAW_TIME_COLS = ["delivered_time", "created_time"]  # preference order
RAW_REVENUE_COLS = ["settlement_amount", "total_revenue", "order_amount"]
RAW_QUANTITY_COL = "quantity"

# Feature engineering constants
LAG_OFFSETS = [1, 7, 28]
ROLLING_WINDOWS = [7, 14, 28]
TREND_WINDOWS = [7, 14]
VOLATILITY_WINDOW = 7
SEASON_LENGTH = 7

# Training / evaluation
MIN_CLEAN_ROWS = 30
TRAIN_FRACTION = 0.8
CV_PERTURBATIONS = [1.0, 0.95, 1.05]

# Forecast heuristics (business approximations, not measured)
QUANTITY_RATIO = 100.0
ORDERS_RATIO = 200.0
PROFIT_MARGIN = 0.3

# Summary analytics
SUMMARY_WINDOW_DAYS = 30

# Forecast
HORIZON_DAYS = 90
