"""
Analytics Constants
Named tuning tables used by the analytics engines.

Kept apart from engine logic so the seasonal model, holiday effects and
benchmark tables can be tuned without touching the calculations.
"""

from enum import Enum
from typing import Optional


class Season(str, Enum):
    """Coarse three-season calendar used for seasonal adjustment."""

    DRY = "dry"
    RAINY = "rainy"
    TRANSITION = "transition"


# ============================================
# Seasonal model
# ============================================

# Calendar month (1-12) -> season
SEASON_BY_MONTH: dict[int, Season] = {
    1: Season.RAINY,
    2: Season.RAINY,
    3: Season.RAINY,
    4: Season.TRANSITION,
    5: Season.DRY,
    6: Season.DRY,
    7: Season.DRY,
    8: Season.DRY,
    9: Season.DRY,
    10: Season.TRANSITION,
    11: Season.RAINY,
    12: Season.RAINY,
}

# Dry season is the high-activity period, rainy season the low one
SEASON_MULTIPLIERS: dict[Season, float] = {
    Season.DRY: 1.1,
    Season.RAINY: 0.9,
    Season.TRANSITION: 1.0,
}

# Calendar month -> (multiplier, description)
HOLIDAY_MULTIPLIERS: dict[int, tuple[float, str]] = {
    12: (1.2, "Christmas and year-end holiday spending"),
    1: (0.9, "Post-holiday slowdown"),
    3: (1.1, "Youth Day and Women's Day activity"),
    10: (1.1, "Independence Day celebrations"),
}


# ============================================
# Statistics
# ============================================

# Two-sided normal z-multipliers by confidence level
CONFIDENCE_MULTIPLIERS: dict[float, float] = {
    0.8: 1.28,
    0.9: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}

# Divisor that maps a raw regression slope onto a 0-1 strength.
# Tunable, not a calibrated constant.
TREND_STRENGTH_NORMALIZER = 1000.0

TREND_SLOPE_THRESHOLD = 0.1
SEASONALITY_CV_THRESHOLD = 0.2
TREND_ANOMALY_Z_THRESHOLD = 2.5
HIGH_SEVERITY_Z = 3.0


# ============================================
# Forecasting
# ============================================

EXPONENTIAL_ALPHA = 0.3
MIN_FORECAST_POINTS = 3
MIN_SEASONALITY_POINTS = 12

# Model -> (floor, decay per horizon step). Linear starts from max(0.5, R²).
MODEL_CONFIDENCE_DECAY: dict[str, tuple[float, float]] = {
    "linear": (0.5, 0.02),
    "exponential": (0.3, 0.05),
    "seasonal": (0.4, 0.03),
}

EXPONENTIAL_BASE_CONFIDENCE = 0.75
SEASONAL_BASE_CONFIDENCE = 0.8
SEASONAL_BAND = (0.85, 1.15)


# ============================================
# Profitability
# ============================================

DEFAULT_INDUSTRY_COST_RATIO = 0.6

# Allocation basis weights. The "time" basis has no timesheet data behind it
# and reuses revenue share, so this is a simplification of activity-based costing.
ALLOCATION_WEIGHTS = {
    "revenue": 0.6,
    "transactions": 0.3,
    "time": 0.1,
}

DEFAULT_PAYMENT_DAYS = 30.0


# ============================================
# Financial ratios
# ============================================

# Share of balances assumed when only chart-of-accounts totals are known
BALANCE_SHEET_SHARES = {
    "current_assets": 0.6,
    "current_liabilities": 0.7,
    "inventory": 0.2,
    "cash": 0.1,
    "receivables": 0.3,
    "payables": 0.8,
}

COGS_RATIO = 0.7
DEBT_SERVICE_RATE = 0.1

INDUSTRY_BENCHMARKS: dict[str, dict[str, dict[str, float]]] = {
    "retail": {
        "current_ratio": {"min": 1.2, "avg": 1.8, "max": 2.5},
        "net_margin": {"min": 3.0, "avg": 8.0, "max": 15.0},
        "inventory_turnover": {"min": 4.0, "avg": 6.0, "max": 10.0},
    },
    "manufacturing": {
        "current_ratio": {"min": 1.5, "avg": 2.2, "max": 3.0},
        "net_margin": {"min": 5.0, "avg": 12.0, "max": 20.0},
        "inventory_turnover": {"min": 3.0, "avg": 5.0, "max": 8.0},
    },
    "services": {
        "current_ratio": {"min": 1.0, "avg": 1.5, "max": 2.2},
        "net_margin": {"min": 8.0, "avg": 15.0, "max": 25.0},
        "inventory_turnover": {"min": 0.0, "avg": 0.0, "max": 0.0},
    },
}

# Reference point for percentile ranking
PERCENTILE_BENCHMARK = {
    "current_ratio": 2.0,
    "net_margin": 10.0,
}


# ============================================
# Business health
# ============================================

SME_BENCHMARKS = {
    "cash_flow_ratio": 0.15,
    "profit_margin": 0.12,
    "growth_rate": 0.20,
    "debt_to_equity": 0.40,
    "current_ratio": 1.5,
}

HEALTH_WEIGHTS = {
    "cash_flow": 0.25,
    "profitability": 0.25,
    "growth": 0.20,
    "efficiency": 0.15,
    "stability": 0.15,
}

HEALTH_PEER_BENCHMARKS = {
    "industry": 72.0,
    "sme_average": 65.0,
    "top_performers": 88.0,
}


# ============================================
# Tax
# ============================================

VAT_RATE = 0.16

# Progressive income tax bands: (lower bound, upper bound or None, rate)
INCOME_TAX_BRACKETS: tuple[tuple[float, Optional[float], float], ...] = (
    (0.0, 4800.0, 0.0),
    (4800.0, 9600.0, 0.25),
    (9600.0, 19200.0, 0.30),
    (19200.0, None, 0.375),
)

# Invoices whose VAT has been at least partly collected
VAT_COLLECTED_INVOICE_STATUSES = ("paid", "partially_paid")
SETTLED_TAX_STATUSES = ("paid", "filed")
UNCATEGORIZED_EXPENSE_LABELS = ("", "other", "uncategorized")

# Share of spend without recorded VAT assumed to carry claimable input VAT
VAT_ELIGIBLE_SHARE = 0.5
VAT_RESERVE_THRESHOLD = 10000.0
INCOME_TAX_RESERVE_SHARE = 0.25

# (month, day) of the year after the tax year when income tax falls due
INCOME_TAX_DUE = (3, 31)
TAX_UPCOMING_DAYS = 30
