"""
Analytics Module
Statistical engines over an organization's ledger: trends, forecasts,
anomalies, profitability, financial ratios and business health.
"""

from app.analytics.anomalies import ExpenseAnomalyDetector
from app.analytics.dataset import AnalyticsDataset, DateRange
from app.analytics.exceptions import (
    AnalyticsError,
    ConfigurationError,
    InsufficientDataError,
    InvalidRangeError,
)
from app.analytics.expenses import ExpenseAnalyzer
from app.analytics.forecasting import RevenueForecaster
from app.analytics.health_score import HealthScoreCalculator
from app.analytics.profitability import ProfitabilityAnalyzer
from app.analytics.ratios import RatioCalculator
from app.analytics.trends import TrendAnalyzer

__all__ = [
    "AnalyticsDataset",
    "DateRange",
    "AnalyticsError",
    "ConfigurationError",
    "InsufficientDataError",
    "InvalidRangeError",
    "TrendAnalyzer",
    "RevenueForecaster",
    "ExpenseAnomalyDetector",
    "ExpenseAnalyzer",
    "ProfitabilityAnalyzer",
    "RatioCalculator",
    "HealthScoreCalculator",
]
