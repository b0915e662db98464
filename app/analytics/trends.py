"""
Trend & Seasonality Engine
Builds time series from ledger records and analyses their direction,
seasonality and statistical outliers.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from app.analytics import statistics as stats
from app.analytics.constants import (
    HIGH_SEVERITY_Z,
    MIN_SEASONALITY_POINTS,
    SEASONALITY_CV_THRESHOLD,
    TREND_ANOMALY_Z_THRESHOLD,
    TREND_SLOPE_THRESHOLD,
    TREND_STRENGTH_NORMALIZER,
)
from app.analytics.dataset import DateRange, Expense, Invoice, TimeSeriesPoint
from app.analytics.parameters import GroupBy
from app.analytics.periods import bucket_start, period_label, step_bucket


class Direction(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    VOLATILE = "volatile"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Seasonality:
    detected: bool
    pattern: Optional[str] = None
    strength: Optional[float] = None


@dataclass(frozen=True)
class AnomalyPoint:
    period: str
    value: float
    expected_value: float
    z_score: float
    severity: Severity
    date: date


@dataclass(frozen=True)
class TrendAnalysis:
    direction: Direction
    strength: float
    slope: float
    seasonality: Seasonality
    anomalies: tuple[AnomalyPoint, ...] = ()


# ============================================
# Time series builders
# ============================================

def build_time_series(
    entries: Iterable[tuple[date, float]],
    group_by: GroupBy = GroupBy.MONTH,
) -> list[TimeSeriesPoint]:
    """
    Collapse dated amounts into one point per calendar bucket.

    Buckets between the first and last observation that have no entries
    are emitted with value 0, so point index tracks calendar distance.

    Args:
        entries: (date, amount) pairs in any order
        group_by: Bucket size

    Returns:
        Contiguous points sorted chronologically
    """
    totals: dict[date, float] = defaultdict(float)
    for day, amount in entries:
        totals[bucket_start(day, group_by)] += amount

    if not totals:
        return []

    series = []
    current, last = min(totals), max(totals)
    while current <= last:
        series.append(
            TimeSeriesPoint(period=period_label(current, group_by), value=totals.get(current, 0.0), date=current)
        )
        current = step_bucket(current, group_by)
    return series


def revenue_time_series(
    invoices: Iterable[Invoice],
    group_by: GroupBy = GroupBy.MONTH,
) -> list[TimeSeriesPoint]:
    """Invoice totals bucketed by issue date."""
    return build_time_series(((i.issue_date, i.total_amount) for i in invoices), group_by)


def expense_time_series(
    expenses: Iterable[Expense],
    group_by: GroupBy = GroupBy.MONTH,
    category: Optional[str] = None,
) -> list[TimeSeriesPoint]:
    """Expense amounts bucketed by expense date, optionally for one category."""
    return build_time_series(
        (
            (e.expense_date, e.amount)
            for e in expenses
            if category is None or e.category == category
        ),
        group_by,
    )


def expenses_by_category(expenses: Iterable[Expense]) -> dict[str, list[TimeSeriesPoint]]:
    """Monthly series per category, keyed in alphabetical category order."""
    grouped: dict[str, list[Expense]] = defaultdict(list)
    for expense in expenses:
        grouped[expense.category].append(expense)
    return {
        category: expense_time_series(grouped[category], GroupBy.MONTH)
        for category in sorted(grouped)
    }


# ============================================
# Trend analysis
# ============================================

class TrendAnalyzer:
    """Direction, seasonality and outlier analysis of a single series."""

    @staticmethod
    def analyze(series: list[TimeSeriesPoint]) -> TrendAnalysis:
        """
        Analyse a chronologically ordered series.

        Fewer than two points yield a stable, zero-strength result.

        Args:
            series: Time series points

        Returns:
            TrendAnalysis with direction, strength, seasonality and anomalies
        """
        if len(series) < 2:
            return TrendAnalysis(
                direction=Direction.STABLE,
                strength=0.0,
                slope=0.0,
                seasonality=Seasonality(detected=False),
            )

        values = [point.value for point in series]
        slope = stats.linear_regression(values).slope

        return TrendAnalysis(
            direction=TrendAnalyzer.classify_slope(slope),
            strength=min(abs(slope) / TREND_STRENGTH_NORMALIZER, 1.0),
            slope=slope,
            seasonality=TrendAnalyzer.detect_seasonality(series),
            anomalies=tuple(TrendAnalyzer.detect_anomalies(series)),
        )

    @staticmethod
    def classify_slope(slope: float, threshold: float = TREND_SLOPE_THRESHOLD) -> Direction:
        if slope > threshold:
            return Direction.INCREASING
        if slope < -threshold:
            return Direction.DECREASING
        return Direction.STABLE

    @staticmethod
    def month_bucket_means(series: list[TimeSeriesPoint]) -> list[float]:
        """Average value per calendar month (index 0 = January); empty months are 0."""
        sums = [0.0] * 12
        counts = [0] * 12
        for point in series:
            sums[point.date.month - 1] += point.value
            counts[point.date.month - 1] += 1
        return [s / c if c else 0.0 for s, c in zip(sums, counts)]

    @staticmethod
    def detect_seasonality(series: list[TimeSeriesPoint]) -> Seasonality:
        """
        Month-of-year seasonality.

        Needs at least 12 points. The coefficient of variation across the twelve
        month-bucket means is the strength statistic; above 0.2 counts as seasonal.
        """
        if len(series) < MIN_SEASONALITY_POINTS:
            return Seasonality(detected=False)

        cv = stats.coefficient_of_variation(TrendAnalyzer.month_bucket_means(series))
        if cv > SEASONALITY_CV_THRESHOLD:
            return Seasonality(detected=True, pattern="monthly", strength=min(cv, 1.0))
        return Seasonality(detected=False)

    @staticmethod
    def detect_anomalies(series: list[TimeSeriesPoint]) -> list[AnomalyPoint]:
        """Whole-series z-score outliers (z > 2.5); High above 3, Medium otherwise."""
        if len(series) < 3:
            return []

        values = [point.value for point in series]
        avg = stats.mean(values)
        std = stats.standard_deviation(values)
        if std == 0:
            return []

        anomalies = []
        for point in series:
            z = stats.z_score(point.value, avg, std)
            if z > TREND_ANOMALY_Z_THRESHOLD:
                anomalies.append(
                    AnomalyPoint(
                        period=point.period,
                        value=point.value,
                        expected_value=avg,
                        z_score=z,
                        severity=Severity.HIGH if z > HIGH_SEVERITY_Z else Severity.MEDIUM,
                        date=point.date,
                    )
                )
        return anomalies


# ============================================
# Expense trend overview
# ============================================

@dataclass(frozen=True)
class CategoryTrend:
    category: str
    trend: TrendAnalysis
    total_amount: float
    percentage_of_total: float
    monthly_average: float


@dataclass(frozen=True)
class ExpenseTrendInsights:
    fastest_growing_category: Optional[str]
    largest_category: Optional[str]
    volatile_categories: list[str] = field(default_factory=list)
    seasonal_categories: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExpenseProjection:
    next_month: float
    next_quarter: float
    confidence: float


@dataclass(frozen=True)
class ExpenseTrendAnalysis:
    overall: TrendAnalysis
    by_category: list[CategoryTrend]
    insights: ExpenseTrendInsights
    forecast: ExpenseProjection


def _months_between(date_range: DateRange) -> int:
    months = (date_range.end.year - date_range.start.year) * 12 + (
        date_range.end.month - date_range.start.month
    )
    return max(1, months)


def analyze_expense_trends(expenses: list[Expense], date_range: DateRange) -> ExpenseTrendAnalysis:
    """
    Overall and per-category expense trends with a short linear projection.

    Args:
        expenses: Expenses within date_range
        date_range: Analysed range (used for monthly averages)

    Returns:
        ExpenseTrendAnalysis
    """
    overall_series = expense_time_series(expenses, GroupBy.MONTH)
    overall = TrendAnalyzer.analyze(overall_series)

    grand_total = sum(e.amount for e in expenses)
    months = _months_between(date_range)

    by_category = []
    for category, series in expenses_by_category(expenses).items():
        total = sum(point.value for point in series)
        by_category.append(
            CategoryTrend(
                category=category,
                trend=TrendAnalyzer.analyze(series),
                total_amount=total,
                percentage_of_total=total / grand_total * 100 if grand_total > 0 else 0.0,
                monthly_average=total / months,
            )
        )

    return ExpenseTrendAnalysis(
        overall=overall,
        by_category=by_category,
        insights=_expense_trend_insights(by_category, overall),
        forecast=_project_expenses(overall_series, overall),
    )


def _expense_trend_insights(by_category: list[CategoryTrend], overall: TrendAnalysis) -> ExpenseTrendInsights:
    growing = [c for c in by_category if c.trend.direction == Direction.INCREASING]
    fastest = max(growing, key=lambda c: c.trend.strength).category if growing else None
    largest = max(by_category, key=lambda c: c.total_amount).category if by_category else None

    volatile = [c.category for c in by_category if len(c.trend.anomalies) > 1]
    seasonal = [c.category for c in by_category if c.trend.seasonality.detected]

    recommendations = []
    if overall.direction == Direction.INCREASING and overall.strength > 0.5:
        recommendations.append("Expense growth is accelerating - review budget allocations")
    if volatile:
        recommendations.append(f"Monitor volatile categories: {', '.join(volatile)}")
    if seasonal:
        recommendations.append("Plan for seasonal expense variations in budget")
    if len(overall.anomalies) > 2:
        recommendations.append("Implement expense approval controls to reduce volatility")
    if not recommendations:
        recommendations.append("Expense patterns are stable - maintain current controls")

    return ExpenseTrendInsights(
        fastest_growing_category=fastest,
        largest_category=largest,
        volatile_categories=volatile,
        seasonal_categories=seasonal,
        recommendations=recommendations,
    )


def _project_expenses(series: list[TimeSeriesPoint], trend: TrendAnalysis) -> ExpenseProjection:
    if not series:
        return ExpenseProjection(next_month=0.0, next_quarter=0.0, confidence=0.0)

    last_value = series[-1].value
    slope = trend.slope

    confidence = 0.8
    if trend.strength > 0.7:
        confidence -= 0.2
    if len(trend.anomalies) > 2:
        confidence -= 0.3

    return ExpenseProjection(
        next_month=max(0.0, last_value + slope),
        next_quarter=max(0.0, last_value + slope * 3),
        confidence=max(0.3, confidence),
    )
